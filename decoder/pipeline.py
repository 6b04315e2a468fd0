import numpy as np
import torch

from decoder.geometry import map_boxes
from decoder.labels import freeze_labels
from decoder.nms import non_max_suppression
from decoder.scoring import FIRST_CLASS_ATTR, MIN_ATTRS, score_anchors
from decoder.types import DecoderConfig, ShapeMismatch
from monitoring.logger import get_logger

logger = get_logger("Decoder")


def validate_tensor(tensor, labels, config):
    """
    Ham model çıktısını [num_attrs, num_anchors] float64 tensöre çevirir.
    Kullanılamaz girdilerde ShapeMismatch fırlatır.
    """
    if isinstance(tensor, torch.Tensor):
        data = tensor.detach().cpu().to(torch.float64)
    else:
        try:
            data = torch.from_numpy(np.asarray(tensor, dtype=np.float64))
        except (TypeError, ValueError) as e:
            raise ShapeMismatch(f"Tensör sayısal bir diziye çevrilemedi: {e}") from e

    # [1, A, N] -> [A, N]
    if data.ndim == 3:
        if data.shape[0] != 1:
            raise ShapeMismatch(f"Batch boyutu 1 olmalı, gelen: {tuple(data.shape)}")
        data = data[0]

    if data.ndim != 2:
        raise ShapeMismatch(f"Tensör [num_attrs, num_anchors] olmalı, gelen: {tuple(data.shape)}")

    if len(labels) == 0:
        raise ShapeMismatch("Etiket tablosu boş, hiçbir class indeksi geçerli değil")

    if config.num_classes is not None:
        expected = FIRST_CLASS_ATTR + config.num_classes
        if data.shape[0] != expected:
            raise ShapeMismatch(
                f"Attribute satır sayısı {data.shape[0]}, beklenen 5 + {config.num_classes} = {expected}"
            )

    return data


def decode(tensor, labels, config=None):
    """
    Ham tensör -> skorlama -> geometri -> NMS.
    Tespit yoksa boş liste döner (hata değil).
    """
    config = config or DecoderConfig()
    labels = freeze_labels(labels)
    data = validate_tensor(tensor, labels, config)

    if data.shape[0] < MIN_ATTRS:
        logger.warning(f"Malformed tensor: {data.shape[0]} attribute satırı (< {MIN_ATTRS}), anchor'lar atlandı")
        return []

    candidates = score_anchors(data, len(labels), config)
    boxes = map_boxes(candidates, labels, config)
    final = non_max_suppression(boxes, config.iou_threshold, config.max_detections)

    logger.debug(
        f"Decode: {data.shape[1]} anchor -> {len(candidates)} candidate -> "
        f"{len(boxes)} valid box -> {len(final)} after NMS"
    )
    return final


def best_detection(boxes):
    """En yüksek confidence'lı kutu (eşitlikte ilki), boş listede None."""
    best = None
    for box in boxes:
        if best is None or box.confidence > best.confidence:
            best = box
    return best
