import math

import torch

from decoder.types import Candidate

# [cx, cy, w, h, objectness, class_0 ... class_{K-1}]
BOX_ATTRS = 4
OBJECTNESS_ATTR = 4
FIRST_CLASS_ATTR = 5
MIN_ATTRS = FIRST_CLASS_ATTR + 1


def sigmoid(x):
    if isinstance(x, torch.Tensor):
        return torch.sigmoid(x)
    # exp overflow'a karşı iki dallı hesap
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def score_anchors(data, num_labels, config):
    """
    Per-anchor scorer.
    Input: [num_attrs, num_anchors] float tensor
    Output: objectness ve class skor filtrelerini geçen Candidate listesi (anchor sırasıyla)
    """
    if data.shape[0] < MIN_ATTRS or data.shape[1] == 0:
        return []

    thr = config.confidence_threshold
    boxes = data[:BOX_ATTRS]
    objectness = sigmoid(data[OBJECTNESS_ATTR])

    # Erken çıkış: objectness eşiği + sonlu kutu değerleri
    keep = (objectness >= thr) & torch.isfinite(boxes).all(dim=0)
    anchor_idx = torch.nonzero(keep).flatten()
    if anchor_idx.numel() == 0:
        return []

    cls = sigmoid(data[FIRST_CLASS_ATTR:, anchor_idx])
    # argmax eşitlikte ilk indeksi döner
    class_idx = torch.argmax(cls, dim=0)
    class_score = cls.gather(0, class_idx.unsqueeze(0)).squeeze(0)
    combined = class_score * objectness[anchor_idx]

    mask = (combined >= thr) & (class_idx < num_labels)
    if not bool(mask.any()):
        return []

    anchor_idx = anchor_idx[mask]
    picked = boxes[:, anchor_idx]

    rows = zip(
        anchor_idx.tolist(),
        objectness[anchor_idx].tolist(),
        class_idx[mask].tolist(),
        class_score[mask].tolist(),
        combined[mask].tolist(),
        *picked.tolist(),
    )
    return [Candidate(*row) for row in rows]
