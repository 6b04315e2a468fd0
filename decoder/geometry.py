import math

from decoder.types import Box


def round_half_away(x):
    """
    Round half away from zero: 2.5 -> 3, -2.5 -> -3.
    Python'un round() fonksiyonu banker's rounding yapar (2.5 -> 2), burada kullanılmaz.
    """
    if x >= 0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def cxcywh_to_xyxy(cx, cy, w, h, input_size):
    # Önce normalize, sonra tekrar input_size ile ölçekle
    s = float(input_size)
    scaled_cx, scaled_cy = cx / s, cy / s
    scaled_w, scaled_h = w / s, h / s

    x1 = round_half_away((scaled_cx - scaled_w / 2) * s)
    y1 = round_half_away((scaled_cy - scaled_h / 2) * s)
    x2 = round_half_away((scaled_cx + scaled_w / 2) * s)
    y2 = round_half_away((scaled_cy + scaled_h / 2) * s)
    return x1, y1, x2, y2


def to_box(candidate, labels, config):
    """
    Candidate -> Box. Görüntü dışına taşan kutular için None döner.
    Sıfır/negatif alanlı kutular sadece config.drop_degenerate açıksa elenir.
    """
    size = config.input_size
    x1, y1, x2, y2 = cxcywh_to_xyxy(candidate.cx, candidate.cy, candidate.w, candidate.h, size)

    if x1 < 0 or y1 < 0 or x2 > size or y2 > size:
        return None
    if config.drop_degenerate and (x1 >= x2 or y1 >= y2):
        return None
    if candidate.class_index >= len(labels):
        return None

    return Box(
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
        class_label=labels[candidate.class_index],
        confidence=float(candidate.combined_score),
    )


def map_boxes(candidates, labels, config):
    boxes = []
    for cand in candidates:
        box = to_box(cand, labels, config)
        if box is not None:
            boxes.append(box)
    return boxes
