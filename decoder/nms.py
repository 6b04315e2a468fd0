import torch
from torchvision.ops import box_iou


def calculate_iou(boxA, boxB):
    """
    box: Box ya da [x1, y1, x2, y2]
    Birleşim alanı <= 0 ise IoU = 0 (bastırma yok).
    """
    if hasattr(boxA, "as_xyxy"):
        boxA = boxA.as_xyxy()
    if hasattr(boxB, "as_xyxy"):
        boxB = boxB.as_xyxy()

    xA = max(boxA[0], boxB[0])
    yA = max(boxA[1], boxB[1])
    xB = min(boxA[2], boxB[2])
    yB = min(boxA[3], boxB[3])

    interArea = max(0, xB - xA) * max(0, yB - yA)
    boxAArea = (boxA[2] - boxA[0]) * (boxA[3] - boxA[1])
    boxBArea = (boxB[2] - boxB[0]) * (boxB[3] - boxB[1])

    union = boxAArea + boxBArea - interArea
    if union <= 0:
        return 0.0
    return interArea / float(union)


def iou_matrix(boxes):
    coords = torch.tensor([b.as_xyxy() for b in boxes], dtype=torch.float64)
    iou = box_iou(coords, coords)
    # Birleşim <= 0 olan çiftlerde kesişim de 0'dır; 0/0 -> NaN -> 0
    return torch.nan_to_num(iou, nan=0.0)


def non_max_suppression(boxes, iou_threshold=0.45, max_detections=10):
    """
    Class-agnostic greedy NMS.
    Input: Box listesi (herhangi bir sırada)
    Output: confidence'a göre azalan, en fazla max_detections kutu
    """
    if not boxes or max_detections <= 0:
        return []

    scores = torch.tensor([b.confidence for b in boxes], dtype=torch.float64)
    # stable=True: eşit skorlarda orijinal sıra korunur
    order = torch.sort(scores, descending=True, stable=True).indices.tolist()
    ordered = [boxes[i] for i in order]

    iou = iou_matrix(ordered)
    suppressed = torch.zeros(len(ordered), dtype=torch.bool)
    keep = []

    for i, box in enumerate(ordered):
        if suppressed[i]:
            continue
        keep.append(box)
        if len(keep) >= max_detections:
            break
        # Eşik kesin büyüktür (>), eşitlik bastırmaz
        suppressed |= iou[i] > iou_threshold

    return keep
