from decoder.labels import load_labels
from decoder.nms import calculate_iou, non_max_suppression
from decoder.pipeline import best_detection, decode, validate_tensor
from decoder.types import Box, Candidate, DecoderConfig, DecoderError, ShapeMismatch

__all__ = [
    "Box",
    "Candidate",
    "DecoderConfig",
    "DecoderError",
    "ShapeMismatch",
    "best_detection",
    "calculate_iou",
    "decode",
    "load_labels",
    "non_max_suppression",
    "validate_tensor",
]
