from dataclasses import dataclass, asdict
from typing import NamedTuple, Optional


class DecoderError(Exception):
    """Decoder'in kullanamayacağı girdiler için temel hata."""


class ShapeMismatch(DecoderError, ValueError):
    """
    Tensör / etiket tablosu yapısal olarak uyumsuz.
    Örn: attribute satır sayısı 5 + num_classes değil ya da etiket tablosu boş.
    """


class Candidate(NamedTuple):
    # Skorlama aşamasında oluşur, geometri aşamasında tüketilir
    anchor_index: int
    objectness: float
    class_index: int
    class_score: float
    combined_score: float
    cx: float
    cy: float
    w: float
    h: float


@dataclass(frozen=True)
class Box:
    """
    Final detection in input-image pixel space.
    x1, y1, x2, y2 are integer corners, confidence = class score * objectness.
    """
    x1: int
    y1: int
    x2: int
    y2: int
    class_label: str
    confidence: float
    detection_timestamp: Optional[float] = None

    @property
    def width(self):
        return self.x2 - self.x1

    @property
    def height(self):
        return self.y2 - self.y1

    @property
    def area(self):
        return self.width * self.height

    def as_xyxy(self):
        return [self.x1, self.y1, self.x2, self.y2]

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class DecoderConfig:
    confidence_threshold: float = 0.35
    iou_threshold: float = 0.45
    input_size: int = 640
    max_detections: int = 10
    # Set edilirse tensör tam olarak 5 + num_classes satır olmalı
    num_classes: Optional[int] = None
    # Sıfır/negatif alanlı kutuları ele (varsayılan: kapalı)
    drop_degenerate: bool = False

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold [0, 1] aralığında olmalı: {self.confidence_threshold}")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold [0, 1] aralığında olmalı: {self.iou_threshold}")
        if self.input_size <= 0:
            raise ValueError(f"input_size pozitif olmalı: {self.input_size}")
        if self.max_detections < 0:
            raise ValueError(f"max_detections negatif olamaz: {self.max_detections}")
        if self.num_classes is not None and self.num_classes <= 0:
            raise ValueError(f"num_classes pozitif olmalı: {self.num_classes}")
