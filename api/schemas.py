from pydantic import BaseModel
from typing import List, Optional


class BoundingBox(BaseModel):
    x1: int
    y1: int
    x2: int
    y2: int
    class_label: str
    confidence: float
    detection_timestamp: Optional[float] = None


class DetectionResponse(BaseModel):
    post_process_ms: float
    inference_time_ms: Optional[float] = None
    object_count: int
    detections: List[BoundingBox]
    best: Optional[BoundingBox] = None


class HealthResponse(BaseModel):
    status: str
    labels: int
    model: Optional[str] = None
    detector_loaded: bool


class MetricsResponse(BaseModel):
    fps: float
    latency_p50_ms: float
    latency_p95_ms: float
    frames: int
