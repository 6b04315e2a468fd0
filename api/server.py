from fastapi import FastAPI, UploadFile, File, HTTPException, Query
import uvicorn
import cv2
import dataclasses
import io
import numpy as np
import os
import sys
import time
from typing import Optional

# Proje ana dizinini path'e ekle
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decoder.labels import load_labels
from decoder.pipeline import best_detection, decode
from decoder.types import DecoderConfig, ShapeMismatch
from monitoring.fps_meter import FPSMeter
from monitoring.logger import get_logger

try:
    from api.schemas import DetectionResponse, HealthResponse, MetricsResponse
except ImportError:
    from schemas import DetectionResponse, HealthResponse, MetricsResponse

# --- LOGGER ---
logger = get_logger("API", log_type="json")

app = FastAPI(title="Detection Decoder API", description="YOLO raw output -> filtered, NMS'li kutular")


# --- AYARLAR ---
def load_settings():
    return {
        "model_path": os.getenv("DECODER_MODEL_PATH", "models/model.onnx"),
        "labels_path": os.getenv("DECODER_LABELS_PATH", "models/labels.txt"),
        "config": DecoderConfig(
            confidence_threshold=float(os.getenv("DECODER_CONF_THRES", "0.35")),
            iou_threshold=float(os.getenv("DECODER_IOU_THRES", "0.45")),
            input_size=int(os.getenv("DECODER_INPUT_SIZE", "640")),
            max_detections=int(os.getenv("DECODER_MAX_DET", "10")),
        ),
    }


settings = load_settings()

# Global Değişkenler
labels = None
detector = None
fps_meter = FPSMeter(buffer_len=30)


@app.on_event("startup")
async def startup_event():
    """Etiketleri ve (varsa) ONNX modelini yükler"""
    global labels, detector

    try:
        labels = load_labels(settings["labels_path"])
        logger.info(f"Etiketler yüklendi: {len(labels)} sınıf")
    except (FileNotFoundError, ShapeMismatch) as e:
        logger.error(f"Etiketler yüklenemedi -> {e}")
        return

    model_path = settings["model_path"]
    if not os.path.exists(model_path):
        logger.warning(f"Model dosyası yok, sadece /decode aktif -> {model_path}")
        return

    try:
        from runtime.detector import Detector
        detector = Detector(model_path, labels=labels, config=settings["config"])
        logger.info("Model başarıyla yüklendi!")
    except RuntimeError as e:
        logger.critical(f"Kritik Hata: Model yüklenemedi -> {e}")


def _format(boxes, post_ms, inference_ms=None):
    results = [b.to_dict() for b in boxes]
    best = best_detection(boxes)
    return {
        "post_process_ms": round(post_ms, 2),
        "inference_time_ms": round(inference_ms, 2) if inference_ms is not None else None,
        "object_count": len(results),
        "detections": results,
        "best": best.to_dict() if best else None,
    }


@app.get("/health", response_model=HealthResponse)
def health_check():
    if labels is None:
        logger.error("Health check failed: labels not loaded")
        raise HTTPException(status_code=503, detail="System unhealthy: labels not loaded")
    return {
        "status": "healthy",
        "labels": len(labels),
        "model": settings["model_path"] if detector else None,
        "detector_loaded": detector is not None,
    }


@app.post("/decode", response_model=DetectionResponse)
def decode_tensor(
    file: UploadFile = File(...),
    conf_thres: Optional[float] = Query(None),
    iou_thres: Optional[float] = Query(None),
    max_det: Optional[int] = Query(None),
):
    """.npy olarak yüklenen ham tensörü decode eder"""
    if labels is None:
        raise HTTPException(status_code=503, detail="Etiketler yüklü değil.")

    config = settings["config"]
    overrides = {
        "confidence_threshold": conf_thres,
        "iou_threshold": iou_thres,
        "max_detections": max_det,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        config = dataclasses.replace(config, **overrides)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        contents = file.file.read()
        tensor = np.load(io.BytesIO(contents), allow_pickle=False)
    except Exception as e:
        logger.error(f"Tensor read failed: {e}")
        raise HTTPException(status_code=400, detail="Geçersiz .npy dosyası.")

    t0 = time.time()
    try:
        boxes = decode(tensor, labels, config)
    except ShapeMismatch as e:
        logger.error(f"Shape mismatch: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    post_ms = (time.time() - t0) * 1000

    fps_meter.tick(latency_ms=post_ms)
    logger.info(f"Decode Success: {len(boxes)} objects in {round(post_ms, 2)}ms")
    return _format(boxes, post_ms)


@app.post("/detect", response_model=DetectionResponse)
def detect_objects(file: UploadFile = File(...)):
    """Resim -> ONNX inference -> decode"""
    if detector is None:
        logger.error("Detect request failed: Service unavailable")
        raise HTTPException(status_code=503, detail="Model servisi aktif değil.")

    try:
        contents = file.file.read()
        nparr = np.frombuffer(contents, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except Exception as e:
        logger.error(f"Image decode failed: {e}")
        raise HTTPException(status_code=400, detail="Geçersiz resim dosyası.")
    if img is None:
        raise HTTPException(status_code=400, detail="Geçersiz resim dosyası.")

    try:
        boxes, timings = detector.detect(img)
    except ShapeMismatch as e:
        logger.error(f"Model output shape mismatch: {e}")
        raise HTTPException(status_code=500, detail="Model çıktısı beklenen formatta değil")

    fps_meter.tick(latency_ms=timings['total'])
    logger.info(f"Detection Success: {len(boxes)} objects in {round(timings['total'], 2)}ms")
    return _format(boxes, timings['post_process'], timings['inference'])


@app.get("/metrics", response_model=MetricsResponse)
def get_metrics():
    stats = fps_meter.snapshot()
    return {
        "fps": stats["fps"],
        "latency_p50_ms": stats["p50"],
        "latency_p95_ms": stats["p95"],
        "frames": stats["frames"],
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
