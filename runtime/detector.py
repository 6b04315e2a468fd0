import cv2
import numpy as np
import time
import dataclasses
import onnxruntime as ort

from decoder.labels import freeze_labels, load_labels
from decoder.pipeline import decode
from decoder.types import DecoderConfig
from monitoring.logger import get_logger

logger = get_logger("Detector")


class DetectorListener:
    """
    Sonuç callback'leri. Varsayılan metotlar hiçbir şey yapmaz.
    """
    def on_empty_detect(self):
        pass

    def on_detect(self, boxes, inference_time_ms):
        pass


class Detector:
    """
    Model çalıştırma + decode. Decoder çekirdeğinin dışında kalan ince katman:
    ONNX Runtime ile inference yapar, ham tensörü decode()'a verir.
    """
    def __init__(self, model_path=None, labels_path=None, labels=None, config=None,
                 listener=None, providers=None, session=None, warmup=True):
        self.model_path = model_path
        self.config = config or DecoderConfig()
        self.listener = listener

        if labels is None:
            if labels_path is None:
                raise ValueError("labels ya da labels_path verilmeli")
            labels = load_labels(labels_path)
        self.labels = freeze_labels(labels)
        logger.info(f"Loaded labels: {len(self.labels)}")

        if session is not None:
            self.session = session
        else:
            if model_path is None:
                raise ValueError("model_path ya da session verilmeli")
            providers = providers or ['CPUExecutionProvider']
            try:
                self.session = ort.InferenceSession(str(model_path), providers=providers)
            except Exception as e:
                raise RuntimeError(f"ONNX modeli yüklenemedi: {e}") from e
            logger.info(f"Model yüklendi: {model_path} | Providers: {providers}")

        self.input_name = self.session.get_inputs()[0].name

        if warmup:
            logger.info("Warmup yapılıyor...")
            size = self.config.input_size
            self.run(self.preprocess(np.zeros((size, size, 3), dtype=np.uint8)))

    def preprocess(self, img):
        # Düz resize (letterbox yok), [0, 1] normalize, HWC -> NCHW
        size = self.config.input_size
        image = cv2.resize(img, (size, size), interpolation=cv2.INTER_LINEAR)
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        image = image.astype(np.float32) / 255.0
        image = image.transpose((2, 0, 1))
        image = np.ascontiguousarray(image)
        return np.expand_dims(image, axis=0)

    def run(self, blob):
        return self.session.run(None, {self.input_name: blob})[0]

    def detect(self, img):
        # 1. Pre-process
        t0 = time.time()
        blob = self.preprocess(img)
        t1 = time.time()

        # 2. Inference
        preds = self.run(blob)
        t2 = time.time()

        # 3. Post-process (decode + NMS)
        boxes = decode(preds, self.labels, self.config)
        stamp = time.time()
        boxes = [dataclasses.replace(b, detection_timestamp=stamp) for b in boxes]
        t3 = time.time()

        timings = {
            'pre_process': (t1 - t0) * 1000,
            'inference': (t2 - t1) * 1000,
            'post_process': (t3 - t2) * 1000,
            'total': (t3 - t0) * 1000
        }

        if self.listener is not None:
            if boxes:
                self.listener.on_detect(boxes, timings['inference'])
            else:
                self.listener.on_empty_detect()

        return boxes, timings

    def __call__(self, img):
        """
        detector(frame) şeklinde çağrılır
        """
        boxes, _ = self.detect(img)
        return boxes


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 4:
        print("Kullanım: python -m runtime.detector <model.onnx> <labels.txt> <image>")
        sys.exit(1)

    det = Detector(sys.argv[1], labels_path=sys.argv[2])
    img = cv2.imread(sys.argv[3])
    if img is None:
        print(f"Resim okunamadı: {sys.argv[3]}")
        sys.exit(1)

    res, t = det.detect(img)
    print(f"Toplam süre: {t['total']:.2f} ms | {len(res)} nesne")
    for box in res:
        print(f"- {box.class_label} {box.confidence:.2f} ({box.x1}, {box.y1}, {box.x2}, {box.y2})")
