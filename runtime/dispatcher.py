import queue
import threading
import time

from monitoring.fps_meter import FPSMeter
from monitoring.logger import get_logger

logger = get_logger("Dispatcher")


class FrameDispatcher:
    """
    Tek worker thread: her kare için bir inference + decode.
    Kuyruk boyutu 1; yeni kare gelince bekleyen eski kare atılır (keep-only-latest).
    Sonuçları ya detector'ın kendi listener'ı ya da buradaki listener alır, ikisi birden değil.
    """
    def __init__(self, detector, listener=None, poll_timeout=0.1):
        # Detector kendi listener'ını çağırıyorsa ikinci bir listener her kareyi iki kez raporlar
        if listener is not None and getattr(detector, "listener", None) is not None:
            raise ValueError("listener ya detector'a ya da dispatcher'a verilmeli, ikisine birden değil")
        self.detector = detector
        self.listener = listener
        self.poll_timeout = poll_timeout

        self.input_queue = queue.Queue(maxsize=1)
        self.fps_meter = FPSMeter(buffer_len=30)
        self.dropped_frames = 0
        self.processed_frames = 0

        self._stopped = threading.Event()
        self._thread = None
        self._lock = threading.Lock()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            if self._stopped.is_set():
                logger.warning("Önceki decode worker hâlâ kapanıyor, yeni worker başlatılmadı")
            return self
        self._stopped.clear()
        self._thread = threading.Thread(target=self._worker, name="decode-worker", daemon=True)
        self._thread.start()
        logger.info("Decode worker başladı")
        return self

    def stop(self, timeout=2.0):
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                # Worker hâlâ detect içinde; referans korunur, start() yeni worker açmaz
                logger.warning(f"Decode worker {timeout}s içinde durmadı, mevcut kare bitince çıkacak")
                return
            self._thread = None
        logger.info(f"Decode worker durdu. İşlenen: {self.processed_frames}, atılan: {self.dropped_frames}")

    def submit(self, frame):
        """
        Kareyi kuyruğa koyar. Bekleyen bayat kare varsa onun yerine geçer.
        Returns: bir kare atıldıysa True
        """
        dropped = False
        with self._lock:
            if self.input_queue.full():
                try:
                    self.input_queue.get_nowait()
                    dropped = True
                except queue.Empty:
                    pass
            self.input_queue.put_nowait(frame)
            if dropped:
                self.dropped_frames += 1
        return dropped

    def stats(self):
        stats = self.fps_meter.snapshot()
        stats["dropped"] = self.dropped_frames
        stats["processed"] = self.processed_frames
        return stats

    def _worker(self):
        while not self._stopped.is_set():
            try:
                frame = self.input_queue.get(timeout=self.poll_timeout)
            except queue.Empty:
                continue

            t0 = time.time()
            try:
                boxes, timings = self.detector.detect(frame)
            except Exception:
                # Tek bir bozuk kare worker'ı durdurmamalı
                logger.exception("Frame decode failed")
                continue

            self.processed_frames += 1
            self.fps_meter.tick(latency_ms=timings.get('total', (time.time() - t0) * 1000))

            if self.listener is None:
                continue
            if boxes:
                self.listener.on_detect(boxes, timings.get('inference', 0.0))
            else:
                self.listener.on_empty_detect()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
