import time
import threading
import collections
import numpy as np


class FPSMeter:
    def __init__(self, buffer_len=30, latency_len=100):
        """
        buffer_len: FPS ortalaması için son kaç kare
        latency_len: Latency yüzdelikleri için son kaç ölçüm
        """
        self.frame_times = collections.deque(maxlen=buffer_len)
        self.latencies = collections.deque(maxlen=latency_len)
        self.count = 0
        self._lock = threading.Lock()

    def tick(self, latency_ms=None, now=None):
        """
        Bir kare işlendi. latency_ms verilirse latency buffer'ına eklenir.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            self.frame_times.append(now)
            self.count += 1
            if latency_ms is not None:
                self.latencies.append(float(latency_ms))

    def get_fps(self):
        """Son karelerin zaman aralığından ortalama FPS"""
        with self._lock:
            if len(self.frame_times) < 2:
                return 0.0
            span = self.frame_times[-1] - self.frame_times[0]
            frames = len(self.frame_times) - 1
        return frames / span if span > 0 else 0.0

    def get_latency_stats(self):
        with self._lock:
            if not self.latencies:
                return {"p50": 0.0, "p90": 0.0, "p95": 0.0}
            arr = np.array(self.latencies)

        return {
            "p50": round(float(np.percentile(arr, 50)), 2),
            "p90": round(float(np.percentile(arr, 90)), 2),
            "p95": round(float(np.percentile(arr, 95)), 2)
        }

    def snapshot(self):
        stats = self.get_latency_stats()
        stats["fps"] = round(self.get_fps(), 2)
        stats["frames"] = self.count
        return stats
