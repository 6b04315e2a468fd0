import os
import sys

import numpy as np
import pytest

# Proje ana dizinini ekle
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decoder.types import DecoderConfig

LOW = -10.0
HIGH = 10.0


def make_tensor(anchors, num_classes=3, num_anchors=16):
    """
    Sentetik [5 + num_classes, num_anchors] tensör.
    Tüm logitler -10 (tespit yok); anchors: {index: dict(cx, cy, w, h, obj, cls={idx: logit})}
    """
    data = np.full((5 + num_classes, num_anchors), LOW, dtype=np.float32)
    data[0:4] = 0.0
    for i, anchor in anchors.items():
        data[0, i] = anchor.get("cx", 320.0)
        data[1, i] = anchor.get("cy", 320.0)
        data[2, i] = anchor.get("w", 100.0)
        data[3, i] = anchor.get("h", 100.0)
        data[4, i] = anchor.get("obj", HIGH)
        for cls_idx, logit in anchor.get("cls", {0: HIGH}).items():
            data[5 + cls_idx, i] = logit
    return data


@pytest.fixture
def labels():
    return ("stop", "yield", "speed_limit")


@pytest.fixture
def config():
    return DecoderConfig()


@pytest.fixture
def tensor_factory():
    return make_tensor


@pytest.fixture
def single_strong_tensor():
    return make_tensor({7: {"cx": 320, "cy": 320, "w": 100, "h": 100, "obj": HIGH, "cls": {1: HIGH}}})


@pytest.fixture
def random_tensor():
    rng = np.random.default_rng(0)
    num_classes, num_anchors = 3, 600
    data = np.empty((5 + num_classes, num_anchors), dtype=np.float32)
    data[0] = rng.uniform(0, 640, num_anchors)
    data[1] = rng.uniform(0, 640, num_anchors)
    data[2] = rng.uniform(10, 200, num_anchors)
    data[3] = rng.uniform(10, 200, num_anchors)
    data[4:] = rng.normal(0, 3, (1 + num_classes, num_anchors))
    return data
