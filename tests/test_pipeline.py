import dataclasses
import itertools

import numpy as np
import pytest
import torch

from conftest import HIGH, LOW
from decoder.nms import calculate_iou
from decoder.pipeline import best_detection, decode, validate_tensor
from decoder.types import Box, DecoderConfig, ShapeMismatch


def test_all_negative_objectness_yields_empty(tensor_factory, labels, config):
    data = tensor_factory({})
    data[4] = LOW
    assert decode(data, labels, config) == []


def test_single_strong_detection(single_strong_tensor, labels, config):
    (box,) = decode(single_strong_tensor, labels, config)

    assert box.as_xyxy() == [270, 270, 370, 370]
    assert box.class_label == "yield"
    assert box.confidence == pytest.approx(1.0, abs=1e-3)
    assert box.detection_timestamp is None


def test_near_duplicate_anchors_collapse(tensor_factory, labels, config):
    data = tensor_factory({
        0: {"cx": 322, "obj": 5.0, "cls": {0: HIGH}},
        1: {"cx": 320, "obj": HIGH, "cls": {0: HIGH}},
    })
    (box,) = decode(data, labels, config)
    assert box.x1 == 270
    assert box.confidence > 0.999


def test_label_index_overflow_is_dropped(tensor_factory, labels, config):
    data = tensor_factory({0: {"cls": {3: HIGH}}}, num_classes=4)
    assert decode(data, labels, config) == []


def test_decode_is_idempotent(random_tensor, labels, config):
    first = decode(random_tensor, labels, config)
    second = decode(random_tensor, labels, config)
    assert first == second
    assert len(first) > 0


@pytest.mark.parametrize("cfg", [
    DecoderConfig(),
    DecoderConfig(confidence_threshold=0.2, iou_threshold=0.3, max_detections=25),
    DecoderConfig(confidence_threshold=0.6, iou_threshold=0.7, max_detections=5),
])
def test_output_properties(random_tensor, labels, cfg):
    out = decode(random_tensor, labels, cfg)

    assert len(out) <= cfg.max_detections
    confs = [b.confidence for b in out]
    assert confs == sorted(confs, reverse=True)

    for box in out:
        assert box.confidence >= cfg.confidence_threshold
        assert 0.0 <= box.confidence <= 1.0
        assert box.class_label in labels
        # w, h >= 10 ile dejenere kutu oluşmaz
        assert 0 <= box.x1 < box.x2 <= cfg.input_size
        assert 0 <= box.y1 < box.y2 <= cfg.input_size

    for a, b in itertools.combinations(out, 2):
        assert calculate_iou(a, b) <= cfg.iou_threshold


def test_batched_and_torch_inputs_match(single_strong_tensor, labels, config):
    expected = decode(single_strong_tensor, labels, config)
    assert decode(single_strong_tensor[None], labels, config) == expected
    assert decode(torch.from_numpy(single_strong_tensor), labels, config) == expected
    assert decode(single_strong_tensor.tolist(), labels, config) == expected


def test_default_config_and_list_labels(single_strong_tensor, labels):
    (box,) = decode(single_strong_tensor, list(labels))
    assert box.class_label == "yield"


@pytest.mark.parametrize("shape", [(8,), (2, 8, 16), (1, 1, 8, 16)])
def test_unusable_shapes_raise(shape, labels, config):
    with pytest.raises(ShapeMismatch):
        decode(np.zeros(shape, dtype=np.float32), labels, config)


def test_ragged_input_raises(labels, config):
    with pytest.raises(ShapeMismatch):
        decode([[1.0, 2.0], [3.0]], labels, config)


def test_empty_label_table_raises(single_strong_tensor, config):
    with pytest.raises(ShapeMismatch):
        decode(single_strong_tensor, [], config)


def test_num_classes_mismatch_raises(single_strong_tensor, labels):
    cfg = DecoderConfig(num_classes=99)
    with pytest.raises(ShapeMismatch):
        validate_tensor(single_strong_tensor, labels, cfg)

    data = validate_tensor(single_strong_tensor, labels, DecoderConfig(num_classes=3))
    assert data.dtype == torch.float64
    assert tuple(data.shape) == (8, 16)


def test_short_rows_are_not_an_error(labels, config):
    data = np.full((5, 16), HIGH, dtype=np.float32)
    assert decode(data, labels, config) == []


def test_max_detections_caps_output(tensor_factory, labels):
    anchors = {i: {"cx": 40 + i * 60, "cy": 40, "w": 40, "h": 40, "obj": 2.0 + i} for i in range(8)}
    data = tensor_factory(anchors)
    out = decode(data, labels, DecoderConfig(max_detections=3))
    assert len(out) == 3
    # en yüksek objectness en sağdaki anchor'larda
    assert [b.x1 for b in out] == [440, 380, 320]


def test_best_detection():
    a = Box(0, 0, 10, 10, "stop", 0.5)
    b = Box(20, 20, 30, 30, "yield", 0.9)
    c = Box(40, 40, 50, 50, "stop", 0.9)
    assert best_detection([a, b, c]) is b
    assert best_detection([]) is None


def test_box_is_immutable():
    box = Box(0, 0, 10, 10, "stop", 0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        box.x1 = 5
    assert box.width == 10 and box.height == 10 and box.area == 100
    assert box.to_dict()["class_label"] == "stop"


@pytest.mark.parametrize("kwargs", [
    {"confidence_threshold": 1.5},
    {"iou_threshold": -0.1},
    {"input_size": 0},
    {"max_detections": -1},
    {"num_classes": 0},
])
def test_invalid_config_raises(kwargs):
    with pytest.raises(ValueError):
        DecoderConfig(**kwargs)
