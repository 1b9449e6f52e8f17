"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import Config, DecoderConfig, TrackingConfig  # noqa: E402
from models.tensor import TensorView  # noqa: E402


# Quantization step: 0.25, 0.5, 0.75, 0.9 and 0.95 are all whole steps
TEST_SCALE = 0.05

TEST_ANCHORS = [[16, 16, 32, 32, 64, 64], [8, 8, 16, 16, 24, 24], [4, 4, 6, 6, 8, 8]]


def _build_tensor(
    rows,
    cols,
    num_classes,
    cells=None,
    scale=TEST_SCALE,
    zero_point=0,
    dtype=np.uint8,
    name=None,
):
    """
    Build a quantized output tensor from per-cell float values.

    cells maps (row, col, anchor) to a dict with:
        xywh: raw (v0, v1, v2, v3) box channels (default (0.25, 0.25, 0.25, 0.25))
        obj: objectness value
        classes: {class_id: class confidence}
    Every other channel is zero.
    """
    block = 5 + num_classes
    values = np.zeros((rows, cols, 3 * block), dtype=np.float64)
    for (r, c, a), cell in (cells or {}).items():
        base = a * block
        values[r, c, base:base + 4] = cell.get("xywh", (0.25, 0.25, 0.25, 0.25))
        values[r, c, base + 4] = cell["obj"]
        for class_id, conf in cell.get("classes", {}).items():
            values[r, c, base + 5 + class_id - 1] = conf
    return TensorView.from_float(values, scale, zero_point, dtype=dtype, name=name)


@pytest.fixture
def tensor_builder():
    """Factory for quantized output tensors (see _build_tensor)."""
    return _build_tensor


@pytest.fixture
def person_labels():
    """Single-class label map with the background entry."""
    return {0: "unlabeled", 1: "person"}


@pytest.fixture
def street_labels():
    """Two-class label map with the background entry."""
    return {0: "unlabeled", 1: "person", 2: "car"}


@pytest.fixture
def decoder_config(person_labels):
    """Decoder configuration for single-class test tensors."""
    return DecoderConfig(labels=person_labels, anchors=[list(a) for a in TEST_ANCHORS])


@pytest.fixture
def app_config(decoder_config):
    """Full configuration for pipeline tests."""
    return Config(
        decoder=decoder_config,
        tracking=TrackingConfig(max_age=30, min_hits=5),
        log_path="logs/test.log",
    )


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
decoder:
  architecture: "yolov7"
  detection_threshold: 0.3
  iou_threshold: 0.45
  max_boxes: 200
  output_activation: "none"
  label_offset: 1

tracking:
  max_age: 30
  min_hits: 5
  iou_threshold: 0.3

gate:
  heartbeat_frames: 30

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "decoder": {
            "architecture": "yolov7",
            "detection_threshold": 0.3,
            "iou_threshold": 0.45,
            "max_boxes": 200,
            "output_activation": "none",
            "label_offset": 1,
            "labels": {0: "unlabeled", 1: "person"},
        },
        "tracking": {
            "max_age": 30,
            "min_hits": 5,
            "iou_threshold": 0.3,
        },
        "gate": {
            "heartbeat_frames": 30,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
