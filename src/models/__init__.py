"""
Typed models for the decode and tracking core.

Plain dataclasses for internal state; pydantic models for what leaves the
process.
"""

from .errors import ConfigurationError, ValueDomainError
from .detection import BoundingBox, Detection, iou, iou_matrix
from .tensor import TensorView, STRIDE
from .frame import TensorFrame
from .track import TrackSnapshot, TrackState
from .message import TrackRecord, TrackSetMessage
from .labels import COCO_LABELS, YOLOV7_ANCHORS
from .config import (
    Config,
    DecoderConfig,
    TrackingConfig,
    GateConfig,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "ValueDomainError",
    # Detection
    "BoundingBox",
    "Detection",
    "iou",
    "iou_matrix",
    # Tensors
    "TensorView",
    "TensorFrame",
    "STRIDE",
    # Tracking
    "TrackSnapshot",
    "TrackState",
    # Output
    "TrackRecord",
    "TrackSetMessage",
    # Config
    "Config",
    "DecoderConfig",
    "TrackingConfig",
    "GateConfig",
    "COCO_LABELS",
    "YOLOV7_ANCHORS",
]
