"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .labels import COCO_LABELS, YOLOV7_ANCHORS
from .errors import ConfigurationError


OUTPUT_ACTIVATIONS = ("none", "sigmoid")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LabelSpec = Union[Dict[Any, str], List[str]]


def _parse_labels(raw: Optional[LabelSpec]) -> Dict[int, str]:
    """Accept a {class_id: name} mapping or a list indexed by class id."""
    if raw is None:
        return dict(COCO_LABELS)
    if isinstance(raw, list):
        return {i: str(name) for i, name in enumerate(raw)}
    if isinstance(raw, dict):
        try:
            return {int(k): str(v) for k, v in raw.items()}
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"decoder.labels keys must be integer class ids: {e}") from e
    raise ConfigurationError("decoder.labels must be a mapping or a list")


@dataclass
class DecoderConfig:
    """Anchor decoding, thresholding and suppression configuration."""
    architecture: str = "yolov7"
    detection_threshold: float = 0.3
    iou_threshold: float = 0.45
    max_boxes: int = 200
    output_activation: str = "none"
    label_offset: int = 1
    anchors: List[List[int]] = field(default_factory=lambda: [list(a) for a in YOLOV7_ANCHORS])
    labels: Dict[int, str] = field(default_factory=lambda: dict(COCO_LABELS))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DecoderConfig":
        return cls(
            architecture=d.get("architecture", "yolov7"),
            detection_threshold=d.get("detection_threshold", 0.3),
            iou_threshold=d.get("iou_threshold", 0.45),
            max_boxes=d.get("max_boxes", 200),
            output_activation=d.get("output_activation", "none"),
            label_offset=d.get("label_offset", 1),
            anchors=d.get("anchors") or [list(a) for a in YOLOV7_ANCHORS],
            labels=_parse_labels(d.get("labels")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "architecture": self.architecture,
            "detection_threshold": self.detection_threshold,
            "iou_threshold": self.iou_threshold,
            "max_boxes": self.max_boxes,
            "output_activation": self.output_activation,
            "label_offset": self.label_offset,
            "anchors": [list(a) for a in self.anchors],
            "labels": dict(self.labels),
        }

    @property
    def perform_sigmoid(self) -> bool:
        return self.output_activation == "sigmoid"

    def validate(self) -> None:
        """Raise ConfigurationError on the first invalid value."""
        if not isinstance(self.detection_threshold, (int, float)) or not (0.0 < self.detection_threshold <= 1.0):
            raise ConfigurationError("decoder.detection_threshold must be in (0, 1]")
        if not isinstance(self.iou_threshold, (int, float)) or not (0.0 <= self.iou_threshold <= 1.0):
            raise ConfigurationError("decoder.iou_threshold must be in [0, 1]")
        if not isinstance(self.max_boxes, int) or isinstance(self.max_boxes, bool) or self.max_boxes <= 0:
            raise ConfigurationError("decoder.max_boxes must be a positive integer")
        if self.output_activation not in OUTPUT_ACTIVATIONS:
            raise ConfigurationError(
                f"decoder.output_activation must be one of: {', '.join(OUTPUT_ACTIVATIONS)}"
            )
        if not isinstance(self.label_offset, int) or isinstance(self.label_offset, bool):
            raise ConfigurationError("decoder.label_offset must be an integer")
        if not self.labels:
            raise ConfigurationError("decoder.labels must not be empty")
        if not isinstance(self.anchors, list) or not self.anchors:
            raise ConfigurationError("decoder.anchors must be a non-empty list of per-scale anchor lists")
        for i, scale_anchors in enumerate(self.anchors):
            if not isinstance(scale_anchors, (list, tuple)) or len(scale_anchors) != 6:
                raise ConfigurationError(
                    f"decoder.anchors[{i}] must hold exactly 3 (width, height) pairs (6 values)"
                )
            if not all(isinstance(v, int) and v > 0 for v in scale_anchors):
                raise ConfigurationError(f"decoder.anchors[{i}] values must be positive integers")


@dataclass
class TrackingConfig:
    """Per-class tracker configuration."""
    max_age: int = 30
    min_hits: int = 5
    iou_threshold: float = 0.3
    dt: float = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            max_age=d.get("max_age", 30),
            min_hits=d.get("min_hits", 5),
            iou_threshold=d.get("iou_threshold", 0.3),
            dt=d.get("dt", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_age": self.max_age,
            "min_hits": self.min_hits,
            "iou_threshold": self.iou_threshold,
            "dt": self.dt,
        }

    def validate(self) -> None:
        if not isinstance(self.max_age, int) or isinstance(self.max_age, bool) or self.max_age < 0:
            raise ConfigurationError("tracking.max_age must be a non-negative integer")
        if not isinstance(self.min_hits, int) or isinstance(self.min_hits, bool) or self.min_hits < 1:
            raise ConfigurationError("tracking.min_hits must be an integer >= 1")
        if not isinstance(self.iou_threshold, (int, float)) or not (0.0 <= self.iou_threshold <= 1.0):
            raise ConfigurationError("tracking.iou_threshold must be in [0, 1]")
        if not isinstance(self.dt, (int, float)) or not math.isfinite(self.dt) or self.dt <= 0:
            raise ConfigurationError("tracking.dt must be a positive number")


@dataclass
class GateConfig:
    """Track set emission gate configuration."""
    heartbeat_frames: int = 30
    decimals: int = 3
    detect_key: str = "detections"
    amount_key: str = "amount"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GateConfig":
        return cls(
            heartbeat_frames=d.get("heartbeat_frames", 30),
            decimals=d.get("decimals", 3),
            detect_key=d.get("detect_key", "detections"),
            amount_key=d.get("amount_key", "amount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heartbeat_frames": self.heartbeat_frames,
            "decimals": self.decimals,
            "detect_key": self.detect_key,
            "amount_key": self.amount_key,
        }

    def validate(self) -> None:
        if not isinstance(self.heartbeat_frames, int) or isinstance(self.heartbeat_frames, bool) or self.heartbeat_frames < 1:
            raise ConfigurationError("gate.heartbeat_frames must be a positive integer")
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool) or self.decimals < 0:
            raise ConfigurationError("gate.decimals must be a non-negative integer")
        if not self.detect_key or not self.amount_key:
            raise ConfigurationError("gate.detect_key and gate.amount_key must be non-empty")


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    log_path: str = "logs/anchortrack.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            decoder=DecoderConfig.from_dict(d.get("decoder") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            gate=GateConfig.from_dict(d.get("gate") or {}),
            log_path=d.get("log_path", "logs/anchortrack.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "decoder": self.decoder.to_dict(),
            "tracking": self.tracking.to_dict(),
            "gate": self.gate.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }

    def validate(self) -> None:
        """Validate every section; raises ConfigurationError."""
        self.decoder.validate()
        self.tracking.validate()
        self.gate.validate()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
