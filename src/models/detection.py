"""
Detection models for decoded object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .errors import ValueDomainError


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box normalized to the frame (0-1).

    Attributes:
        xmin: Left edge.
        ymin: Top edge.
        width: Box width (>= 0).
        height: Box height (>= 0).
    """
    xmin: float
    ymin: float
    width: float
    height: float

    def __post_init__(self):
        if not (self.width >= 0 and self.height >= 0):
            raise ValueDomainError(
                f"Bounding box size must be non-negative, got width={self.width} height={self.height}"
            )

    @property
    def xmax(self) -> float:
        return self.xmin + self.width

    @property
    def ymax(self) -> float:
        return self.ymin + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.xmin + self.width / 2, self.ymin + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (xmin, ymin, width, height) tuple."""
        return (self.xmin, self.ymin, self.width, self.height)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        """Return as (xmin, ymin, xmax, ymax) tuple."""
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    def as_center(self) -> Tuple[float, float, float, float]:
        """Return as (center_x, center_y, width, height) tuple."""
        cx, cy = self.center
        return (cx, cy, self.width, self.height)

    def clipped(self) -> "BoundingBox":
        """
        Pin the top-left corner inside the frame and cap the size at one frame.

        Only the corner and the size are touched; a box hanging off the
        right or bottom edge keeps its overhang.
        """
        return BoundingBox(
            xmin=max(self.xmin, 0.0),
            ymin=max(self.ymin, 0.0),
            width=min(self.width, 1.0),
            height=min(self.height, 1.0),
        )

    @classmethod
    def from_center(cls, cx: float, cy: float, w: float, h: float) -> "BoundingBox":
        """Create from (center_x, center_y, width, height) format."""
        return cls(xmin=cx - w / 2, ymin=cy - h / 2, width=w, height=h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from (xmin, ymin, xmax, ymax) corners."""
        return cls(xmin=x1, ymin=y1, width=x2 - x1, height=y2 - y1)


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two bounding boxes.

    Returns:
        IoU value between 0 and 1
    """
    x1_i = max(a.xmin, b.xmin)
    y1_i = max(a.ymin, b.ymin)
    x2_i = min(a.xmax, b.xmax)
    y2_i = min(a.ymax, b.ymax)

    if x2_i <= x1_i or y2_i <= y1_i:
        return 0.0

    intersection = (x2_i - x1_i) * (y2_i - y1_i)
    union = a.area + b.area - intersection

    if union <= 0:
        return 0.0

    return intersection / union


def iou_matrix(boxes_a: List[BoundingBox], boxes_b: List[BoundingBox]) -> np.ndarray:
    """
    Pairwise IoU between two lists of boxes.

    Returns:
        Array of shape (len(boxes_a), len(boxes_b)).
    """
    if not boxes_a or not boxes_b:
        return np.zeros((len(boxes_a), len(boxes_b)), dtype=float)

    a = np.array([box.as_xyxy() for box in boxes_a], dtype=float)
    b = np.array([box.as_xyxy() for box in boxes_b], dtype=float)

    xx1 = np.maximum(a[:, None, 0], b[None, :, 0])
    yy1 = np.maximum(a[:, None, 1], b[None, :, 1])
    xx2 = np.minimum(a[:, None, 2], b[None, :, 2])
    yy2 = np.minimum(a[:, None, 3], b[None, :, 3])

    inter = np.clip(xx2 - xx1, 0.0, None) * np.clip(yy2 - yy1, 0.0, None)
    area_a = (a[:, 2] - a[:, 0]) * (a[:, 3] - a[:, 1])
    area_b = (b[:, 2] - b[:, 0]) * (b[:, 3] - b[:, 1])
    union = area_a[:, None] + area_b[None, :] - inter

    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where(union > 0, inter / union, 0.0)
    return result


@dataclass(frozen=True)
class Detection:
    """
    A single decoded detection.

    Attributes:
        bbox: Bounding box, normalized to the frame.
        class_id: Class ID from the decoder.
        label: Human-readable class name.
        confidence: Detection confidence score (0-1). Validated, never clamped.
    """
    bbox: BoundingBox
    class_id: int
    label: str
    confidence: float

    def __post_init__(self):
        # NaN fails both comparisons
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueDomainError(
                f"Detection confidence must be within [0, 1], got {self.confidence}"
            )

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    def with_bbox(self, bbox: BoundingBox) -> "Detection":
        """Return a copy with a different bounding box."""
        return Detection(bbox=bbox, class_id=self.class_id, label=self.label, confidence=self.confidence)

    def to_numpy(self) -> np.ndarray:
        """Convert to numpy array [xmin, ymin, width, height, confidence, class_id]."""
        return np.array([
            self.bbox.xmin, self.bbox.ymin, self.bbox.width, self.bbox.height,
            self.confidence,
            self.class_id,
        ])


def detections_to_numpy(detections: List[Detection]) -> np.ndarray:
    """
    Convert list of Detection objects to numpy array.

    Returns:
        Array of shape (N, 6) with [xmin, ymin, width, height, confidence, class_id].
    """
    if not detections:
        return np.zeros((0, 6))
    return np.array([d.to_numpy() for d in detections])

