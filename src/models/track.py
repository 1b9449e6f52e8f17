"""
Track models for object tracking state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .detection import BoundingBox


class TrackState(str, Enum):
    """Lifecycle of a track. Deleted is terminal."""
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


@dataclass(frozen=True)
class TrackSnapshot:
    """
    Immutable snapshot of a reported track (for gating/serialization).

    Attributes:
        track_id: Identifier, unique within its tracker.
        class_id: Class the track belongs to.
        label: Human-readable class name.
        bbox: Filtered bounding box, normalized to the frame.
        confidence: Confidence of the last matched detection.
        hits: Number of detections associated so far.
        age: Frames since the track was born.
    """
    track_id: int
    class_id: int
    label: str
    bbox: BoundingBox
    confidence: float = 1.0
    hits: int = 1
    age: int = 0

    @property
    def center(self):
        return self.bbox.center
