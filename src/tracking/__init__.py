"""
Tracking module.

Per-class SORT-style trackers built on a constant-velocity Kalman filter.
"""

from .kalman import ConstantVelocityFilter
from .tracker import ClassTracker, Track, TrackerSet

__all__ = ["ConstantVelocityFilter", "ClassTracker", "Track", "TrackerSet"]
