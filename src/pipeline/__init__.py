"""
Pipeline module for the decode and tracking core.

The pipeline orchestrates the full per-frame flow:
- Anchor decode and thresholding (DetectionAssembler)
- Duplicate suppression (SuppressionEngine)
- Per-class tracking (TrackerSet)
- Emission gating (TrackSetGate)
"""

from .engine import PipelineEngine, PipelineConfig, PipelineStats, FrameResult
from .stages.gate import TrackSetGate, round_half_away

__all__ = [
    "PipelineEngine",
    "PipelineConfig",
    "PipelineStats",
    "FrameResult",
    "TrackSetGate",
    "round_half_away",
]
