"""
Pipeline stages.

- gate: change detection and heartbeat for the merged track set
"""

from .gate import TrackSetGate, round_half_away

__all__ = ["TrackSetGate", "round_half_away"]
