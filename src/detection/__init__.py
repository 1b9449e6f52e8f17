"""
Detection module: raw detection assembly and duplicate suppression.
"""

from .assembler import DetectionAssembler
from .nms import SuppressionEngine

__all__ = ["DetectionAssembler", "SuppressionEngine"]
