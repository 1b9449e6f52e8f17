"""
Observation layer for pluggable tensor sources.

This layer abstracts where a frame's output tensors come from (a recording
on disk, a live accelerator stream) from the processing pipeline. Each
source implements the TensorSource interface and returns TensorFrame objects.
"""

from .base import TensorSource, SourceConfig
from .npz_source import NpzTensorSource, NpzSourceConfig, load_npz_frame, save_npz_frame

__all__ = [
    "TensorSource",
    "SourceConfig",
    "NpzTensorSource",
    "NpzSourceConfig",
    "load_npz_frame",
    "save_npz_frame",
]
