"""
Replay source for recorded output tensors.

Each frame is one `.npz` archive holding, per output tensor `<name>`:
- `<name>`: the raw uint8/uint16 array, shape (rows, cols, channels)
- `<name>__qp`: [scale, zero_point]
and optionally `__timestamp`: the capture time of the frame.

Frames are replayed in file name order.
"""

from __future__ import annotations

import glob
import logging
import os
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from models.frame import TensorFrame
from models.tensor import TensorView
from .base import SourceConfig, TensorSource


QP_SUFFIX = "__qp"
TIMESTAMP_KEY = "__timestamp"


@dataclass
class NpzSourceConfig(SourceConfig):
    """
    Configuration for the npz replay source.

    Attributes:
        directory: Directory containing the recorded frames.
        pattern: Glob pattern for frame files.
        loop: Restart from the first file when exhausted.
    """
    directory: str = "recordings"
    pattern: str = "*.npz"
    loop: bool = False


def save_npz_frame(path: str, frame: TensorFrame) -> None:
    """Write a TensorFrame in the replay format."""
    arrays = {}
    for i, tensor in enumerate(frame.tensors):
        name = tensor.name or f"output{i}"
        arrays[name] = np.asarray(tensor.data)
        arrays[name + QP_SUFFIX] = np.array([tensor.scale, tensor.zero_point], dtype=np.float64)
    arrays[TIMESTAMP_KEY] = np.array(frame.timestamp, dtype=np.float64)
    np.savez(path, **arrays)


def load_npz_frame(path: str, frame_index: int = 0, source: Optional[str] = None) -> TensorFrame:
    """
    Read one recorded frame.

    Raises:
        ValueError: If a tensor has no matching quantization entry.
    """
    with np.load(path) as archive:
        keys = list(archive.keys())
        tensors: List[TensorView] = []
        for key in sorted(keys):
            if key.endswith(QP_SUFFIX) or key == TIMESTAMP_KEY:
                continue
            qp_key = key + QP_SUFFIX
            if qp_key not in keys:
                raise ValueError(f"{path}: tensor '{key}' has no '{qp_key}' quantization entry")
            scale, zero_point = (float(v) for v in archive[qp_key])
            tensors.append(TensorView(data=archive[key], scale=scale, zero_point=zero_point, name=key))
        timestamp = float(archive[TIMESTAMP_KEY]) if TIMESTAMP_KEY in keys else time.time()

    return TensorFrame(tensors=tensors, timestamp=timestamp, frame_index=frame_index, source=source)


class NpzTensorSource(TensorSource):
    """Replays recorded frames from a directory of `.npz` archives."""

    def __init__(self, config: NpzSourceConfig):
        super().__init__(config)
        self._files: List[str] = []
        self._pos = 0

    @property
    def files(self) -> List[str]:
        return list(self._files)

    def open(self) -> None:
        directory = self._config.directory
        if not os.path.isdir(directory):
            raise RuntimeError(f"Recording directory not found: {directory}")

        self._files = sorted(glob.glob(os.path.join(directory, self._config.pattern)))
        self._pos = 0
        self._frame_index = 0
        self._is_open = True
        logging.info(f"NpzTensorSource opened: {directory} ({len(self._files)} frames)")

    def read(self) -> Optional[TensorFrame]:
        if not self._is_open or not self._files:
            return None

        if self._pos >= len(self._files):
            if not self._config.loop:
                return None
            self._pos = 0

        path = self._files[self._pos]
        self._pos += 1
        self._frame_index += 1
        return load_npz_frame(path, frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self._is_open = False
