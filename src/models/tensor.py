"""
TensorView model for quantized network output tensors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


# Grid cell size of the coarsest output scale, in input pixels.
STRIDE = 32

_SUPPORTED_DTYPES = (np.uint8, np.uint16)


@dataclass(frozen=True, eq=False)
class TensorView:
    """
    Read-only view of one quantized output tensor.

    Attributes:
        data: Raw quantized values, shape (rows, cols, channels), uint8 or uint16.
        scale: Dequantization scale.
        zero_point: Dequantization zero point.
        name: Output stream name, if known.
    """
    data: np.ndarray
    scale: float
    zero_point: float
    name: Optional[str] = None
    _dequantized: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        data = np.asarray(self.data)
        if data.ndim != 3:
            raise ValueError(f"Tensor must be 3-D (rows, cols, channels), got shape {data.shape}")
        if data.dtype.type not in _SUPPORTED_DTYPES:
            raise ValueError(f"Tensor dtype must be uint8 or uint16, got {data.dtype}")
        data = data.view()
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def features(self) -> int:
        return int(self.data.shape[2])

    @property
    def size(self) -> int:
        """Total element count."""
        return int(self.data.size)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, self.features)

    @property
    def is_uint16(self) -> bool:
        return self.data.dtype == np.uint16

    def get(self, row: int, col: int, channel: int) -> int:
        """Raw quantized value."""
        return int(self.data[row, col, channel])

    def dequantize(self, row: int, col: int, channel: int) -> float:
        """Dequantized value: (raw - zero_point) * scale."""
        return (float(self.data[row, col, channel]) - self.zero_point) * self.scale

    def dequantized(self) -> np.ndarray:
        """Dequantize the whole tensor (float64, cached)."""
        if self._dequantized is None:
            values = (self.data.astype(np.float64) - self.zero_point) * self.scale
            values.setflags(write=False)
            object.__setattr__(self, "_dequantized", values)
        return self._dequantized

    @classmethod
    def from_float(
        cls,
        values: np.ndarray,
        scale: float,
        zero_point: float,
        dtype=np.uint8,
        name: Optional[str] = None,
    ) -> "TensorView":
        """
        Quantize float values into a TensorView (rounding to nearest step).

        Useful for recordings and tests; values outside the dtype range saturate.
        """
        info = np.iinfo(dtype)
        raw = np.clip(np.rint(np.asarray(values, dtype=np.float64) / scale + zero_point), info.min, info.max)
        return cls(data=raw.astype(dtype), scale=scale, zero_point=zero_point, name=name)
