"""
Output layer interface for anchor-based detector heads.

Each supported model architecture provides one OutputLayer implementation.
An OutputLayer wraps a single output tensor (one detection scale) and exposes
the primitive decode operations the DetectionAssembler drives:
- confidence(row, col, anchor)
- class_(row, col, anchor)
- center(row, col, anchor)
- shape(row, col, anchor, image_width, image_height)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Tuple

import numpy as np
from scipy.special import expit

from models.errors import ConfigurationError
from models.tensor import TensorView


NUM_ANCHORS = 3
NUM_CENTERS = 2
NUM_SCALES = 2
NUM_CONF = 1
CONF_CHANNEL_OFFSET = NUM_CENTERS + NUM_SCALES
CLASS_CHANNEL_OFFSET = CONF_CHANNEL_OFFSET + NUM_CONF


def sigmoid(x):
    """Logistic function, stable for any finite input (scalar or array)."""
    return expit(x)


def num_classes_for(features: int) -> int:
    """Number of class channels per anchor for a tensor with `features` channels."""
    if features % NUM_ANCHORS != 0:
        raise ConfigurationError(
            f"Output tensor channel count {features} is not a multiple of {NUM_ANCHORS} anchors"
        )
    return features // NUM_ANCHORS - CLASS_CHANNEL_OFFSET


class OutputLayer(ABC):
    """
    One detection scale of an anchor-based detector.

    Channel layout per anchor block (block size = features / 3):
        [x, y, w, h, objectness, class_1 .. class_N]
    """

    def __init__(
        self,
        tensor: TensorView,
        anchors: Sequence[int],
        perform_sigmoid: bool = False,
        label_offset: int = 1,
    ):
        """
        Args:
            tensor: Quantized output tensor for this scale.
            anchors: Flat (w0, h0, w1, h1, w2, h2) anchor sizes in input pixels.
            perform_sigmoid: Apply the logistic function to confidences.
            label_offset: First class id considered by the argmax.
        """
        if len(anchors) != 2 * NUM_ANCHORS:
            raise ConfigurationError(
                f"Expected {NUM_ANCHORS} anchor pairs per scale, got {len(anchors)} values"
            )
        num_classes = num_classes_for(tensor.features)
        if num_classes < 1:
            raise ConfigurationError(
                f"Output tensor with {tensor.features} channels has no class channels"
            )
        if not (1 <= label_offset <= num_classes):
            raise ConfigurationError(
                f"label_offset {label_offset} outside the tensor's class range 1..{num_classes}"
            )

        self.tensor = tensor
        self.anchors = [int(a) for a in anchors]
        self.perform_sigmoid = perform_sigmoid
        self.label_offset = label_offset
        self.num_classes = num_classes
        self._block = tensor.features // NUM_ANCHORS

    @property
    def width(self) -> int:
        """Grid width (columns)."""
        return self.tensor.width

    @property
    def height(self) -> int:
        """Grid height (rows)."""
        return self.tensor.height

    def channel(self, anchor: int, offset: int) -> int:
        return self._block * anchor + offset

    def value(self, row: int, col: int, anchor: int, offset: int) -> float:
        """Dequantized value of one channel of one anchor block."""
        return self.tensor.dequantize(row, col, self.channel(anchor, offset))

    def activate(self, value: float) -> float:
        return float(sigmoid(value)) if self.perform_sigmoid else value

    def confidence(self, row: int, col: int, anchor: int) -> float:
        """Objectness of the box predicted at (row, col, anchor)."""
        return self.activate(self.value(row, col, anchor, CONF_CHANNEL_OFFSET))

    def confidence_map(self) -> np.ndarray:
        """
        Objectness for every cell and anchor, shape (rows, cols, 3).

        Same formula as confidence(); used to find candidate cells quickly.
        """
        values = self.tensor.dequantized()
        channels = [self.channel(a, CONF_CHANNEL_OFFSET) for a in range(NUM_ANCHORS)]
        conf = values[:, :, channels]
        return sigmoid(conf) if self.perform_sigmoid else conf

    def class_(self, row: int, col: int, anchor: int) -> Tuple[int, float]:
        """
        Most probable class at (row, col, anchor).

        Scans class ids label_offset..num_classes; ties go to the lowest id.

        Returns:
            (class_id, class_confidence)
        """
        # class id k lives at CLASS_CHANNEL_OFFSET + k - 1
        start = self.channel(anchor, CLASS_CHANNEL_OFFSET + self.label_offset - 1)
        stop = self.channel(anchor, CLASS_CHANNEL_OFFSET + self.num_classes)
        raw = self.tensor.data[row, col, start:stop]
        best = int(np.argmax(raw))
        class_id = self.label_offset + best
        return class_id, self.class_conf(row, col, start + best)

    @abstractmethod
    def class_conf(self, row: int, col: int, channel: int) -> float:
        """Confidence of the class stored in `channel`."""

    @abstractmethod
    def center(self, row: int, col: int, anchor: int) -> Tuple[float, float]:
        """Normalized (x, y) center of the predicted box."""

    @abstractmethod
    def shape(
        self, row: int, col: int, anchor: int, image_width: int, image_height: int
    ) -> Tuple[float, float]:
        """Normalized (w, h) of the predicted box."""
