"""
YOLOv7 output layer decode.

The formulas here are the decode contract of the compiled YOLOv7 head and
must not be "simplified":

    x = (v0 * 2 - 0.5 + col) / grid_width
    y = (v1 * 2 - 0.5 + row) / grid_height
    w = (2 * v2) ** 2 * anchor_w / image_width
    h = (2 * v3) ** 2 * anchor_h / image_height
"""

from __future__ import annotations

from typing import Tuple

from .base import NUM_CENTERS, OutputLayer


class Yolov7OutputLayer(OutputLayer):
    """Anchor-based YOLOv7 head (3 anchors per scale, objectness + class scores)."""

    def class_conf(self, row: int, col: int, channel: int) -> float:
        return self.activate(self.tensor.dequantize(row, col, channel))

    def center(self, row: int, col: int, anchor: int) -> Tuple[float, float]:
        v0 = self.value(row, col, anchor, 0)
        v1 = self.value(row, col, anchor, 1)
        x = (v0 * 2.0 - 0.5 + col) / self.width
        y = (v1 * 2.0 - 0.5 + row) / self.height
        return x, y

    def shape(
        self, row: int, col: int, anchor: int, image_width: int, image_height: int
    ) -> Tuple[float, float]:
        v2 = self.value(row, col, anchor, NUM_CENTERS)
        v3 = self.value(row, col, anchor, NUM_CENTERS + 1)
        w = (2.0 * v2) ** 2 * self.anchors[anchor * 2] / image_width
        h = (2.0 * v3) ** 2 * self.anchors[anchor * 2 + 1] / image_height
        return w, h
