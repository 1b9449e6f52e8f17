"""
Detection assembly from decoded output layers.

Drives the per-cell decode primitives of every output layer, applies the
detection threshold twice (objectness, then objectness * class confidence)
and emits Detections in top-left box form.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from inference import OutputLayer, create_output_layers
from models.config import DecoderConfig
from models.detection import BoundingBox, Detection
from models.errors import ConfigurationError, ValueDomainError
from models.tensor import STRIDE, TensorView


class DetectionAssembler:
    """
    Turns one frame's output tensors into raw (unsuppressed) detections.

    Example:
        assembler = DetectionAssembler(config.decoder)
        detections = assembler.decode(frame.tensors)
    """

    def __init__(self, config: DecoderConfig):
        self._config = config
        self._labels = dict(config.labels)
        logging.info(
            f"DetectionAssembler initialized: architecture={config.architecture} "
            f"threshold={config.detection_threshold} classes={len(self._labels) - 1}"
        )

    @property
    def config(self) -> DecoderConfig:
        return self._config

    def build_layers(self, tensors: Sequence[TensorView]) -> List[OutputLayer]:
        """Size-sort tensors, bind anchors and verify the class layout."""
        layers = create_output_layers(
            self._config.architecture,
            tensors,
            self._config.anchors,
            perform_sigmoid=self._config.perform_sigmoid,
            label_offset=self._config.label_offset,
        )
        for layer in layers:
            self.check_params(layer.num_classes)
        return layers

    def check_params(self, num_classes: int) -> None:
        """
        Verify the label map matches a tensor's class channel count.

        The label map carries one extra (background) entry.

        Raises:
            ConfigurationError: On mismatch.
        """
        expected = len(self._labels) - 1
        if expected != num_classes:
            raise ConfigurationError(
                f"config class labels do not match output tensors! "
                f"config labels size: {expected} tensors num classes: {num_classes}"
            )

    def preflight(self, tensors: Sequence[TensorView]) -> None:
        """Validate tensor layout against the configuration without decoding."""
        self.build_layers(tensors)

    def decode(self, tensors: Sequence[TensorView]) -> List[Detection]:
        """
        Decode all cells/anchors of all tensors.

        Returns:
            Detections in layer, row, column, anchor order. Empty if no tensors.

        Raises:
            ConfigurationError: Tensor layout does not match configuration.
            ValueDomainError: A decoded confidence or box is out of domain.
        """
        if not tensors:
            return []

        layers = self.build_layers(tensors)

        # Coarsest grid (first after the size sort) has stride 32
        image_width = layers[0].width * STRIDE
        image_height = layers[0].height * STRIDE

        detections: List[Detection] = []
        for layer in layers:
            self._extract_boxes(layer, image_width, image_height, detections)

        logging.debug(f"Decoded {len(detections)} detections from {len(layers)} layers")
        return detections

    def _extract_boxes(
        self,
        layer: OutputLayer,
        image_width: int,
        image_height: int,
        out: List[Detection],
    ) -> None:
        threshold = self._config.detection_threshold

        # Negated test keeps NaN cells so they reach the domain check
        candidates = np.argwhere(~(layer.confidence_map() < threshold))

        for row, col, anchor in candidates:
            row, col, anchor = int(row), int(col), int(anchor)

            confidence = _assure_normal(layer.confidence(row, col, anchor), "objectness", row, col, anchor)
            if confidence < threshold:
                continue

            class_id, class_confidence = layer.class_(row, col, anchor)
            _assure_normal(class_confidence, "class confidence", row, col, anchor)
            confidence = confidence * class_confidence
            if confidence < threshold:
                continue

            x, y = layer.center(row, col, anchor)
            w, h = layer.shape(row, col, anchor, image_width, image_height)

            out.append(
                Detection(
                    bbox=BoundingBox(xmin=x - w / 2.0, ymin=y - h / 2.0, width=w, height=h),
                    class_id=class_id,
                    label=self._labels.get(class_id, str(class_id)),
                    confidence=confidence,
                )
            )


def _assure_normal(value: float, what: str, row: int, col: int, anchor: int) -> float:
    if not (0.0 <= value <= 1.0):
        raise ValueDomainError(
            f"Decoded {what} {value} at cell ({row}, {col}) anchor {anchor} is outside [0, 1]"
        )
    return value
