"""
Inference output decoding.

Maps an architecture name to its OutputLayer implementation and binds the
configured per-scale anchors to a frame's output tensors.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Type

from models.errors import ConfigurationError
from models.tensor import TensorView
from .base import OutputLayer, NUM_ANCHORS, sigmoid, num_classes_for
from .yolov7 import Yolov7OutputLayer


ARCHITECTURES: Dict[str, Type[OutputLayer]] = {
    "yolov7": Yolov7OutputLayer,
}


def sort_by_size(tensors: Sequence[TensorView]) -> List[TensorView]:
    """Order tensors by ascending total element count (coarsest scale first)."""
    return sorted(tensors, key=lambda t: t.size)


def create_output_layers(
    architecture: str,
    tensors: Sequence[TensorView],
    anchors: Sequence[Sequence[int]],
    perform_sigmoid: bool = False,
    label_offset: int = 1,
) -> List[OutputLayer]:
    """
    Wrap each tensor in the architecture's OutputLayer.

    Tensors are size-sorted first; anchors[i] goes to the i-th smallest tensor.

    Raises:
        ConfigurationError: Unknown architecture or fewer anchor sets than tensors.
    """
    layer_cls = ARCHITECTURES.get(architecture)
    if layer_cls is None:
        raise ConfigurationError(
            f"Unknown architecture '{architecture}', expected one of: {', '.join(sorted(ARCHITECTURES))}"
        )

    ordered = sort_by_size(tensors)
    if len(ordered) > len(anchors):
        raise ConfigurationError(
            f"{len(ordered)} output tensors but only {len(anchors)} anchor sets configured"
        )

    return [
        layer_cls(tensor, anchors[i], perform_sigmoid=perform_sigmoid, label_offset=label_offset)
        for i, tensor in enumerate(ordered)
    ]


__all__ = [
    "ARCHITECTURES",
    "NUM_ANCHORS",
    "OutputLayer",
    "Yolov7OutputLayer",
    "create_output_layers",
    "num_classes_for",
    "sigmoid",
    "sort_by_size",
]
