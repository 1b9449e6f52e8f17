"""
TensorFrame model for one frame's worth of network outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .tensor import TensorView


@dataclass
class TensorFrame:
    """
    Output tensors of one inference pass, plus frame metadata.

    The frame owns its tensors; nothing downstream keeps a reference to
    them after the decode pass.

    Attributes:
        tensors: One TensorView per output scale, in any order.
        timestamp: Unix timestamp of the source frame.
        frame_index: Sequential frame number since start.
        source: Identifier for the stream.
    """
    tensors: List[TensorView] = field(default_factory=list)
    timestamp: float = 0.0
    frame_index: int = 0
    source: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.tensors
