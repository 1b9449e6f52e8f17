"""
TensorSource interface for pluggable inference output sources.

The accelerator dispatch itself is outside this package; a source hands
over already-computed output tensors, one TensorFrame per inference pass:
- recorded frames replayed from disk
- live accelerator output streams (adapter supplied by the caller)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import TensorFrame


@dataclass
class SourceConfig:
    """
    Base configuration for tensor sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "cam-01").
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    metadata: Dict[str, Any] = field(default_factory=dict)


class TensorSource(ABC):
    """
    Abstract base class for tensor sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources

    Can also be used as a context manager:
        with NpzTensorSource(config) as source:
            for frame in source:
                process(frame)
    """

    def __init__(self, config: SourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[TensorFrame]:
        """
        Read the next frame's tensors.

        Returns:
            TensorFrame, or None when the source is exhausted.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release resources. Safe to call multiple times."""
        pass

    def __enter__(self) -> "TensorSource":
        """Context manager entry - opens the source."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes the source."""
        self.close()

    def __iter__(self) -> Iterator[TensorFrame]:
        """
        Iterate over frames until the source is exhausted.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame = self.read()
            if frame is None:
                break
            yield frame
