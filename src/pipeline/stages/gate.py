"""
Gate stage deciding when the merged track set is published.

The track set is published when it differs from the last published one,
and unconditionally once every `heartbeat_frames` frames so consumers can
tell a quiet scene from a dead pipeline.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from models.config import GateConfig
from models.message import TrackRecord, TrackSetMessage
from models.track import TrackSnapshot


def round_half_away(value: float, decimals: int = 3) -> float:
    """Round to `decimals` places, halves away from zero (C roundf semantics)."""
    factor = 10.0 ** decimals
    rounded = math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor
    return rounded if rounded != 0 else 0.0


class TrackSetGate:
    """
    Change detection plus heartbeat for the merged track set.

    Example:
        gate = TrackSetGate(GateConfig())

        # Each frame:
        message = gate.submit(tracks, frame_index=i)
        if message is not None:
            publish(message.to_payload())
    """

    def __init__(self, config: Optional[GateConfig] = None):
        self._config = config or GateConfig()
        self._last_records: List[TrackRecord] = []
        self._frames_since_emit = 0
        self.emitted_count = 0

    @property
    def config(self) -> GateConfig:
        return self._config

    @property
    def last_records(self) -> List[TrackRecord]:
        """Records of the last emitted message (empty before the first emit)."""
        return list(self._last_records)

    def to_records(self, tracks: Sequence[TrackSnapshot]) -> List[TrackRecord]:
        """Re-express each track in center form, rounded for publication."""
        decimals = self._config.decimals
        records = []
        for track in tracks:
            cx, cy, w, h = track.bbox.as_center()
            records.append(
                TrackRecord(
                    track_id=track.track_id,
                    label=track.label,
                    center_x=round_half_away(cx, decimals),
                    center_y=round_half_away(cy, decimals),
                    width=round_half_away(w, decimals),
                    height=round_half_away(h, decimals),
                )
            )
        return records

    def has_changed(self, records: Sequence[TrackRecord]) -> bool:
        """Whether records differ from the last emitted set, position by position."""
        if len(records) != len(self._last_records):
            return True
        return any(new.key() != old.key() for new, old in zip(records, self._last_records))

    def submit(
        self,
        tracks: Sequence[TrackSnapshot],
        frame_index: int = 0,
        timestamp: float = 0.0,
    ) -> Optional[TrackSetMessage]:
        """
        Offer this frame's merged track set.

        Args:
            tracks: Reported tracks, ordered by class then id.
            frame_index: Frame number, copied into the message.
            timestamp: Frame timestamp, copied into the message.

        Returns:
            A TrackSetMessage if the set changed or the heartbeat expired, else None.
        """
        self._frames_since_emit += 1
        records = self.to_records(tracks)

        changed = self.has_changed(records)
        heartbeat_due = self._frames_since_emit >= self._config.heartbeat_frames
        if not changed and not heartbeat_due:
            return None

        self._last_records = records
        self._frames_since_emit = 0
        self.emitted_count += 1

        message = TrackSetMessage(
            frame_index=frame_index,
            timestamp=timestamp,
            heartbeat=not changed,
            records=records,
        )
        logging.debug(
            f"[GATE] frame={frame_index} emit tracks={message.count} heartbeat={message.heartbeat}"
        )
        return message

    def reset(self) -> None:
        self._last_records = []
        self._frames_since_emit = 0
