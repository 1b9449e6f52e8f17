"""
Output messages handed to the transport collaborator.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class TrackRecord(BaseModel):
    """One confirmed track, in center form, rounded for publication."""
    track_id: int = Field(..., ge=0, description="Track identifier, unique within its class tracker")
    label: str = Field(..., description="Class name")
    center_x: float
    center_y: float
    width: float
    height: float

    def key(self):
        """Fields that define structural equality for change detection."""
        return (self.track_id, self.label, self.center_x, self.center_y, self.width, self.height)


class TrackSetMessage(BaseModel):
    """
    Merged track set emitted by the gate.

    Records are ordered by class then track id.
    """
    frame_index: int = 0
    timestamp: float = 0.0
    heartbeat: bool = Field(False, description="True if emitted only because the heartbeat expired")
    records: List[TrackRecord] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    def to_payload(self, detect_key: str = "detections", amount_key: str = "amount") -> Dict[str, Any]:
        """
        Build the published JSON structure:
        {detect_key: [{"TrackID", "name", "center", "w_h"}, ...], amount_key: n}
        """
        return {
            detect_key: [
                {
                    "TrackID": r.track_id,
                    "name": r.label,
                    "center": [r.center_x, r.center_y],
                    "w_h": [r.width, r.height],
                }
                for r in self.records
            ],
            amount_key: self.count,
        }
