"""
Multi-object tracking with a SORT-style predict / associate / update loop.

One ClassTracker runs per object class. Each frame it:
- predicts every track forward with a constant-velocity Kalman filter
- matches predictions to detections by optimal assignment on 1 - IoU
- corrects matched tracks, spawns tracks for unmatched detections
- ages unmatched tracks and drops them once they have been missing too long

Only tracks that are Confirmed and were matched in the current frame are
reported; coasting tracks stay internal until they are matched again or
deleted.

Frames must be fed strictly in arrival order. The motion model assumes a
fixed time step, so skipped frames are not compensated.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Tuple

from scipy.optimize import linear_sum_assignment

from models.config import TrackingConfig
from models.detection import BoundingBox, Detection, iou_matrix
from models.track import TrackSnapshot, TrackState
from .kalman import ConstantVelocityFilter


@dataclass
class Track:
    """Internal, mutable state of one tracked object."""
    track_id: int
    class_id: int
    label: str
    filter: ConstantVelocityFilter
    confidence: float = 1.0
    hits: int = 1
    age: int = 0
    time_since_update: int = 0
    state: TrackState = TrackState.TENTATIVE

    @property
    def bbox(self) -> BoundingBox:
        cx, cy, w, h = self.filter.state
        return BoundingBox.from_center(float(cx), float(cy), max(float(w), 0.0), max(float(h), 0.0))

    @property
    def is_confirmed(self) -> bool:
        return self.state == TrackState.CONFIRMED

    @property
    def is_deleted(self) -> bool:
        return self.state == TrackState.DELETED

    def predict(self) -> BoundingBox:
        self.filter.predict()
        return self.bbox

    def update(self, detection: Detection, min_hits: int) -> None:
        self.filter.update(detection.bbox.as_center())
        self.confidence = detection.confidence
        self.time_since_update = 0
        self.hits += 1
        if self.state == TrackState.TENTATIVE and self.hits >= min_hits:
            self.state = TrackState.CONFIRMED

    def mark_missed(self, max_age: int) -> None:
        self.age += 1
        self.time_since_update += 1
        if self.time_since_update > max_age:
            self.state = TrackState.DELETED

    def snapshot(self) -> TrackSnapshot:
        return TrackSnapshot(
            track_id=self.track_id,
            class_id=self.class_id,
            label=self.label,
            bbox=self.bbox,
            confidence=self.confidence,
            hits=self.hits,
            age=self.age,
        )


class ClassTracker:
    """
    Tracks objects of a single class.

    Track ids come from this tracker's own counter: monotonically increasing,
    never reused after deletion.
    """

    def __init__(
        self,
        class_id: int,
        label: str,
        max_age: int = 30,
        min_hits: int = 5,
        iou_threshold: float = 0.3,
        dt: float = 1.0,
    ):
        """
        Args:
            class_id: Class this tracker is responsible for.
            label: Human-readable class name.
            max_age: Frames a track may go unmatched before it is deleted.
            min_hits: Associated detections needed to confirm a track.
            iou_threshold: Minimum IoU for a prediction/detection match.
            dt: Motion model time step in frames.
        """
        self.class_id = class_id
        self.label = label
        self.max_age = max_age
        self.min_hits = min_hits
        self.iou_threshold = iou_threshold
        self.dt = dt

        self.tracks: List[Track] = []
        self.next_track_id = 0
        self.frame_count = 0

    def update(self, detections: List[Detection]) -> List[TrackSnapshot]:
        """
        Advance the tracker by one frame.

        Args:
            detections: This frame's detections of this class (may be empty).

        Returns:
            Snapshots of tracks Confirmed and matched in this frame, by id.
        """
        self.frame_count += 1

        predicted = [track.predict() for track in self.tracks]
        matches, unmatched_tracks, unmatched_dets = self._associate(predicted, detections)

        for track_idx, det_idx in matches:
            self.tracks[track_idx].update(detections[det_idx], self.min_hits)

        for track_idx in unmatched_tracks:
            self.tracks[track_idx].mark_missed(self.max_age)

        for det_idx in unmatched_dets:
            self._start_track(detections[det_idx])

        deleted = [t.track_id for t in self.tracks if t.is_deleted]
        if deleted:
            logging.debug(f"[TRACK] class={self.label} deleted ids={deleted}")
            self.tracks = [t for t in self.tracks if not t.is_deleted]

        reported = [
            t.snapshot() for t in self.tracks
            if t.is_confirmed and t.time_since_update == 0
        ]
        reported.sort(key=lambda s: s.track_id)
        return reported

    def get_all_tracks(self) -> List[Track]:
        """All live tracks, including tentative and coasting ones."""
        return list(self.tracks)

    def reset(self) -> None:
        """Drop every track. The id counter keeps counting."""
        self.tracks = []

    def _start_track(self, detection: Detection) -> Track:
        track = Track(
            track_id=self.next_track_id,
            class_id=self.class_id,
            label=self.label,
            filter=ConstantVelocityFilter(detection.bbox.as_center(), dt=self.dt),
            confidence=detection.confidence,
        )
        if track.hits >= self.min_hits:
            track.state = TrackState.CONFIRMED
        self.next_track_id += 1
        self.tracks.append(track)
        return track

    def _associate(
        self, predicted: List[BoundingBox], detections: List[Detection]
    ) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
        """
        Optimal assignment of predicted boxes to detections.

        Returns:
            (matches, unmatched track indices, unmatched detection indices)
        """
        if not predicted or not detections:
            return [], list(range(len(predicted))), list(range(len(detections)))

        ious = iou_matrix(predicted, [d.bbox for d in detections])
        rows, cols = linear_sum_assignment(1.0 - ious)

        matches: List[Tuple[int, int]] = []
        matched_tracks = set()
        matched_dets = set()
        for r, c in zip(rows, cols):
            if ious[r, c] < self.iou_threshold:
                continue
            matches.append((int(r), int(c)))
            matched_tracks.add(int(r))
            matched_dets.add(int(c))

        unmatched_tracks = [i for i in range(len(predicted)) if i not in matched_tracks]
        unmatched_dets = [j for j in range(len(detections)) if j not in matched_dets]
        return matches, unmatched_tracks, unmatched_dets


class TrackerSet:
    """
    One ClassTracker per class, fed from a single detection list.

    Independent streams need independent TrackerSets; nothing is shared
    between instances.
    """

    def __init__(self, labels: Dict[int, str], config: TrackingConfig, label_offset: int = 1):
        self._labels = dict(labels)
        self._config = config
        self._trackers: Dict[int, ClassTracker] = {}
        for class_id in sorted(self._labels):
            if class_id >= label_offset:
                self._trackers[class_id] = self._make_tracker(class_id, self._labels[class_id])
        logging.info(
            f"TrackerSet initialized: {len(self._trackers)} class trackers "
            f"(max_age={config.max_age}, min_hits={config.min_hits})"
        )

    @property
    def trackers(self) -> Dict[int, ClassTracker]:
        return self._trackers

    def update(self, detections: List[Detection]) -> List[TrackSnapshot]:
        """
        Route detections to their class trackers and merge the results.

        Boxes are clipped to the frame before tracking. Every tracker is
        stepped, with an empty list if its class was not detected.

        Returns:
            Reported tracks ordered by class id, then track id.
        """
        grouped: Dict[int, List[Detection]] = defaultdict(list)
        for det in detections:
            grouped[det.class_id].append(det.with_bbox(det.bbox.clipped()))

        for class_id in grouped:
            if class_id not in self._trackers:
                label = grouped[class_id][0].label
                logging.warning(f"No tracker for class {class_id} ({label}), creating one")
                self._trackers[class_id] = self._make_tracker(class_id, label)

        merged: List[TrackSnapshot] = []
        for class_id in sorted(self._trackers):
            merged.extend(self._trackers[class_id].update(grouped.get(class_id, [])))
        return merged

    def reset(self) -> None:
        for tracker in self._trackers.values():
            tracker.reset()

    def _make_tracker(self, class_id: int, label: str) -> ClassTracker:
        return ClassTracker(
            class_id=class_id,
            label=label,
            max_age=self._config.max_age,
            min_hits=self._config.min_hits,
            iou_threshold=self._config.iou_threshold,
            dt=self._config.dt,
        )
