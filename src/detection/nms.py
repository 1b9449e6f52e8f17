"""
Greedy per-class non-maximum suppression.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List

from models.detection import Detection, iou


class SuppressionEngine:
    """
    Removes duplicate detections.

    Detections are visited by descending confidence; one is kept only if its
    IoU with every already-kept detection of the same class is below
    iou_threshold. The kept set is then capped at max_boxes, highest
    confidence first.
    """

    def __init__(self, iou_threshold: float = 0.45, max_boxes: int = 200):
        self.iou_threshold = iou_threshold
        self.max_boxes = max_boxes

    def suppress(self, detections: List[Detection]) -> List[Detection]:
        """
        Args:
            detections: Raw detections of any classes.

        Returns:
            Surviving detections ordered by descending confidence.
        """
        # sorted() is stable, so equal confidences keep decode order
        ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)

        kept: List[Detection] = []
        kept_by_class: Dict[int, List[Detection]] = defaultdict(list)
        for det in ordered:
            same_class = kept_by_class[det.class_id]
            if all(iou(det.bbox, other.bbox) < self.iou_threshold for other in same_class):
                same_class.append(det)
                kept.append(det)

        if len(kept) > self.max_boxes:
            logging.debug(f"Truncating {len(kept)} detections to max_boxes={self.max_boxes}")
            kept = kept[: self.max_boxes]

        return kept
