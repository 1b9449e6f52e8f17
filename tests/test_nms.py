"""
Tests for per-class non-maximum suppression.
"""

from detection.nms import SuppressionEngine
from models.detection import BoundingBox, Detection, iou


def _det(xmin, ymin, w, h, confidence, class_id=1, label="person"):
    return Detection(BoundingBox(xmin, ymin, w, h), class_id, label, confidence)


class TestSuppressionEngine:
    def test_overlapping_same_class_keeps_best(self):
        """Two same-class boxes at IoU 0.8 collapse to the more confident one."""
        low = _det(0.0, 0.0, 0.5, 0.4, 0.6)
        high = _det(0.0, 0.0, 0.5, 0.5, 0.9)

        kept = SuppressionEngine(iou_threshold=0.45).suppress([low, high])

        assert kept == [high]

    def test_overlapping_different_classes_both_kept(self):
        person = _det(0.0, 0.0, 0.5, 0.5, 0.9)
        car = _det(0.0, 0.0, 0.5, 0.4, 0.6, class_id=2, label="car")

        kept = SuppressionEngine(iou_threshold=0.45).suppress([car, person])

        assert kept == [person, car]

    def test_disjoint_boxes_kept_in_confidence_order(self):
        a = _det(0.0, 0.0, 0.1, 0.1, 0.4)
        b = _det(0.5, 0.5, 0.1, 0.1, 0.8)
        c = _det(0.8, 0.0, 0.1, 0.1, 0.6)

        kept = SuppressionEngine().suppress([a, b, c])

        assert [d.confidence for d in kept] == [0.8, 0.6, 0.4]

    def test_max_boxes(self):
        """max_boxes=1 keeps only the most confident survivor."""
        best = _det(0.0, 0.0, 0.1, 0.1, 0.9)
        other = _det(0.5, 0.5, 0.1, 0.1, 0.6)

        kept = SuppressionEngine(iou_threshold=0.45, max_boxes=1).suppress([other, best])

        assert kept == [best]

    def test_equal_confidence_keeps_input_order(self):
        first = _det(0.0, 0.0, 0.5, 0.5, 0.7)
        second = _det(0.0, 0.0, 0.5, 0.4, 0.7)

        kept = SuppressionEngine(iou_threshold=0.45).suppress([first, second])

        assert kept == [first]

    def test_idempotent(self):
        dets = [
            _det(0.0, 0.0, 0.5, 0.5, 0.9),
            _det(0.05, 0.0, 0.5, 0.5, 0.8),
            _det(0.6, 0.6, 0.2, 0.2, 0.5),
            _det(0.0, 0.0, 0.5, 0.5, 0.7, class_id=2, label="car"),
        ]
        engine = SuppressionEngine(iou_threshold=0.45)

        once = engine.suppress(dets)

        assert engine.suppress(once) == once
        assert len(once) == 3

    def test_empty(self):
        assert SuppressionEngine().suppress([]) == []

    def test_survivors_pairwise_below_threshold(self):
        dets = [_det(0.01 * i, 0.0, 0.2, 0.2, 0.5 + 0.01 * i) for i in range(20)]
        engine = SuppressionEngine(iou_threshold=0.45)

        kept = engine.suppress(dets)

        for i, a in enumerate(kept):
            for b in kept[i + 1:]:
                assert iou(a.bbox, b.bbox) < 0.45
