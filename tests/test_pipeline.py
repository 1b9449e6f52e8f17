"""
Tests for the pipeline engine.
"""

import time
from typing import List, Optional

import pytest

from models.config import Config, DecoderConfig, GateConfig, TrackingConfig
from models.errors import ConfigurationError
from models.frame import TensorFrame
from observation.base import SourceConfig, TensorSource
from pipeline.engine import PipelineEngine, PipelineConfig


PERSON_CELL = {(0, 1, 0): {"xywh": (0.5, 0.5, 0.25, 0.25), "obj": 0.9, "classes": {1: 0.95}}}


class MockTensorSource(TensorSource):
    """Mock source replaying prepared frames."""

    def __init__(self, config: SourceConfig, frames: List[TensorFrame]):
        super().__init__(config)
        self._frames = frames
        self._pos = 0
        self.close_calls = 0

    def open(self) -> None:
        self._is_open = True
        self._pos = 0
        self._frame_index = 0

    def read(self) -> Optional[TensorFrame]:
        if not self._is_open or self._pos >= len(self._frames):
            return None
        frame = self._frames[self._pos]
        self._pos += 1
        self._frame_index += 1
        return frame

    def close(self) -> None:
        self._is_open = False
        self.close_calls += 1


@pytest.fixture
def make_frame(tensor_builder):
    def _make(index, cells=None):
        tensor = tensor_builder(2, 2, 1, cells or {})
        return TensorFrame(tensors=[tensor], timestamp=time.time(), frame_index=index, source="test")
    return _make


class TestPipelineEngine:
    def test_engine_init(self, app_config):
        engine = PipelineEngine(app_config)

        assert engine.stats.frame_count == 0
        assert sorted(engine.trackers.trackers) == [1]
        assert engine.suppression.max_boxes == 200

    def test_invalid_config_rejected(self, app_config):
        app_config.tracking.min_hits = 0
        with pytest.raises(ConfigurationError):
            PipelineEngine(app_config)

    def test_confirmation_after_min_hits(self, app_config, make_frame):
        """Five identical frames confirm one person track and emit it once."""
        engine = PipelineEngine(app_config)

        messages = [engine.process(make_frame(i, PERSON_CELL)) for i in range(1, 7)]

        assert [m is not None for m in messages] == [False, False, False, False, True, False]
        record = messages[4].records[0]
        assert record.track_id == 0
        assert record.label == "person"
        assert record.center_x == 0.75
        assert record.center_y == 0.25
        assert record.width == 0.063
        assert engine.stats.emitted_messages == 1

    def test_frame_result(self, app_config, make_frame):
        engine = PipelineEngine(app_config)

        result = engine.process_frame(make_frame(1, PERSON_CELL))

        assert len(result.detections) == 1
        assert result.detections[0].confidence == pytest.approx(0.855)
        assert result.tracks == []
        assert result.message is None

    def test_quiet_scene(self, app_config, make_frame):
        engine = PipelineEngine(app_config)

        result = engine.process_frame(make_frame(1))

        assert result.detections == []
        assert result.tracks == []
        assert result.message is None

    def test_out_of_domain_frame_dropped(self, app_config, make_frame):
        engine = PipelineEngine(app_config)
        bad = {(0, 0, 0): {"obj": 1.5, "classes": {1: 1.0}}}

        assert engine.process_frame(make_frame(1, bad)) is None

        assert engine.stats.dropped_frames == 1
        # dropped before tracking
        assert engine.trackers.trackers[1].frame_count == 0

        result = engine.process_frame(make_frame(2, PERSON_CELL))
        assert len(result.detections) == 1

    def test_configuration_error_propagates(self, make_frame, street_labels):
        config = Config(decoder=DecoderConfig(labels=street_labels))
        engine = PipelineEngine(config)

        with pytest.raises(ConfigurationError):
            engine.process_frame(make_frame(1, PERSON_CELL))

    def test_preflight_before_tracking(self, make_frame, street_labels):
        """A layout mismatch surfaces on the first frame with tensors, before tracking."""
        config = Config(decoder=DecoderConfig(labels=street_labels))
        engine = PipelineEngine(config)
        empty = TensorFrame(tensors=[], timestamp=time.time(), frame_index=1, source="test")

        assert engine.process_frame(empty) is not None
        frame_counts = {cid: t.frame_count for cid, t in engine.trackers.trackers.items()}

        with pytest.raises(ConfigurationError):
            engine.process_frame(make_frame(2, PERSON_CELL))
        assert {cid: t.frame_count for cid, t in engine.trackers.trackers.items()} == frame_counts

    def test_preflight_runs_once(self, app_config, make_frame):
        engine = PipelineEngine(app_config)
        calls = []
        original = engine.assembler.preflight
        engine.assembler.preflight = lambda tensors: calls.append(len(tensors)) or original(tensors)

        for i in range(1, 4):
            engine.process_frame(make_frame(i, PERSON_CELL))

        assert calls == [1]

    def test_callbacks(self, make_frame, decoder_config):
        config = Config(decoder=decoder_config, tracking=TrackingConfig(min_hits=1))
        engine = PipelineEngine(config)
        received = []
        engine.add_callback(lambda frame, message: received.append((frame.frame_index, message.count)))

        engine.process(make_frame(1, PERSON_CELL))
        engine.process(make_frame(2, PERSON_CELL))

        assert received == [(1, 1)]

    def test_callback_error_does_not_stop_pipeline(self, make_frame, decoder_config):
        config = Config(decoder=decoder_config, tracking=TrackingConfig(min_hits=1))
        engine = PipelineEngine(config)

        def broken(frame, message):
            raise RuntimeError("transport down")

        received = []
        engine.add_callback(broken)
        engine.add_callback(lambda frame, message: received.append(message))

        assert engine.process(make_frame(1, PERSON_CELL)) is not None
        assert len(received) == 1

    def test_heartbeat(self, make_frame, decoder_config):
        config = Config(decoder=decoder_config, gate=GateConfig(heartbeat_frames=4))
        engine = PipelineEngine(config)

        messages = [engine.process(make_frame(i)) for i in range(1, 9)]

        emitted = [m.frame_index for m in messages if m is not None]
        assert emitted == [4, 8]


class TestPipelineRun:
    def test_run_drains_source(self, app_config, make_frame):
        frames = [make_frame(i, PERSON_CELL) for i in range(1, 11)]
        source = MockTensorSource(SourceConfig(source_id="mock"), frames)
        engine = PipelineEngine(app_config, PipelineConfig(stats_log_interval=0.0))
        received = []
        engine.add_callback(lambda frame, message: received.append(frame.frame_index))

        stats = engine.run(source)

        assert stats.frame_count == 10
        assert stats.emitted_messages == 1
        assert received == [5]
        assert not source.is_open
        assert source.close_calls == 1

    def test_run_stops_on_configuration_error(self, make_frame, street_labels):
        config = Config(decoder=DecoderConfig(labels=street_labels))
        source = MockTensorSource(SourceConfig(), [make_frame(1, PERSON_CELL)])
        engine = PipelineEngine(config)

        with pytest.raises(ConfigurationError):
            engine.run(source)

        assert source.close_calls == 1

    def test_run_continues_past_dropped_frame(self, app_config, make_frame):
        bad = {(0, 0, 0): {"obj": 1.5, "classes": {1: 1.0}}}
        frames = [make_frame(1, bad)] + [make_frame(i, PERSON_CELL) for i in range(2, 7)]
        engine = PipelineEngine(app_config)

        stats = engine.run(MockTensorSource(SourceConfig(), frames))

        assert stats.frame_count == 6
        assert stats.dropped_frames == 1
        assert stats.emitted_messages == 1

    def test_stop(self, app_config, make_frame):
        frames = [make_frame(i) for i in range(1, 6)]
        source = MockTensorSource(SourceConfig(), frames)
        engine = PipelineEngine(app_config)
        engine.add_callback(lambda frame, message: None)

        original_process = engine.process

        def process_then_stop(frame):
            engine.stop()
            return original_process(frame)

        engine.process = process_then_stop
        stats = engine.run(source)

        assert stats.frame_count == 1
