"""
Pipeline engine for the decode and tracking core.

One synchronous pass per frame:
    tensors -> DetectionAssembler -> SuppressionEngine -> TrackerSet -> TrackSetGate

A frame either completes the whole sequence or is dropped before it
touches tracker state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from detection.assembler import DetectionAssembler
from detection.nms import SuppressionEngine
from models.config import Config
from models.detection import Detection
from models.errors import ConfigurationError, ValueDomainError
from models.frame import TensorFrame
from models.message import TrackSetMessage
from models.track import TrackSnapshot
from observation.base import TensorSource
from pipeline.stages.gate import TrackSetGate
from tracking.tracker import TrackerSet


@dataclass
class PipelineConfig:
    """
    Runtime options for the pipeline engine.

    Attributes:
        stats_log_interval: Seconds between status log messages.
    """
    stats_log_interval: float = 60.0


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    dropped_frames: int = 0
    detection_count: int = 0
    emitted_messages: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


@dataclass
class FrameResult:
    """Everything produced for one frame (useful for debugging and tests)."""
    detections: List[Detection]
    tracks: List[TrackSnapshot]
    message: Optional[TrackSetMessage]


class PipelineEngine:
    """
    Runs decoded tensors through suppression, tracking and gating.

    Not thread-safe: feed frames from one thread, in arrival order. Use one
    engine per stream.

    Example:
        engine = PipelineEngine(Config.from_dict(cfg))
        engine.add_callback(lambda frame, msg: publish(msg.to_payload()))
        with NpzTensorSource(NpzSourceConfig(directory="recordings")) as source:
            engine.run(source)
    """

    def __init__(self, config: Config, pipeline_config: Optional[PipelineConfig] = None):
        """
        Args:
            config: Validated application configuration.
            pipeline_config: Runtime options.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self.pipeline_config = pipeline_config or PipelineConfig()
        self.stats = PipelineStats()

        decoder = config.decoder
        self.assembler = DetectionAssembler(decoder)
        self.suppression = SuppressionEngine(
            iou_threshold=decoder.iou_threshold,
            max_boxes=decoder.max_boxes,
        )
        self.trackers = TrackerSet(decoder.labels, config.tracking, label_offset=decoder.label_offset)
        self.gate = TrackSetGate(config.gate)

        self._preflighted = False
        self._running = False
        self._callbacks: List[Callable[[TensorFrame, TrackSetMessage], None]] = []

    def add_callback(self, callback: Callable[[TensorFrame, TrackSetMessage], None]) -> None:
        """
        Add a callback invoked with (frame, message) whenever the gate emits.

        Args:
            callback: Transport hook; exceptions are logged, not propagated.
        """
        self._callbacks.append(callback)

    def process_frame(self, frame: TensorFrame) -> Optional[FrameResult]:
        """
        Run one frame through the whole pipeline.

        Returns:
            FrameResult, or None if the frame was dropped.

        Raises:
            ConfigurationError: Tensor layout does not match the configuration.
        """
        self.stats.frame_count += 1

        # Pre-flight: check the layout once, on the first frame that has tensors
        if not self._preflighted and frame.tensors:
            self.assembler.preflight(frame.tensors)
            self._preflighted = True

        try:
            raw = self.assembler.decode(frame.tensors)
        except ValueDomainError as e:
            self.stats.dropped_frames += 1
            logging.warning(f"Dropping frame {frame.frame_index}: {e}")
            return None

        detections = self.suppression.suppress(raw)
        self.stats.detection_count += len(detections)

        tracks = self.trackers.update(detections)

        message = self.gate.submit(tracks, frame_index=frame.frame_index, timestamp=frame.timestamp)
        if message is not None:
            self.stats.emitted_messages += 1
            for callback in self._callbacks:
                try:
                    callback(frame, message)
                except Exception as e:
                    logging.warning(f"Callback error: {e}")

        # Debug: log reported track IDs periodically (every 30 frames)
        if self.stats.frame_count % 30 == 0 and tracks:
            logging.debug(
                f"[TRACK] frame={frame.frame_index} ids={[(t.label, t.track_id) for t in tracks]}"
            )

        return FrameResult(detections=detections, tracks=tracks, message=message)

    def process(self, frame: TensorFrame) -> Optional[TrackSetMessage]:
        """Run one frame; return the emitted message, if any."""
        result = self.process_frame(frame)
        return result.message if result is not None else None

    def run(self, source: TensorSource) -> PipelineStats:
        """
        Drain a tensor source through the pipeline.

        Opens the source if needed and always closes it. A ConfigurationError
        aborts the run.
        """
        self._running = True
        try:
            if not source.is_open:
                source.open()
            logging.info(f"Pipeline started: source={source.source_id}")

            while self._running:
                frame = source.read()
                if frame is None:
                    break
                self.process(frame)
                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        except ConfigurationError as e:
            logging.error(f"Configuration error, stopping pipeline: {e}")
            raise
        finally:
            self._running = False
            try:
                source.close()
            except Exception as e:
                logging.warning(f"Error closing source: {e}")
            logging.info(
                f"Pipeline stopped: frames={self.stats.frame_count}, "
                f"dropped={self.stats.dropped_frames}, emitted={self.stats.emitted_messages}"
            )

        return self.stats

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.pipeline_config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"dropped={self.stats.dropped_frames}, "
                f"detections={self.stats.detection_count}, "
                f"emitted={self.stats.emitted_messages}"
            )
            self.stats.last_stats_log_time = now
