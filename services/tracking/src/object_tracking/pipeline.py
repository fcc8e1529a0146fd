"""Tracking pipeline: consume detections → update tracker → publish.

For each camera:
1. Pull the next DetectionFrame from the source (XREADGROUP on
   `detections:{camera_id}` in production)
2. Run CentroidTracker.update on its rectangles
3. Emit one TrackingMessage with every live object to the sink
   (`tracking:{camera_id}`)

The pipeline is the only writer of its tracker, and update() runs without
yielding to the event loop, so frames are applied strictly one at a time.
"""
from __future__ import annotations

import time

from tracking_shared.logging import get_logger

from object_tracking.centroid_tracker import CentroidTracker
from object_tracking.codec import DetectionFrame, encode_tracking
from object_tracking.config import TrackingConfig
from object_tracking.streams import DetectionSource, TrackingSink

log = get_logger(__name__)


class TrackingPipeline:
    """Runs the tracking loop for a single camera.

    Args:
        camera_id: Camera identifier (used in log lines).
        config: Tracking configuration.
        source: Where detection frames come from.
        sink: Where tracking results go.
        tracker: Tracker to drive; a fresh one is built from config if omitted.
    """

    def __init__(
        self,
        camera_id: str,
        config: TrackingConfig,
        source: DetectionSource,
        sink: TrackingSink,
        tracker: CentroidTracker | None = None,
    ) -> None:
        self._camera_id = camera_id
        self._cfg = config
        self._source = source
        self._sink = sink
        # CentroidTracker defines __len__, so an empty one is falsy
        if tracker is None:
            tracker = CentroidTracker(
                max_disappeared=config.max_disappeared,
                dist_thresh=config.dist_thresh,
            )
        self._tracker = tracker
        self._frame_count = 0
        self._t_start = time.monotonic()

    @property
    def tracker(self) -> CentroidTracker:
        return self._tracker

    @property
    def frame_count(self) -> int:
        return self._frame_count

    async def run(self) -> None:
        """Main loop: processes frames until the source ends or the task is cancelled."""
        log.info(
            "pipeline_starting",
            camera_id=self._camera_id,
            max_disappeared=self._tracker.max_disappeared,
            dist_thresh=self._tracker.dist_thresh,
        )

        async for frame in self._source.frames():
            try:
                await self._process_frame(frame)
            except Exception as exc:
                log.error(
                    "tracking_pipeline_error",
                    camera_id=self._camera_id,
                    frame_seq=frame.frame_seq,
                    error=str(exc),
                )

        log.info("pipeline_source_exhausted", camera_id=self._camera_id, frames=self._frame_count)

    async def _process_frame(self, frame: DetectionFrame) -> None:
        objects = self._tracker.update(frame.rects)
        self._frame_count += 1

        log.debug(
            "objects_tracked",
            camera_id=self._camera_id,
            frame_seq=frame.frame_seq,
            detections=len(frame.rects),
            objects=len(objects),
        )

        await self._sink.emit(encode_tracking(frame, objects))

        if self._frame_count % self._cfg.log_interval == 0:
            elapsed = time.monotonic() - self._t_start
            fps = self._frame_count / elapsed if elapsed > 0 else 0
            log.info(
                "pipeline_throughput",
                camera_id=self._camera_id,
                frames=self._frame_count,
                fps=round(fps, 1),
                live_objects=len(objects),
                next_object_id=self._tracker.next_object_id,
            )
