"""Tracking service configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

MalformedPolicy = Literal["skip", "empty"]


@dataclass(frozen=True)
class TrackingConfig:
    """Configuration for the tracking pipeline."""

    camera_ids: list[str] = field(default_factory=list)
    redis_url: str = "redis://localhost:6379/0"

    # Tracker
    max_disappeared: int = 50
    dist_thresh: float = 50.0

    # Decoding failures: drop the frame, or feed the tracker an empty frame
    on_malformed: MalformedPolicy = "skip"

    # Stream settings
    consumer_group: str = "tracking-workers"
    consumer_name: str = "tracking-0"
    read_batch: int = 10
    block_ms: int = 500
    stream_maxlen: int = 1000

    # Throughput logging interval (frames)
    log_interval: int = 100


def build_config(settings) -> TrackingConfig:
    """Build TrackingConfig from shared Settings."""
    consumer_name = os.environ.get("TRACKING_CONSUMER_NAME", "tracking-0")
    return TrackingConfig(
        camera_ids=settings.camera_id_list,
        redis_url=settings.redis_url,
        max_disappeared=settings.tracking_max_disappeared,
        dist_thresh=settings.tracking_dist_thresh,
        on_malformed=settings.tracking_on_malformed,
        consumer_name=consumer_name,
        stream_maxlen=settings.tracking_stream_maxlen,
    )
