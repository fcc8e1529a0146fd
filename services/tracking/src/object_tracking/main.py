"""Tracking service entry point."""
from __future__ import annotations

import asyncio
import signal

import redis.asyncio as aioredis

from tracking_shared.logging import configure_logging, get_logger
from tracking_shared.settings import settings

from object_tracking.config import TrackingConfig, build_config
from object_tracking.pipeline import TrackingPipeline
from object_tracking.streams import RedisDetectionSource, RedisTrackingSink

log = get_logger(__name__)


def build_pipelines(redis: aioredis.Redis, config: TrackingConfig) -> list[TrackingPipeline]:
    """One source/sink/tracker triple per camera; nothing is shared between them."""
    pipelines = []
    for cam_id in config.camera_ids:
        source = RedisDetectionSource(
            redis,
            cam_id,
            consumer_name=config.consumer_name,
            on_malformed=config.on_malformed,
            group=config.consumer_group,
            read_batch=config.read_batch,
            block_ms=config.block_ms,
        )
        sink = RedisTrackingSink(redis, cam_id, maxlen=config.stream_maxlen)
        pipelines.append(TrackingPipeline(cam_id, config, source, sink))
    return pipelines


async def run() -> None:
    configure_logging(settings.log_format, settings.log_level, service="object-tracking")
    config = build_config(settings)

    log.info(
        "tracking_service_starting",
        cameras=config.camera_ids,
        max_disappeared=config.max_disappeared,
        dist_thresh=config.dist_thresh,
        on_malformed=config.on_malformed,
    )

    redis = aioredis.from_url(config.redis_url, decode_responses=False)
    pipelines = build_pipelines(redis, config)

    loop = asyncio.get_running_loop()

    def _shutdown(sig, frame):
        log.info("shutdown_signal_received", signal=sig)
        for task in asyncio.all_tasks(loop):
            task.cancel()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    try:
        await asyncio.gather(*[p.run() for p in pipelines])
    except asyncio.CancelledError:
        pass
    finally:
        await redis.aclose()
        log.info("tracking_service_stopped")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
