"""Detection sources and tracking sinks.

The pipeline only depends on the two protocols below; the Redis Streams
implementations are what the service wires in.
"""
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

import redis.asyncio as aioredis

from tracking_shared.events.publisher import (
    GROUP_TRACKING,
    ack,
    detections_stream,
    ensure_consumer_group,
    publish,
    read_group,
    tracking_stream,
)
from tracking_shared.events.schemas import TrackingMessage
from tracking_shared.logging import get_logger

from object_tracking.codec import DetectionFrame, MalformedDetection, decode_frame
from object_tracking.config import MalformedPolicy

log = get_logger(__name__)


class DetectionSource(Protocol):
    """Produces one DetectionFrame per camera frame, in order."""

    def frames(self) -> AsyncIterator[DetectionFrame]:
        ...


class TrackingSink(Protocol):
    """Consumes the result of each tracker update."""

    async def emit(self, message: TrackingMessage) -> None:
        ...


class RedisDetectionSource:
    """Reads ``detections:{camera_id}`` through a consumer group.

    An entry is acknowledged once the consumer asks for the next frame, i.e.
    after it has finished with the one yielded.

    Args:
        redis: Async Redis client.
        camera_id: Camera whose stream is consumed.
        consumer_name: Name of this worker inside the consumer group.
        on_malformed: "skip" drops undecodable entries; "empty" turns them
            into an empty-detections frame.
        group: Consumer group name.
        read_batch: Max entries per XREADGROUP.
        block_ms: XREADGROUP block timeout.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        camera_id: str,
        consumer_name: str,
        on_malformed: MalformedPolicy = "skip",
        group: str = GROUP_TRACKING,
        read_batch: int = 10,
        block_ms: int = 500,
    ) -> None:
        if on_malformed not in ("skip", "empty"):
            raise ValueError(f"on_malformed must be 'skip' or 'empty', got {on_malformed!r}")
        self._redis = redis
        self._camera_id = camera_id
        self._consumer = consumer_name
        self._on_malformed = on_malformed
        self._group = group
        self._read_batch = read_batch
        self._block_ms = block_ms
        self._stream = detections_stream(camera_id)

    @property
    def stream(self) -> str:
        return self._stream

    async def frames(self) -> AsyncIterator[DetectionFrame]:
        await ensure_consumer_group(self._redis, self._stream, self._group)
        log.info(
            "detection_source_starting",
            camera_id=self._camera_id,
            stream=self._stream,
            group=self._group,
            consumer=self._consumer,
        )

        while True:
            messages = await read_group(
                self._redis,
                self._stream,
                self._group,
                self._consumer,
                count=self._read_batch,
                block_ms=self._block_ms,
            )

            for msg_id, msg_data in messages:
                try:
                    frame = decode_frame(msg_data, self._camera_id)
                except MalformedDetection as exc:
                    log.warning(
                        "detection_decode_failed",
                        camera_id=self._camera_id,
                        msg_id=msg_id,
                        error=str(exc),
                        policy=self._on_malformed,
                    )
                    if self._on_malformed == "skip":
                        await ack(self._redis, self._stream, self._group, msg_id)
                        continue
                    frame = DetectionFrame.empty(self._camera_id)

                yield frame
                await ack(self._redis, self._stream, self._group, msg_id)


class RedisTrackingSink:
    """XADDs each TrackingMessage to ``tracking:{camera_id}``."""

    def __init__(self, redis: aioredis.Redis, camera_id: str, maxlen: int = 1000) -> None:
        self._redis = redis
        self._stream = tracking_stream(camera_id)
        self._maxlen = maxlen

    @property
    def stream(self) -> str:
        return self._stream

    async def emit(self, message: TrackingMessage) -> None:
        msg_id = await publish(self._redis, self._stream, message, maxlen=self._maxlen)
        log.debug(
            "tracking_published",
            camera_id=message.camera_id,
            frame_seq=message.frame_seq,
            msg_id=msg_id,
        )
