#!/usr/bin/env python3
"""Replay recorded detections into a camera's detection stream.

Each non-blank line of the input file is one frame, either a bare list of
``{"bbox": [x1, y1, x2, y2]}`` objects or a full DetectionMessage. Frames are
re-stamped with this run's camera id, frame counter and clock, then XADDed to
``detections:<camera>`` at the requested rate. Invalid lines are logged and
skipped.

Usage:
    python scripts/replay_detections.py --camera cam-01 --fps 15 \
        services/tracking/data/sample_detections.jsonl
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import redis.asyncio as aioredis

from tracking_shared.events.publisher import detections_stream, now_ns, publish
from tracking_shared.events.schemas import DetectionMessage
from tracking_shared.logging import configure_logging, get_logger
from tracking_shared.settings import settings

from object_tracking.codec import MalformedDetection, decode_detections

configure_logging(settings.log_format, settings.log_level, service="replay-detections")
log = get_logger(__name__)


async def replay(path: Path, camera_id: str, fps: float, loop_count: int) -> int:
    stream = detections_stream(camera_id)
    interval = 1.0 / fps if fps > 0 else 0.0
    lines = path.read_text(encoding="utf-8").splitlines()

    redis = aioredis.from_url(settings.redis_url, decode_responses=False)
    frame_seq = 0
    try:
        for _ in range(loop_count):
            for line_no, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                try:
                    decoded = decode_detections(line)
                except MalformedDetection as exc:
                    log.warning("replay_line_skipped", line=line_no, error=str(exc))
                    continue

                items = decoded.detections if isinstance(decoded, DetectionMessage) else decoded
                event = DetectionMessage(
                    camera_id=camera_id,
                    timestamp_ns=now_ns(),
                    frame_seq=frame_seq,
                    detections=items,
                )
                await publish(redis, stream, event)
                frame_seq += 1
                if interval:
                    await asyncio.sleep(interval)
    finally:
        await redis.aclose()

    log.info("replay_finished", stream=stream, frames=frame_seq)
    return frame_seq


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a JSON-lines detection file")
    parser.add_argument("input", type=Path, help="JSON-lines file, one frame per line")
    parser.add_argument("--camera", default="cam-01", help="Target camera ID (e.g. cam-01)")
    parser.add_argument("--fps", type=float, default=15.0, help="Publish rate; 0 for no delay")
    parser.add_argument("--loop", type=int, default=1, help="Number of passes over the file")
    args = parser.parse_args()

    if not args.input.is_file():
        print(f"Error: {args.input} not found.", file=sys.stderr)
        sys.exit(1)

    asyncio.run(replay(args.input, args.camera, args.fps, max(1, args.loop)))


if __name__ == "__main__":
    main()
