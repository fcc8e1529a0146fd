"""Stream payload ⇄ tracker data conversion.

Incoming ``data`` fields hold either a full DetectionMessage or the bare
detection list ``[{"bbox": [x1, y1, x2, y2]}, ...]``. Anything that does not
validate is reported as MalformedDetection; the tracker itself never sees it.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import TypeAdapter, ValidationError

from tracking_shared.events.publisher import now_ns
from tracking_shared.events.schemas import DetectionItem, DetectionMessage, TrackingMessage

from object_tracking.centroid_tracker import Position, Rect

_PAYLOAD = TypeAdapter(DetectionMessage | list[DetectionItem])


class MalformedDetection(ValueError):
    """A detection payload could not be decoded into rectangles."""


@dataclass(frozen=True)
class DetectionFrame:
    """One frame's rectangles plus the metadata needed to label the result."""

    camera_id: str
    frame_seq: int | None = None
    timestamp_ns: int = field(default_factory=now_ns)
    rects: list[Rect] = field(default_factory=list)

    @classmethod
    def empty(cls, camera_id: str, frame_seq: int | None = None) -> DetectionFrame:
        return cls(camera_id=camera_id, frame_seq=frame_seq)


def decode_detections(payload: str | bytes) -> DetectionMessage | list[DetectionItem]:
    """Validate a JSON payload in either accepted shape.

    Raises:
        MalformedDetection: invalid JSON, wrong root type, a bbox without
            exactly four numbers, or a bbox with reversed corners.
    """
    try:
        return _PAYLOAD.validate_json(payload)
    except ValidationError as exc:
        raise MalformedDetection(
            f"invalid detection payload ({exc.error_count()} errors)"
        ) from exc


def decode_frame(msg_data: dict, camera_id: str) -> DetectionFrame:
    """Parse a Redis Stream entry into a DetectionFrame."""
    raw = msg_data.get("data")
    if raw is None:
        raise MalformedDetection("stream entry has no 'data' field")

    decoded = decode_detections(raw)
    if isinstance(decoded, DetectionMessage):
        return DetectionFrame(
            camera_id=camera_id,
            frame_seq=decoded.frame_seq,
            timestamp_ns=decoded.timestamp_ns,
            rects=[tuple(d.bbox) for d in decoded.detections],
        )
    return DetectionFrame(
        camera_id=camera_id,
        rects=[tuple(d.bbox) for d in decoded],
    )


def encode_tracking(frame: DetectionFrame, objects: dict[int, Position]) -> TrackingMessage:
    """Build the outbound message for one tracker update."""
    return TrackingMessage(
        camera_id=frame.camera_id,
        timestamp_ns=frame.timestamp_ns,
        frame_seq=frame.frame_seq,
        objects={str(object_id): pos for object_id, pos in objects.items()},
    )
