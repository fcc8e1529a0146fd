"""Pydantic v2 event schemas for the tracking Redis Streams.

Stream naming convention: {domain}:{camera_id}
  detections:cam-01     per-frame detection rectangles from an upstream detector
  tracking:cam-01       id → centroid maps from the tracking service
"""
from __future__ import annotations

from typing import Annotated

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, StrictInt, field_validator


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# Finite JSON number; bools, numeric strings, NaN and ±Infinity are rejected
Coordinate = StrictInt | Annotated[float, Strict(), AllowInfNan(False)]


# ── Detector → Tracking ───────────────────────────────────────────────────────

class DetectionItem(_FrozenModel):
    """One detected object in one frame.

    Only ``bbox`` is read; any other keys a detector attaches (class label,
    confidence, ...) are ignored.
    """

    bbox: list[Coordinate] = Field(
        min_length=4,
        max_length=4,
        description="Axis-aligned rectangle [x1, y1, x2, y2] with x1<=x2, y1<=y2",
    )

    @field_validator("bbox")
    @classmethod
    def _corners_ordered(cls, v: list[Coordinate]) -> list[Coordinate]:
        x1, y1, x2, y2 = v
        if x1 > x2 or y1 > y2:
            raise ValueError(f"bbox corners out of order: {v}")
        return v


class DetectionMessage(_FrozenModel):
    """All detections of a single frame.

    Stream: detections:{camera_id}

    The bare form ``[{"bbox": [...]}, ...]`` is accepted on the same stream
    for detectors that do not send frame metadata.
    """

    camera_id: str
    timestamp_ns: int = Field(description="Monotonic nanosecond timestamp")
    frame_seq: int = Field(description="Monotonically increasing frame counter per camera")
    detections: list[DetectionItem] = Field(default_factory=list)


# ── Tracking → consumers ──────────────────────────────────────────────────────

class TrackingMessage(_FrozenModel):
    """Live tracked objects after one tracker update.

    Stream: tracking:{camera_id}
    """

    camera_id: str
    timestamp_ns: int
    frame_seq: int | None = Field(
        default=None,
        description="frame_seq of the detection frame, None if the detector sent none",
    )
    objects: dict[str, tuple[float, float]] = Field(
        default_factory=dict,
        description="Object id (as string) → centroid [x, y]",
    )
