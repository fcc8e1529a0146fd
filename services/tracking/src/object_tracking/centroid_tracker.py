"""Centroid tracker: stable object IDs from per-frame detection rectangles.

Each detection is reduced to the centre of its rectangle and matched to the
nearest live object (Euclidean distance) from the previous frame. Objects that
go unmatched accumulate a disappearance count and are dropped once it exceeds
``max_disappeared``.

Matching is a greedy, independent nearest-neighbour lookup per live object
over a shared candidate set; it is NOT a one-to-one assignment. Two objects
whose nearest detection is the same index will both snap to it, and that
detection will not spawn a new object. This is a known simplification and
part of the tracker's observable behaviour; an optimal (Hungarian) assignment
would change which ids survive.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from numbers import Integral, Real

import numpy as np

from tracking_shared.logging import get_logger

log = get_logger(__name__)

Rect = Sequence[Real]          # (x1, y1, x2, y2), x1<=x2, y1<=y2
Position = tuple[float, float]


@dataclass
class TrackedObject:
    object_id: int
    position: Position
    disappeared_count: int = 0


def centroid(rect: Rect) -> tuple[Real, Real]:
    """Centre of a rectangle.

    All-integer rectangles use floor division so the result stays on the
    pixel grid; anything else gets the exact midpoint.
    """
    x1, y1, x2, y2 = rect
    if all(isinstance(v, Integral) for v in (x1, y1, x2, y2)):
        return (x1 + x2) // 2, (y1 + y2) // 2
    return (x1 + x2) / 2, (y1 + y2) / 2


class CentroidTracker:
    """Assigns stable integer IDs to detections across consecutive frames.

    All state is owned by the instance; separate cameras need separate
    trackers. ``update`` is synchronous and not thread-safe: callers must
    serialize calls on one instance.

    Args:
        max_disappeared: Consecutive unmatched frames an object survives.
            It is removed on the update that takes its count above this value.
        dist_thresh: Maximum centroid distance for a detection to continue an
            existing object. A distance equal to the threshold still matches.
    """

    def __init__(self, max_disappeared: int = 50, dist_thresh: float = 50.0) -> None:
        if max_disappeared < 0:
            raise ValueError(f"max_disappeared must be >= 0, got {max_disappeared}")
        if dist_thresh < 0:
            raise ValueError(f"dist_thresh must be >= 0, got {dist_thresh}")
        self._max_disappeared = int(max_disappeared)
        self._dist_thresh = float(dist_thresh)
        self._next_object_id = 0
        # object_id → TrackedObject, in registration order
        self._objects: dict[int, TrackedObject] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def max_disappeared(self) -> int:
        return self._max_disappeared

    @property
    def dist_thresh(self) -> float:
        return self._dist_thresh

    @property
    def next_object_id(self) -> int:
        return self._next_object_id

    @property
    def objects(self) -> dict[int, Position]:
        """Snapshot of live object positions."""
        return {oid: obj.position for oid, obj in self._objects.items()}

    @property
    def disappeared(self) -> dict[int, int]:
        """Snapshot of live object disappearance counts."""
        return {oid: obj.disappeared_count for oid, obj in self._objects.items()}

    def __len__(self) -> int:
        return len(self._objects)

    def update(self, detections: Sequence[Rect]) -> dict[int, Position]:
        """Advance the tracker by one frame.

        Args:
            detections: This frame's rectangles, (x1, y1, x2, y2) each.
        Returns:
            Snapshot mapping of every live object id to its centroid.
        """
        if len(detections) == 0:
            for object_id in list(self._objects):
                self._mark_missed(object_id)
            return self.objects

        centroids = [centroid(rect) for rect in detections]

        if not self._objects:
            for c in centroids:
                self._register(c)
            return self.objects

        object_ids = list(self._objects)
        object_pos = np.array([self._objects[oid].position for oid in object_ids], dtype=float)
        det_pos = np.array(centroids, dtype=float)
        # distances[i, j] = |object i − detection j|
        distances = np.linalg.norm(object_pos[:, None, :] - det_pos[None, :, :], axis=2)

        used: set[int] = set()
        for i, object_id in enumerate(object_ids):
            # np.argmin returns the first minimum, so ties go to the earliest detection
            j = int(np.argmin(distances[i]))
            if distances[i, j] > self._dist_thresh:
                self._mark_missed(object_id)
                continue
            obj = self._objects[object_id]
            obj.position = _as_position(centroids[j])
            obj.disappeared_count = 0
            # j stays eligible for later objects
            used.add(j)

        for j, c in enumerate(centroids):
            if j not in used:
                self._register(c)

        return self.objects

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _register(self, c: tuple[Real, Real]) -> None:
        object_id = self._next_object_id
        self._next_object_id += 1
        self._objects[object_id] = TrackedObject(object_id=object_id, position=_as_position(c))
        log.debug("object_registered", object_id=object_id, position=self._objects[object_id].position)

    def _mark_missed(self, object_id: int) -> None:
        obj = self._objects[object_id]
        obj.disappeared_count += 1
        if obj.disappeared_count > self._max_disappeared:
            del self._objects[object_id]
            log.debug("object_removed", object_id=object_id, missed=obj.disappeared_count)


def _as_position(c: tuple[Real, Real]) -> Position:
    return float(c[0]), float(c[1])
