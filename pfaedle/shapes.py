"""Disk-backed storage for shape points of a GTFS feed."""

from __future__ import annotations

import io
import struct
import tempfile
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

_COUNT = struct.Struct("<Q")
_ID_LEN = struct.Struct("<I")
_POINT = struct.Struct("<ddd")
_FLUSH_THRESHOLD = 1000 * 5000


@dataclass(frozen=True)
class ShapePoint:
    """A single point of a shape, with its 1-based sequence number."""

    shape_id: str
    lat: float
    lng: float
    travel_dist: float
    seq: int


class ShapeContainer:
    """Keeps track of shape ids and spools shape geometries to a temporary file."""

    def __init__(self) -> None:
        self._ids: set[str] = set()
        self._storage = tempfile.TemporaryFile()
        self._buffer = io.BytesIO()

    def __enter__(self) -> ShapeContainer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, shape_id: object) -> bool:
        return shape_id in self._ids

    def add(self, shape_id: str, points: Iterable[tuple[float, float, float]] = ()) -> str:
        """Register a shape and store its (lat, lng, travel_dist) points.

        A shape id that is already known is left untouched.
        """
        if shape_id in self._ids:
            return shape_id
        self._ids.add(shape_id)
        pts = [tuple(map(float, p)) for p in points]
        if not pts:
            return shape_id
        raw_id = shape_id.encode("utf-8")
        self._buffer.write(_ID_LEN.pack(len(raw_id)))
        self._buffer.write(raw_id)
        self._buffer.write(_COUNT.pack(len(pts)))
        for lat, lng, dist in pts:
            self._buffer.write(_POINT.pack(lat, lng, dist))
        if self._buffer.tell() > _FLUSH_THRESHOLD:
            self._flush()
        return shape_id

    def remove(self, shape_id: str) -> bool:
        """Forget a shape; its stored points are no longer yielded."""
        self._ids.discard(shape_id)
        return True

    def has(self, shape_id: str) -> bool:
        return shape_id in self._ids

    def get_ref(self, shape_id: str) -> str:
        """Return the id if the shape is known, else an empty string."""
        return shape_id if shape_id in self._ids else ""

    def points(self) -> Iterator[ShapePoint]:
        """Yield the stored points of all shapes still registered, in insertion order."""
        self._flush()
        self._storage.seek(0)
        storage = self._storage
        while True:
            head = storage.read(_ID_LEN.size)
            if len(head) < _ID_LEN.size:
                return
            (id_len,) = _ID_LEN.unpack(head)
            shape_id = storage.read(id_len).decode("utf-8")
            (count,) = _COUNT.unpack(storage.read(_COUNT.size))
            data = storage.read(count * _POINT.size)
            if shape_id not in self._ids:
                continue
            for seq, (lat, lng, dist) in enumerate(_POINT.iter_unpack(data), start=1):
                yield ShapePoint(shape_id, lat, lng, dist, seq)

    def close(self) -> None:
        """Release the temporary storage."""
        self._buffer = io.BytesIO()
        self._storage.close()

    def _flush(self) -> None:
        data = self._buffer.getvalue()
        if data:
            self._storage.seek(0, io.SEEK_END)
            self._storage.write(data)
            self._storage.flush()
        self._buffer = io.BytesIO()