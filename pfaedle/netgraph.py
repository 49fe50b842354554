"""Payloads of the network graph, a graph of the physical transit network."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pfaedle.feed import Trip

Point = tuple[float, float]


class NodePL:
    """Node payload: a position."""

    def __init__(self, geom: Point = (0.0, 0.0)) -> None:
        self.geom = geom

    def attrs(self) -> dict[str, Any]:
        """Attributes written alongside the node geometry."""
        return {}


class EdgePL:
    """Edge payload: a line geometry and the trips using it."""

    def __init__(self, geom: Sequence[Point] = (), trips: Iterable[Trip] = ()) -> None:
        self.geom: list[Point] = list(geom)
        self.trips: list[Trip] = list(trips)
        self.route_short_names = {t.route.short_name for t in self.trips}
        self.trip_short_names = {t.short_name for t in self.trips}

    def attrs(self) -> dict[str, Any]:
        """Attributes written alongside the edge geometry."""
        return {
            "num_trips": len(self.trips),
            "route_short_names": sorted(self.route_short_names),
            "trip_short_names": sorted(self.trip_short_names),
        }