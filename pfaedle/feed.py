"""In-memory GTFS feed model used by the matcher."""

from __future__ import annotations

import bisect
import datetime
from dataclasses import dataclass, field

from pfaedle.mots import RouteType
from pfaedle.shapes import ShapeContainer


@dataclass(frozen=True)
class Service:
    """A service reference; calendar details stay in the source feed."""

    id: str


@dataclass
class StopTime:
    """A stop event of a trip; times are seconds since service-day midnight."""

    stop: str
    seq: int
    arrival_time: int = 0
    departure_time: int = 0
    shape_dist_travelled: float = -1.0
    is_timepoint: bool = True

    def __lt__(self, other: StopTime) -> bool:
        return self.seq < other.seq


@dataclass
class Route:
    """A GTFS route."""

    id: str
    type: RouteType
    short_name: str = ""
    long_name: str = ""
    agency_id: str = ""
    desc: str = ""
    url: str = ""
    color: str = ""
    text_color: str = ""
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class Trip:
    """A GTFS trip with stop times kept in sequence order."""

    id: str
    route: Route
    service: Service
    shape: str = ""
    short_name: str = ""
    headsign: str = ""
    direction: str = ""
    block_id: str = ""
    stop_times: list[StopTime] = field(default_factory=list)
    frequencies: list[tuple[int, int, int]] = field(default_factory=list)
    extra: dict[str, str] = field(default_factory=dict)

    def add_stop_time(self, stop_time: StopTime) -> bool:
        """Insert a stop time; one with an already used sequence is rejected."""
        pos = bisect.bisect_left(self.stop_times, stop_time.seq, key=lambda s: s.seq)
        if pos < len(self.stop_times) and self.stop_times[pos].seq == stop_time.seq:
            return False
        self.stop_times.insert(pos, stop_time)
        return True


@dataclass
class Feed:
    """A GTFS feed: routes, trips and stops in memory, shapes spooled to disk."""

    path: str = ""
    routes: dict[str, Route] = field(default_factory=dict)
    trips: dict[str, Trip] = field(default_factory=dict)
    services: dict[str, Service] = field(default_factory=dict)
    stops: dict[str, dict[str, str]] = field(default_factory=dict)
    shapes: ShapeContainer = field(default_factory=ShapeContainer)
    publisher_name: str = ""
    publisher_url: str = ""
    lang: str = ""
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    version: str = ""
    contact_email: str = ""
    contact_url: str = ""
    default_lang: str = ""
    agency_add_flds: list[str] = field(default_factory=list)
    stop_add_flds: list[str] = field(default_factory=list)
    route_add_flds: list[str] = field(default_factory=list)
    trip_add_flds: list[str] = field(default_factory=list)

    def __enter__(self) -> Feed:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def add_route(self, route: Route) -> Route:
        self.routes[route.id] = route
        return route

    def add_trip(self, trip: Trip) -> Trip:
        """Register a trip together with its route and service."""
        self.routes.setdefault(trip.route.id, trip.route)
        self.services.setdefault(trip.service.id, trip.service)
        self.trips[trip.id] = trip
        return trip

    def get_trip(self, trip_id: str) -> Trip | None:
        return self.trips.get(trip_id)

    def close(self) -> None:
        """Release the shape storage."""
        self.shapes.close()