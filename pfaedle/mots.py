"""Modes of transportation (GTFS route types) and helpers to name them."""

from __future__ import annotations

import enum
from collections.abc import Iterable


class RouteType(enum.IntEnum):
    """GTFS route types known to the matcher."""

    TRAM = 0
    SUBWAY = 1
    RAIL = 2
    BUS = 3
    FERRY = 4
    CABLE_CAR = 5
    GONDOLA = 6
    FUNICULAR = 7
    TROLLEYBUS = 11
    MONORAIL = 12
    COACH = 200


_TYPE_NAMES: dict[RouteType, str] = {
    RouteType.TRAM: "tram",
    RouteType.SUBWAY: "subway",
    RouteType.RAIL: "rail",
    RouteType.BUS: "bus",
    RouteType.FERRY: "ferry",
    RouteType.CABLE_CAR: "cablecar",
    RouteType.GONDOLA: "gondola",
    RouteType.FUNICULAR: "funicular",
    RouteType.COACH: "coach",
    RouteType.TROLLEYBUS: "trolleybus",
    RouteType.MONORAIL: "monorail",
}

_ALIASES: dict[str, RouteType] = {
    "tram": RouteType.TRAM,
    "streetcar": RouteType.TRAM,
    "subway": RouteType.SUBWAY,
    "metro": RouteType.SUBWAY,
    "rail": RouteType.RAIL,
    "train": RouteType.RAIL,
    "bus": RouteType.BUS,
    "ferry": RouteType.FERRY,
    "boat": RouteType.FERRY,
    "ship": RouteType.FERRY,
    "cablecar": RouteType.CABLE_CAR,
    "gondola": RouteType.GONDOLA,
    "funicular": RouteType.FUNICULAR,
    "coach": RouteType.COACH,
    "mono-rail": RouteType.MONORAIL,
    "monorail": RouteType.MONORAIL,
    "trolley": RouteType.TROLLEYBUS,
    "trolleybus": RouteType.TROLLEYBUS,
    "trolley-bus": RouteType.TROLLEYBUS,
}

# Order in which names are tried when building file name suffixes.
_FILE_NAME_ORDER = (
    "tram",
    "subway",
    "rail",
    "bus",
    "ferry",
    "cablecar",
    "gondola",
    "funicular",
    "coach",
    "trolleybus",
    "monorail",
)


def types_from_string(name: str) -> set[RouteType]:
    """Return the route types a name or numeric GTFS code stands for.

    Unknown names yield an empty set.
    """
    key = name.strip().lower()
    if key == "all":
        return set(RouteType)
    if key in _ALIASES:
        return {_ALIASES[key]}
    try:
        code = int(key)
    except ValueError:
        return set()
    try:
        return {RouteType(code)}
    except ValueError:
        return set()


def type_string(route_type: RouteType | int) -> str:
    """Return the canonical name of a route type."""
    return _TYPE_NAMES[RouteType(route_type)]


def mot_isect(a: Iterable[RouteType], b: Iterable[RouteType]) -> set[RouteType]:
    """Return the route types contained in both collections."""
    return set(a) & set(b)


def parse_mots(spec: str = "all") -> set[RouteType]:
    """Parse a comma separated list of mode names or codes."""
    result: set[RouteType] = set()
    for part in spec.split(","):
        result |= types_from_string(part)
    return result


def file_name_mot_str(mots: Iterable[RouteType]) -> str:
    """Build a dash separated name for a set of modes, usable in file names."""
    remaining = set(mots)
    parts: list[str] = []
    for name in _FILE_NAME_ORDER:
        types = types_from_string(name)
        isect = mot_isect(remaining, types)
        if len(isect) == len(types):
            parts.append(name)
            remaining -= isect
    parts.extend(type_string(mot) for mot in sorted(remaining))
    return "-".join(parts)