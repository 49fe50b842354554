"""Writers for the single tables of an output GTFS feed."""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from pfaedle.feed import Feed

ATTRIBUTION_NAME = "OpenStreetMap contributors"
ATTRIBUTION_URL = "https://www.openstreetmap.org/copyright"

ROUTE_FIELDS = (
    "route_id",
    "agency_id",
    "route_short_name",
    "route_long_name",
    "route_desc",
    "route_type",
    "route_url",
    "route_color",
    "route_text_color",
)

TRIP_FIELDS = (
    "route_id",
    "trip_id",
    "service_id",
    "trip_headsign",
    "trip_short_name",
    "direction_id",
    "block_id",
    "shape_id",
)

SHAPE_FIELDS = (
    "shape_id",
    "shape_pt_lat",
    "shape_pt_lon",
    "shape_pt_sequence",
    "shape_dist_traveled",
)

FEED_INFO_FIELDS = (
    "feed_publisher_name",
    "feed_publisher_url",
    "feed_lang",
    "feed_start_date",
    "feed_end_date",
    "feed_version",
    "feed_contact_email",
    "feed_contact_url",
    "default_lang",
)

ATTRIBUTION_FIELDS = ("organization_name", "attribution_url", "is_producer")


def _writer(out: TextIO) -> csv.writer:
    return csv.writer(out, lineterminator="\n")


def _fmt_dist(value: float) -> str:
    """Distances below zero mean "not given" and are written empty."""
    return str(value) if value > -0.5 else ""


def _find_member(archive: zipfile.ZipFile, name: str) -> str | None:
    for member in archive.namelist():
        if member == name or member.rsplit("/", 1)[-1] == name:
            return member
    return None


def _prepare(reader: csv.DictReader) -> csv.DictReader | None:
    if reader.fieldnames is None:
        return None
    reader.fieldnames = [f.strip() for f in reader.fieldnames]
    return reader


@contextmanager
def _table(source: str, name: str) -> Iterator[csv.DictReader | None]:
    """Open a table of a feed directory or ZIP archive, None if it is missing."""
    path = Path(source) if source else None
    if path is not None and path.is_dir():
        file = path / name
        if not file.is_file():
            yield None
            return
        with open(file, newline="", encoding="utf-8-sig") as fh:
            yield _prepare(csv.DictReader(fh))
    elif path is not None and path.is_file() and zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as archive:
            member = _find_member(archive, name)
            if member is None:
                yield None
                return
            with archive.open(member) as raw, io.TextIOWrapper(
                raw, encoding="utf-8-sig", newline=""
            ) as fh:
                yield _prepare(csv.DictReader(fh))
    else:
        yield None


def copy_table(source_dir: str, name: str, out: TextIO) -> bool:
    """Copy a table of the source feed unchanged; False if the feed lacks it."""
    with _table(source_dir, name) as reader:
        if reader is None:
            return False
        fields = list(reader.fieldnames or [])
        writer = _writer(out)
        writer.writerow(fields)
        for row in reader:
            writer.writerow([row.get(f) or "" for f in fields])
    return True


def write_routes(feed: Feed, out: TextIO) -> None:
    """Write routes.txt from the routes held in memory."""
    writer = _writer(out)
    writer.writerow([*ROUTE_FIELDS, *feed.route_add_flds])
    for route in feed.routes.values():
        writer.writerow(
            [
                route.id,
                route.agency_id,
                route.short_name,
                route.long_name,
                route.desc,
                int(route.type),
                route.url,
                route.color,
                route.text_color,
                *(route.extra.get(f, "") for f in feed.route_add_flds),
            ]
        )


def write_shapes(feed: Feed, out: TextIO) -> None:
    """Write shapes.txt: kept shapes of the source feed, then the stored ones."""
    writer = _writer(out)
    writer.writerow(SHAPE_FIELDS)
    with _table(feed.path, "shapes.txt") as reader:
        if reader is not None:
            for row in reader:
                shape_id = (row.get("shape_id") or "").strip()
                if not feed.shapes.has(shape_id):
                    continue
                writer.writerow(
                    [
                        shape_id,
                        (row.get("shape_pt_lat") or "").strip(),
                        (row.get("shape_pt_lon") or "").strip(),
                        (row.get("shape_pt_sequence") or "").strip(),
                        (row.get("shape_dist_traveled") or "").strip(),
                    ]
                )
    for point in feed.shapes.points():
        writer.writerow(
            [point.shape_id, point.lat, point.lng, point.seq, _fmt_dist(point.travel_dist)]
        )


def write_trips(feed: Feed, out: TextIO) -> bool:
    """Write trips.txt; return whether any trip has frequencies."""
    writer = _writer(out)
    writer.writerow([*TRIP_FIELDS, *feed.trip_add_flds])
    has_freqs = False
    for trip in feed.trips.values():
        if trip.frequencies:
            has_freqs = True
        writer.writerow(
            [
                trip.route.id,
                trip.id,
                trip.service.id,
                trip.headsign,
                trip.short_name,
                trip.direction,
                trip.block_id,
                trip.shape,
                *(trip.extra.get(f, "") for f in feed.trip_add_flds),
            ]
        )
    return has_freqs


def write_stop_times(feed: Feed, out: TextIO) -> None:
    """Write stop_times.txt from the source, with updated shape distances.

    Raises KeyError for a stop time whose trip the feed does not know.
    """
    writer = _writer(out)
    with _table(feed.path, "stop_times.txt") as reader:
        if reader is None:
            writer.writerow(
                [
                    "trip_id",
                    "arrival_time",
                    "departure_time",
                    "stop_id",
                    "stop_sequence",
                    "shape_dist_traveled",
                ]
            )
            return
        fields = list(reader.fieldnames or [])
        if "shape_dist_traveled" not in fields:
            fields.append("shape_dist_traveled")
        writer.writerow(fields)
        dists: dict[int, float] = {}
        cur_trip_id: str | None = None
        for row in reader:
            trip_id = (row.get("trip_id") or "").strip()
            if trip_id != cur_trip_id:
                trip = feed.get_trip(trip_id)
                if trip is None:
                    raise KeyError(f"stop time references unknown trip {trip_id!r}")
                dists = {st.seq: st.shape_dist_travelled for st in trip.stop_times}
                cur_trip_id = trip_id
            seq_text = (row.get("stop_sequence") or "").strip()
            if seq_text.isdigit() and int(seq_text) in dists:
                row["shape_dist_traveled"] = _fmt_dist(dists[int(seq_text)])
            writer.writerow([row.get(f) or "" for f in fields])


def write_feed_info(feed: Feed, out: TextIO) -> None:
    """Write feed_info.txt from the feed's publisher information."""
    writer = _writer(out)
    writer.writerow(FEED_INFO_FIELDS)
    writer.writerow(
        [
            feed.publisher_name,
            feed.publisher_url,
            feed.lang,
            feed.start_date.strftime("%Y%m%d") if feed.start_date else "",
            feed.end_date.strftime("%Y%m%d") if feed.end_date else "",
            feed.version,
            feed.contact_email,
            feed.contact_url,
            feed.default_lang,
        ]
    )


def write_attribution(out: TextIO) -> None:
    """Write attributions.txt crediting the map data contributors."""
    writer = _writer(out)
    writer.writerow(ATTRIBUTION_FIELDS)
    writer.writerow([ATTRIBUTION_NAME, ATTRIBUTION_URL, 1])