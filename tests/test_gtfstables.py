import csv
import datetime
import io
import zipfile

import pytest

from pfaedle.feed import Feed, Route, Service, StopTime, Trip
from pfaedle.gtfstables import (
    copy_table,
    write_attribution,
    write_feed_info,
    write_routes,
    write_shapes,
    write_stop_times,
    write_trips,
)
from pfaedle.mots import RouteType


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def _dicts(text):
    return list(csv.DictReader(io.StringIO(text)))


@pytest.fixture
def feed_dir(tmp_path):
    (tmp_path / "agency.txt").write_text(
        "agency_id,agency_name,agency_url,agency_timezone\n"
        "a1,Example Transit,http://example.com,Europe/Berlin\n",
        encoding="utf-8",
    )
    (tmp_path / "shapes.txt").write_text(
        "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence\n"
        "keep,1.0,2.0,1\n"
        "keep,1.5,2.5,2\n"
        "drop,9.0,9.0,1\n",
        encoding="utf-8",
    )
    (tmp_path / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        "t1,08:00:00,08:00:00,s1,1\n"
        "t1,08:05:00,08:05:00,s2,2\n",
        encoding="utf-8",
    )
    return tmp_path


def _trip(trip_id="t1", freqs=()):
    route = Route("r1", RouteType.BUS, short_name="12")
    return Trip(trip_id, route, Service("svc"), shape="keep", frequencies=list(freqs))


def test_copy_table_roundtrip(feed_dir):
    out = io.StringIO()
    assert copy_table(str(feed_dir), "agency.txt", out) is True
    rows = _dicts(out.getvalue())
    assert rows == [
        {
            "agency_id": "a1",
            "agency_name": "Example Transit",
            "agency_url": "http://example.com",
            "agency_timezone": "Europe/Berlin",
        }
    ]


def test_copy_table_missing_writes_nothing(feed_dir):
    out = io.StringIO()
    assert copy_table(str(feed_dir), "calendar.txt", out) is False
    assert out.getvalue() == ""


def test_copy_table_from_zip(tmp_path):
    archive = tmp_path / "feed.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("levels.txt", "level_id,level_index\nL1,0\n")
    out = io.StringIO()
    assert copy_table(str(archive), "levels.txt", out)
    assert _rows(out.getvalue()) == [["level_id", "level_index"], ["L1", "0"]]


def test_write_routes_with_extra_fields():
    with Feed(route_add_flds=["route_sort_order"]) as feed:
        route = Route("r1", RouteType.TRAM, short_name="4", extra={"route_sort_order": "7"})
        feed.add_route(route)
        out = io.StringIO()
        write_routes(feed, out)
    rows = _dicts(out.getvalue())
    assert len(rows) == 1
    assert rows[0]["route_id"] == "r1"
    assert rows[0]["route_short_name"] == "4"
    assert rows[0]["route_type"] == str(int(RouteType.TRAM))
    assert rows[0]["route_sort_order"] == "7"


def test_write_trips_reports_frequencies():
    with Feed() as feed:
        feed.add_trip(_trip())
        out = io.StringIO()
        assert write_trips(feed, out) is False
        rows = _dicts(out.getvalue())
        assert rows[0]["trip_id"] == "t1"
        assert rows[0]["route_id"] == "r1"
        assert rows[0]["service_id"] == "svc"
        assert rows[0]["shape_id"] == "keep"

        feed.add_trip(_trip("t2", freqs=[(0, 3600, 600)]))
        assert write_trips(feed, io.StringIO()) is True


def test_write_shapes_filters_and_appends_stored(feed_dir):
    with Feed(path=str(feed_dir)) as feed:
        feed.shapes.add("keep")
        feed.shapes.add("new", [(3.0, 4.0, 0.0), (3.5, 4.5, 10.0)])
        out = io.StringIO()
        write_shapes(feed, out)
    rows = _dicts(out.getvalue())
    ids = [r["shape_id"] for r in rows]
    assert "drop" not in ids
    assert ids == ["keep", "keep", "new", "new"]
    assert [r["shape_pt_sequence"] for r in rows[2:]] == ["1", "2"]
    assert float(rows[3]["shape_pt_lat"]) == 3.5


def test_write_shapes_without_source_table():
    with Feed() as feed:
        feed.shapes.add("s", [(1.0, 2.0, -1.0)])
        out = io.StringIO()
        write_shapes(feed, out)
    rows = _dicts(out.getvalue())
    assert len(rows) == 1
    assert rows[0]["shape_dist_traveled"] == ""


def test_write_stop_times_updates_distances(feed_dir):
    with Feed(path=str(feed_dir)) as feed:
        trip = _trip()
        trip.add_stop_time(StopTime("s1", 1, shape_dist_travelled=0.0))
        trip.add_stop_time(StopTime("s2", 2, shape_dist_travelled=150.5))
        feed.add_trip(trip)
        out = io.StringIO()
        write_stop_times(feed, out)
    rows = _dicts(out.getvalue())
    assert [r["stop_id"] for r in rows] == ["s1", "s2"]
    assert float(rows[0]["shape_dist_traveled"]) == 0.0
    assert float(rows[1]["shape_dist_traveled"]) == 150.5
    assert rows[1]["arrival_time"] == "08:05:00"


def test_write_stop_times_unknown_trip(feed_dir):
    with Feed(path=str(feed_dir)) as feed:
        with pytest.raises(KeyError):
            write_stop_times(feed, io.StringIO())


def test_write_feed_info():
    with Feed(
        publisher_name="Pub",
        publisher_url="http://example.com",
        lang="de",
        start_date=datetime.date(2020, 1, 2),
        contact_email="info@example.com",
    ) as feed:
        out = io.StringIO()
        write_feed_info(feed, out)
    rows = _dicts(out.getvalue())
    assert rows[0]["feed_publisher_name"] == "Pub"
    assert rows[0]["feed_start_date"] == "20200102"
    assert rows[0]["feed_end_date"] == ""
    assert rows[0]["feed_contact_email"] == "info@example.com"


def test_write_attribution():
    out = io.StringIO()
    write_attribution(out)
    rows = _rows(out.getvalue())
    assert rows[1] == [
        "OpenStreetMap contributors",
        "https://www.openstreetmap.org/copyright",
        "1",
    ]
    assert len(rows) == 2