import pytest

from pfaedle.shapes import ShapeContainer, ShapePoint


@pytest.fixture
def container():
    with ShapeContainer() as c:
        yield c


def test_add_and_read_back(container):
    container.add("s1", [(1.0, 2.0, 0.0), (1.5, 2.5, 10.0)])
    pts = list(container.points())
    assert pts == [
        ShapePoint("s1", 1.0, 2.0, 0.0, 1),
        ShapePoint("s1", 1.5, 2.5, 10.0, 2),
    ]


def test_multiple_shapes_keep_order_and_sequence(container):
    container.add("a", [(0.0, 0.0, 0.0), (0.1, 0.1, 1.0), (0.2, 0.2, 2.0)])
    container.add("b", [(5.0, 5.0, 0.0)])
    pts = list(container.points())
    assert [p.shape_id for p in pts] == ["a", "a", "a", "b"]
    assert [p.seq for p in pts] == [1, 2, 3, 1]


def test_add_returns_id_and_ignores_duplicates(container):
    assert container.add("x", [(1.0, 1.0, 0.0)]) == "x"
    assert container.add("x", [(9.0, 9.0, 9.0)]) == "x"
    pts = list(container.points())
    assert len(pts) == 1
    assert pts[0].lat == 1.0
    assert len(container) == 1


def test_removed_shapes_are_skipped(container):
    container.add("keep", [(1.0, 1.0, 0.0)])
    container.add("drop", [(2.0, 2.0, 0.0)])
    container.remove("drop")
    assert [p.shape_id for p in container.points()] == ["keep"]
    assert not container.has("drop")


def test_get_ref(container):
    container.add("known", [])
    assert container.get_ref("known") == "known"
    assert container.get_ref("unknown") == ""


def test_id_without_points_is_registered(container):
    container.add("empty")
    assert container.has("empty")
    assert "empty" in container
    assert list(container.points()) == []


def test_add_after_reading(container):
    container.add("first", [(1.0, 1.0, 0.0)])
    assert len(list(container.points())) == 1
    container.add("second", [(2.0, 2.0, 3.0)])
    assert [p.shape_id for p in container.points()] == ["first", "second"]


def test_unicode_ids(container):
    container.add("Straße-1", [(48.0, 7.8, 0.0)])
    (pt,) = container.points()
    assert pt.shape_id == "Straße-1"


def test_many_points_round_trip(container):
    src = [(i * 0.001, -i * 0.002, float(i)) for i in range(5000)]
    container.add("long", src)
    got = [(p.lat, p.lng, p.travel_dist) for p in container.points()]
    assert got == src


def test_close_releases_storage():
    c = ShapeContainer()
    c.add("s", [(1.0, 1.0, 0.0)])
    c.close()
    with pytest.raises(ValueError):
        list(c.points())