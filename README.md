# pfaedle

Building blocks for matching GTFS public transit schedules to map data:
mode-of-transport (MOT) names and configuration files, a lightweight feed
model, disk-backed shape storage, payloads for a transit network graph, and
writers for the single tables of an output GTFS feed.

The package has no runtime dependencies beyond the Python standard library
and supports Python 3.10 and later.

## Modes of transport

`pfaedle.mots` knows the GTFS route types (`RouteType`) and their common names.

```python
from pfaedle.mots import parse_mots, file_name_mot_str, mot_isect, types_from_string

mots = parse_mots("tram, bus")        # {RouteType.TRAM, RouteType.BUS}
name = file_name_mot_str(mots)        # "tram-bus"
both = mot_isect(mots, types_from_string("bus"))
```

`types_from_string` accepts names and aliases (`streetcar`, `metro`, `train`,
`boat`, `trolley-bus`, ...) as well as numeric GTFS codes; unknown names give
an empty set, and `"all"` selects every known route type. `type_string` gives
the canonical name of a route type.

## MOT configuration files

Configuration files are sectioned `key: value` text: one section per set of
modes of transport, with keys such as `osm_filter_keep`,
`routing_transition_penalty_fac` or `station_normalize_chain`. Indented lines
continue the previous value and lines starting with `#` are comments.

```python
from pfaedle.motconfig import MotConfigReader

reader = MotConfigReader()
reader.parse(["pfaedle.cfg"], "[bus]\nosm_max_snap_distance: 20")
for cfg in reader.configs:
    print(cfg.mots, cfg.osm_build_opts.max_snap_distance, cfg.routing_opts.transition_pen)
```

Each section becomes a `MotConfig` with an `OsmReadOpts` and a `RoutingOpts`.
Sections that end up with identical OSM and routing options are merged into a
single `MotConfig` holding all their modes. Deprecated keys are still read and
converted, with a warning logged; removed keys only log a warning. Malformed
input, including an invalid regular expression in a normalization chain,
raises `ParseError`, which carries the file, line and position of the problem.
The underlying `ConfigFileParser` can also be used on its own via `parse`
and `parse_str`.

The rule helpers used for filter values live in `pfaedle.motrules`:
`get_kv`, `get_filter_rule` (returning a `FilterRule`), `get_flags` (returning
`OsmFlag` values), `get_norm_rules` and `get_deep_attr_rule` (returning a
`DeepAttrRule`).

## Feed model

`pfaedle.feed` holds `Feed`, `Route`, `Trip`, `StopTime` and `Service`.
A `Feed` keeps routes, trips, services and stops in memory, remembers the path
of its source feed, and stores shapes in a `ShapeContainer`.
`Trip.add_stop_time` keeps stop times ordered by sequence and rejects a
duplicate sequence number. A `Feed` is a context manager that releases its
shape storage on exit.

## Shapes

`ShapeContainer` stores shape points in a temporary file so large feeds do
not have to be held in memory.

```python
from pfaedle.shapes import ShapeContainer

with ShapeContainer() as container:
    container.add("s1", [(47.99, 7.84, 0.0), (48.00, 7.85, 120.5)])
    for point in container.points():
        print(point)          # ShapePoint(shape_id='s1', ..., seq=1), ...
```

Only shapes still registered in the container are yielded; `remove` drops a
shape from the output, and adding an id that is already known does nothing.

## Network graph payloads

`pfaedle.netgraph` provides `NodePL` and `EdgePL`, the node and edge payloads
of a transit network graph. Their `attrs()` give the properties to be written
next to the geometry: an edge reports the number of trips on it and the sorted
route and trip short names.

## GTFS tables

`pfaedle.gtfstables` writes single GTFS tables as CSV to a text stream:

- `copy_table(source, name, out)` copies a table of a feed directory or ZIP
  archive unchanged and returns `False` if the feed has no such table;
- `write_routes`, `write_trips` (returns whether any trip has frequencies),
  `write_shapes` (kept shapes of the source feed, then the stored ones) and
  `write_stop_times` (source stop times with shape distances taken from the
  feed model; a stop time of an unknown trip raises `KeyError`);
- `write_feed_info` and `write_attribution`.

```python
import io
from pfaedle.gtfstables import write_attribution

out = io.StringIO()
write_attribution(out)
```

## What this package does not do

There is no command-line program and no command-line option handling. The
package does not read OSM data, build a routing graph or perform the map
matching itself. It also has no writer for a whole output feed: the table
writers above produce one table at a time, and assembling them into a
directory or ZIP archive is left to the caller.