"""Building blocks for map-matching GTFS feeds: MOT configuration, feed model, shape storage and GTFS table writers."""

__version__ = "0.1.0"