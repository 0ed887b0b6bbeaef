"""GeoCat - a geospatial data catalog whose sessions can be shared as links."""

__version__ = "0.1.0"
