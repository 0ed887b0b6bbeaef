"""WGS84 conversions between earth-fixed cartesian and geographic coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pyproj import Transformer

from .types import Cartesian3

# EPSG:4978 is WGS84 geocentric (x, y, z); EPSG:4979 is WGS84 geographic 3D.
_GEOCENTRIC = "EPSG:4978"
_GEOGRAPHIC_3D = "EPSG:4979"


@dataclass(frozen=True, slots=True)
class Cartographic:
    """Longitude and latitude in degrees, height in metres above the ellipsoid."""
    longitude: float
    latitude: float
    height: float


@lru_cache(maxsize=None)
def _transformer(source: str, target: str) -> Transformer:
    return Transformer.from_crs(source, target, always_xy=True)


def cartesian_to_cartographic(position: Cartesian3) -> Cartographic:
    lon, lat, height = _transformer(_GEOCENTRIC, _GEOGRAPHIC_3D).transform(
        position.x, position.y, position.z
    )
    return Cartographic(longitude=lon, latitude=lat, height=height)


def cartographic_to_cartesian(longitude: float, latitude: float, height: float = 0.0) -> Cartesian3:
    x, y, z = _transformer(_GEOGRAPHIC_3D, _GEOCENTRIC).transform(longitude, latitude, height)
    return Cartesian3(x, y, z)
