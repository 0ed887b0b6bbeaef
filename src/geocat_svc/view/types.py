"""View state types - camera, clock, picked features and location marker."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_SECONDS_PER_DAY = 86400
# Julian day number whose noon-based day contains the Unix epoch.
_UNIX_EPOCH_DAY_NUMBER = 2440587
_UNIX_EPOCH_SECONDS_OF_DAY = 43200


class ViewerMode(str, Enum):
    """Active map viewer; the value is the share-document tag."""
    CESIUM_TERRAIN = "3d"
    CESIUM_ELLIPSOID = "3dSmooth"
    LEAFLET = "2d"

    @property
    def is_3d(self) -> bool:
        return self is not ViewerMode.LEAFLET


@dataclass(frozen=True, slots=True)
class Cartesian3:
    """Earth-centred, earth-fixed coordinates in metres."""
    x: float
    y: float
    z: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> Cartesian3:
        return cls(float(data["x"]), float(data["y"]), float(data["z"]))


@dataclass(frozen=True, slots=True)
class Rectangle:
    """Geographic extent in radians."""
    west: float
    south: float
    east: float
    north: float

    def to_degrees(self) -> dict[str, float]:
        return {
            "west": math.degrees(self.west),
            "south": math.degrees(self.south),
            "east": math.degrees(self.east),
            "north": math.degrees(self.north),
        }

    @classmethod
    def from_degrees(cls, west: float, south: float, east: float, north: float) -> Rectangle:
        return cls(math.radians(west), math.radians(south), math.radians(east), math.radians(north))


@dataclass(frozen=True, slots=True)
class CameraView:
    """A camera: extent plus, for 3D viewers, the raw camera frame."""
    rectangle: Rectangle
    position: Cartesian3 | None = None
    direction: Cartesian3 | None = None
    up: Cartesian3 | None = None

    def to_dict(self, include_frame: bool = True) -> dict[str, Any]:
        d: dict[str, Any] = self.rectangle.to_degrees()
        if include_frame:
            for name in ("position", "direction", "up"):
                value = getattr(self, name)
                if value is not None:
                    d[name] = value.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CameraView:
        frame = {
            name: Cartesian3.from_dict(data[name])
            for name in ("position", "direction", "up")
            if data.get(name) is not None
        }
        rectangle = Rectangle.from_degrees(data["west"], data["south"], data["east"], data["north"])
        return cls(rectangle=rectangle, **frame)


@dataclass(frozen=True, slots=True)
class JulianDate:
    """Clock time as a Julian day number and seconds since that day's noon."""
    day_number: int
    seconds_of_day: float

    @classmethod
    def from_datetime(cls, dt: datetime) -> JulianDate:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        total = dt.timestamp() + _UNIX_EPOCH_SECONDS_OF_DAY
        days, seconds = divmod(total, _SECONDS_PER_DAY)
        return cls(day_number=_UNIX_EPOCH_DAY_NUMBER + int(days), seconds_of_day=seconds)

    def to_datetime(self) -> datetime:
        seconds = (
            (self.day_number - _UNIX_EPOCH_DAY_NUMBER) * _SECONDS_PER_DAY
            + self.seconds_of_day
            - _UNIX_EPOCH_SECONDS_OF_DAY
        )
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    def to_dict(self) -> dict[str, float]:
        return {"dayNumber": self.day_number, "secondsOfDay": self.seconds_of_day}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JulianDate:
        return cls(day_number=int(data["dayNumber"]), seconds_of_day=float(data["secondsOfDay"]))


# A property value may vary with clock time.
PropertyValue = Any


@dataclass(slots=True)
class Entity:
    """
    A feature on the map, as handed over by the rendering engine.

    ``id`` may be regenerated every time its source reloads, so it is never
    used to identify the entity in share documents. Raster-sourced features
    carry the name of their ``imagery_layer``.
    """
    name: str
    description: str = ""
    properties: dict[str, PropertyValue] = field(default_factory=dict)
    position: Cartesian3 | None = None
    imagery_layer: str | None = None
    id: str | None = None

    def properties_at(self, time: JulianDate) -> dict[str, Any]:
        return {
            key: value(time) if callable(value) else value
            for key, value in self.properties.items()
        }


@dataclass(slots=True)
class PickedFeatures:
    """Result of a pick on the map."""
    pick_position: Cartesian3
    provider_coords: dict[str, Any] = field(default_factory=dict)
    features: list[Entity] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PickRequest:
    """A replayed pick, waiting for the rendering engine to re-run it."""
    provider_coords: dict[str, Any]
    pick_coords: dict[str, float]
    current: dict[str, Any] | None = None
    entities: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class LocationMarker:
    name: str
    position: Cartesian3


@dataclass
class ViewState:
    """Everything about the current view that a share link captures."""
    camera: CameraView
    home_camera: CameraView
    clock: JulianDate
    base_map_name: str = ""
    viewer_mode: ViewerMode = ViewerMode.CESIUM_TERRAIN
    show_splitter: bool = False
    split_position: float = 0.5
    picked_features: PickedFeatures | None = None
    selected_feature: Entity | None = None
    location_marker: LocationMarker | None = None
    pending_pick: PickRequest | None = None
    user_properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def default(cls) -> ViewState:
        world = Rectangle.from_degrees(-180.0, -90.0, 180.0, 90.0)
        return cls(
            camera=CameraView(world),
            home_camera=CameraView(world),
            clock=JulianDate.from_datetime(datetime.now(timezone.utc)),
        )
