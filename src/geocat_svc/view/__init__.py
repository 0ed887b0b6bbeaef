"""View state - camera, clock, picked features and the active map."""

from .entities import hash_entity
from .map_context import MapContext, Renderable
from .types import (
    CameraView,
    Cartesian3,
    Entity,
    JulianDate,
    LocationMarker,
    PickedFeatures,
    PickRequest,
    Rectangle,
    ViewerMode,
    ViewState,
)

__all__ = [
    "CameraView",
    "Cartesian3",
    "Entity",
    "JulianDate",
    "LocationMarker",
    "MapContext",
    "PickedFeatures",
    "PickRequest",
    "Rectangle",
    "Renderable",
    "ViewerMode",
    "ViewState",
    "hash_entity",
]
