"""
View state: entity hashing, clock and geodesy conversions.
"""

from datetime import datetime, timezone

import pytest

from geocat_svc.view.entities import hash_entity
from geocat_svc.view.geodesy import cartesian_to_cartographic, cartographic_to_cartesian
from geocat_svc.view.types import CameraView, Cartesian3, Entity, JulianDate, Rectangle, ViewerMode

NOON = JulianDate(2460000, 0.0)
LATER = JulianDate(2460000, 3600.0)


# ============================================================================
# Entity hashing
# ============================================================================

class TestHashEntity:

    def test_same_attributes_same_hash(self):
        a = Entity(name="Parcel", description="Lot 1", properties={"area": 10}, id="random-1")
        b = Entity(name="Parcel", description="Lot 1", properties={"area": 10}, id="random-2")

        assert hash_entity(a, NOON) == hash_entity(b, NOON)

    @pytest.mark.parametrize("changed", [
        Entity(name="Parcel 2", description="Lot 1", properties={"area": 10}),
        Entity(name="Parcel", description="Lot 2", properties={"area": 10}),
        Entity(name="Parcel", description="Lot 1", properties={"area": 11}),
        Entity(name="Parcel", description="Lot 1", properties={"area": 10}, position=Cartesian3(1, 2, 3)),
    ])
    def test_visible_change_changes_hash(self, changed):
        base = Entity(name="Parcel", description="Lot 1", properties={"area": 10})

        assert hash_entity(base, NOON) != hash_entity(changed, NOON)

    def test_clock_time_is_part_of_identity(self):
        entity = Entity(name="Parcel")

        assert hash_entity(entity, NOON) != hash_entity(entity, LATER)

    def test_time_dynamic_properties(self):
        entity = Entity(name="Gauge", properties={"level": lambda t: t.seconds_of_day / 3600})

        assert entity.properties_at(LATER) == {"level": 1.0}
        assert len(hash_entity(entity, LATER)) == 64


# ============================================================================
# Clock and camera
# ============================================================================

class TestJulianDate:

    def test_unix_epoch(self):
        epoch = JulianDate.from_datetime(datetime(1970, 1, 1, tzinfo=timezone.utc))

        assert epoch == JulianDate(2440587, 43200.0)

    def test_round_trip_datetime(self):
        when = datetime(2024, 3, 1, 6, 30, tzinfo=timezone.utc)

        assert JulianDate.from_datetime(when).to_datetime() == when

    def test_from_dict(self):
        assert JulianDate.from_dict({"dayNumber": "2460000", "secondsOfDay": 5}) == JulianDate(2460000, 5.0)


class TestCamera:

    def test_from_dict_reads_degrees(self):
        camera = CameraView.from_dict({
            "west": 0, "south": -90, "east": 180, "north": 90,
            "position": {"x": 1, "y": 2, "z": 3},
        })

        assert camera.rectangle == Rectangle.from_degrees(0, -90, 180, 90)
        assert camera.position == Cartesian3(1.0, 2.0, 3.0)
        assert camera.direction is None

    def test_viewer_modes(self):
        assert ViewerMode("3dSmooth").is_3d
        assert not ViewerMode.LEAFLET.is_3d


# ============================================================================
# Geodesy
# ============================================================================

class TestGeodesy:

    def test_equator_prime_meridian(self):
        position = cartographic_to_cartesian(0.0, 0.0)

        assert position.x == pytest.approx(6378137.0)
        assert position.y == pytest.approx(0.0, abs=1e-6)
        assert position.z == pytest.approx(0.0, abs=1e-6)

    def test_round_trip(self):
        location = cartesian_to_cartographic(cartographic_to_cartesian(144.96, -37.81, 35.0))

        assert location.longitude == pytest.approx(144.96)
        assert location.latitude == pytest.approx(-37.81)
        assert location.height == pytest.approx(35.0, abs=1e-3)
