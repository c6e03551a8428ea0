"""Unit tests for TransformStore and rotation helpers."""

import pytest

from models.scene import Position
from services.transform_store import TransformStore, display_rotation, snap_rotation


@pytest.mark.unit
class TestRotationHelpers:
    """Tests for display normalization and snapping."""

    @pytest.mark.parametrize(
        "degrees,expected",
        [(0, 0), (45, 45), (360, 0), (370, 10), (-90, 270), (-720, 0), (1085, 5)],
    )
    def test_display_rotation_normalizes(self, degrees, expected):
        assert display_rotation(degrees) == pytest.approx(expected)

    def test_display_rotation_stays_below_360(self):
        assert 0 <= display_rotation(-1e-14) < 360

    @pytest.mark.parametrize(
        "degrees,expected",
        [(10, 0), (23, 45), (67, 45), (68, 90), (-30, -45), (400, 405)],
    )
    def test_snap_rotation(self, degrees, expected):
        """Snapping rounds to 45 degree steps without normalizing."""
        assert snap_rotation(degrees) == expected


@pytest.mark.unit
class TestTransformStore:
    """Tests for lazy transforms and bulk loading."""

    def test_default_transform_centers_layer(self):
        """New layers sit at the viewport center minus half the layer size."""
        store = TransformStore(viewport_width=1280, viewport_height=720)
        transform = store.get("a")
        assert transform.position == Position(540, 260)
        assert transform.rotation_degrees == 0

    def test_get_creates_once(self):
        store = TransformStore()
        first = store.get("a")
        store.viewport_width = 100
        assert store.get("a") == first
        assert len(store) == 1

    def test_remove(self):
        store = TransformStore()
        store.get("a")
        assert store.remove("a") is True
        assert store.remove("a") is False
        assert "a" not in store

    def test_set_position_keeps_rotation(self):
        store = TransformStore()
        store.set_rotation("a", 30)
        transform = store.set_position("a", 5, 6)
        assert transform.position == Position(5, 6)
        assert transform.rotation_degrees == 30

    def test_rotation_is_stored_unbounded(self):
        store = TransformStore()
        assert store.set_rotation("a", 810).rotation_degrees == 810

    def test_transforms_are_immutable_values(self):
        store = TransformStore()
        before = store.set_rotation("a", 10)
        store.set_rotation("a", 20)
        assert before.rotation_degrees == 10

    def test_load_fills_missing_fields_with_defaults(self):
        store = TransformStore(viewport_width=400, viewport_height=400)
        store.get("stale")
        store.load(["a", "b"], {"a": 90}, {"b": Position(1, 2)})

        assert len(store) == 2
        assert "stale" not in store
        assert store.get("a").rotation_degrees == 90
        assert store.get("a").position == Position(100, 100)
        assert store.get("b").rotation_degrees == 0
        assert store.get("b").position == Position(1, 2)
