"""Tests for the bounding box helpers."""

import pytest

from pyroo import geom


class TestBoundingBox2D:
    def test_from_points(self):
        box = geom.BoundingBox2D.from_points([(3, -1), (-2, 4), (0, 0)])
        assert box == geom.BoundingBox2D.from_bounds(-2, -1, 3, 4)
        assert (box.width, box.height) == (5, 5)

    def test_from_no_points(self):
        with pytest.raises(ValueError):
            geom.BoundingBox2D.from_points([])

    def test_contains_is_inclusive(self):
        box = geom.BoundingBox2D.from_bounds(0, 0, 10, 10)
        assert box.contains(0, 10)
        assert box.contains(5, 5)
        assert not box.contains(10.5, 5)

    def test_copy_is_independent(self):
        box = geom.BoundingBox2D.from_bounds(0, 0, 1, 1)
        other = box.copy()
        other.min.x = -1
        assert box.min.x == 0

    def test_default_boxes_do_not_share_points(self):
        a, b = geom.BoundingBox2D(), geom.BoundingBox2D()
        a.max.x = 3
        assert b.max.x == 0
