"""Tests for continent classification of map extents."""

from __future__ import annotations

import pytest

from rangemap.models import Extent, Region
from rangemap.regions import DEFAULT_REGION_TABLE, RegionRect, RegionTable, classify_region


def _extent_around(lon: float, lat: float) -> Extent:
    return Extent(xmin=lon - 5.0, xmax=lon + 5.0, ymin=lat - 5.0, ymax=lat + 5.0)


class TestClassifyRegion:
    @pytest.mark.parametrize(
        ("lon", "lat", "expected"),
        [
            (80.5, 7.5, Region.ASIA),
            (20.0, 0.0, Region.AFRICA),
            (-100.0, 40.0, Region.NORTH_AMERICA),
            (-60.0, -20.0, Region.SOUTH_AMERICA),
            (10.0, 50.0, Region.EUROPE),
            (135.0, -25.0, Region.OCEANIA),
            (-150.0, 0.0, Region.WORLD),
        ],
    )
    def test_default_rectangles(self, lon: float, lat: float, expected: Region) -> None:
        assert classify_region(_extent_around(lon, lat)) is expected

    def test_overlap_resolved_by_table_order(self) -> None:
        # Middle East sits in both the Asia and Africa rectangles.
        assert DEFAULT_REGION_TABLE.classify(40.0, 30.0) is Region.ASIA
        # Central America sits in both American rectangles.
        assert DEFAULT_REGION_TABLE.classify(-85.0, 12.0) is Region.NORTH_AMERICA

    def test_boundaries_are_exclusive(self) -> None:
        # lon 25 is Asia's western edge, so the point falls through to Africa.
        assert DEFAULT_REGION_TABLE.classify(25.0, 30.0) is Region.AFRICA

    def test_custom_table_and_fallback(self) -> None:
        table = RegionTable(
            rects=(RegionRect(Region.EUROPE, 0.0, 10.0, 0.0, 10.0),),
            fallback=Region.OCEANIA,
        )
        assert classify_region(Extent(xmin=1, xmax=9, ymin=1, ymax=9), table) is Region.EUROPE
        assert classify_region(Extent(xmin=50, xmax=60, ymin=1, ymax=9), table) is Region.OCEANIA


class TestRegionDisplay:
    def test_two_word_regions_break_onto_two_lines(self) -> None:
        assert Region.NORTH_AMERICA.display == "NORTH\nAMERICA"
        assert Region.SOUTH_AMERICA.display == "SOUTH\nAMERICA"

    def test_single_word_regions_unchanged(self) -> None:
        assert Region.ASIA.display == "ASIA"
