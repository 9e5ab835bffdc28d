"""Coarse continent bucket for a map extent."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Extent, Region


@dataclass(frozen=True, slots=True)
class RegionRect:
    """Open lon/lat rectangle; points on the boundary do not match."""

    region: Region
    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.lon_min < lon < self.lon_max and self.lat_min < lat < self.lat_max


@dataclass(frozen=True, slots=True)
class RegionTable:
    """Rectangles checked in order; the first match wins."""

    rects: tuple[RegionRect, ...]
    fallback: Region = Region.WORLD

    def classify(self, lon: float, lat: float) -> Region:
        for rect in self.rects:
            if rect.contains(lon, lat):
                return rect.region
        return self.fallback


# Rectangles overlap (Middle East, Central America); the order is part of the contract.
DEFAULT_REGION_TABLE = RegionTable(
    rects=(
        RegionRect(Region.ASIA, 25.0, 145.0, -15.0, 55.0),
        RegionRect(Region.AFRICA, -20.0, 55.0, -40.0, 40.0),
        RegionRect(Region.NORTH_AMERICA, -140.0, -30.0, 10.0, 75.0),
        RegionRect(Region.SOUTH_AMERICA, -90.0, -30.0, -60.0, 15.0),
        RegionRect(Region.EUROPE, -15.0, 45.0, 35.0, 72.0),
        RegionRect(Region.OCEANIA, 100.0, 180.0, -50.0, 0.0),
    ),
)


def classify_region(extent: Extent, table: RegionTable = DEFAULT_REGION_TABLE) -> Region:
    cx, cy = extent.center
    return table.classify(cx, cy)
