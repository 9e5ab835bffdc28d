"""Shared pytest fixtures for the range map test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from rangemap.models import BaseFeature, Extent, PhotoRef, SpeciesJob

# ---------------------------------------------------------------------------
# Geometry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sri_lanka_range() -> Polygon:
    """Rough bounding polygon of Sri Lanka (lon 79.5..81.9, lat 5.9..9.8)."""
    return box(79.5, 5.9, 81.9, 9.8)


@pytest.fixture()
def split_range() -> MultiPolygon:
    """Two disjoint range blocks."""
    return MultiPolygon([box(10.0, 10.0, 12.0, 12.0), box(20.0, 14.0, 22.0, 16.0)])


@pytest.fixture()
def bowtie() -> Polygon:
    """Self-intersecting polygon; invalid until repaired."""
    return Polygon([(0, 0), (10, 10), (10, 0), (0, 10), (0, 0)])


@pytest.fixture()
def south_asia_features() -> list[BaseFeature]:
    """A small base layer around Sri Lanka."""
    return [
        BaseFeature(name="India", geometry=box(68.0, 8.0, 90.0, 30.0)),
        BaseFeature(name="Sri Lanka", geometry=box(79.5, 5.9, 81.9, 9.8)),
        BaseFeature(name="Maldives", geometry=box(72.8, 2.0, 73.7, 4.5)),
        BaseFeature(name="Australia", geometry=box(113.0, -39.0, 154.0, -11.0)),
    ]


@pytest.fixture()
def square_extent() -> Extent:
    return Extent(xmin=0.0, xmax=10.0, ymin=0.0, ymax=10.0)


# ---------------------------------------------------------------------------
# Job fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def leopard_job(tmp_path: Path) -> SpeciesJob:
    return SpeciesJob(
        common_name="Sri Lankan Leopard",
        scientific_name="Panthera pardus kotiya",
        range_path=tmp_path / "ranges" / "sri_lankan_leopard",
        photo=PhotoRef(path=tmp_path / "photos" / "leopard.jpg", credit="A. Photographer"),
        palette_key="jungle",
    )
