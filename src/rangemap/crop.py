"""Clip the reference land layer to a map extent."""

from __future__ import annotations

import logging
from typing import Iterable

from .geometry import clip_to_extent, is_usable_geometry, polygonal_part, repair
from .models import BaseFeature, Extent

_LOGGER = logging.getLogger("rangemap.crop")


def crop_base_layer(extent: Extent, features: Iterable[BaseFeature]) -> tuple[BaseFeature, ...]:
    """Repair, clip and filter base features to ``extent``.

    Geometries are repaired before clipping. Features left empty by the clip
    are dropped.
    """
    cropped: list[BaseFeature] = []
    repaired_count = 0
    for feature in features:
        geometry = feature.geometry
        if not is_usable_geometry(geometry):
            continue
        if not geometry.is_valid:
            repaired_count += 1
        fixed = polygonal_part(repair(geometry))
        if not is_usable_geometry(fixed):
            continue
        clipped = polygonal_part(clip_to_extent(fixed, extent))
        if not is_usable_geometry(clipped):
            continue
        cropped.append(BaseFeature(name=feature.name, geometry=clipped))
    if repaired_count:
        _LOGGER.debug("Repaired %d invalid base-layer geometries before cropping", repaired_count)
    return tuple(cropped)
