"""Latitude-corrected scale bars in miles and kilometers."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .errors import InvalidGeometryError
from .models import Extent, ScaleBar, ScaleBars, ScaleUnit

KM_PER_DEGREE_EQUATOR = 111.32
KM_PER_MILE = 1.609
DEFAULT_MILES = 500


@dataclass(frozen=True, slots=True)
class ScaleBarPlacement:
    """Offsets in degrees from the extent's lower-left corner."""

    offset_x: float = 2.0
    miles_offset_y: float = 3.0
    km_offset_y: float = 1.8
    label_offset_y: float = 0.55


DEFAULT_PLACEMENT = ScaleBarPlacement()


def km_per_degree(latitude: float) -> float:
    """Length of one degree of longitude at ``latitude``."""
    return KM_PER_DEGREE_EQUATOR * math.cos(math.radians(latitude))


def compute_scale_bars(
    extent: Extent,
    miles: int = DEFAULT_MILES,
    placement: ScaleBarPlacement = DEFAULT_PLACEMENT,
) -> ScaleBars:
    if miles <= 0:
        raise ValueError("miles must be > 0")
    center_lat = (extent.ymin + extent.ymax) / 2.0
    kpd = km_per_degree(center_lat)
    if kpd <= 1e-9:
        raise InvalidGeometryError(
            f"Scale bar undefined at centre latitude {center_lat:.2f}",
            stage="scale_bar",
        )

    km = int(round(miles * KM_PER_MILE))
    anchor_x = extent.xmin + placement.offset_x
    miles_bar = ScaleBar(
        anchor_x=anchor_x,
        anchor_y=extent.ymin + placement.miles_offset_y,
        length_deg=miles * KM_PER_MILE / kpd,
        unit=ScaleUnit.MILES,
        magnitude=int(miles),
    )
    km_bar = ScaleBar(
        anchor_x=anchor_x,
        anchor_y=extent.ymin + placement.km_offset_y,
        length_deg=km / kpd,
        unit=ScaleUnit.KILOMETERS,
        magnitude=km,
    )
    return ScaleBars(
        miles=miles_bar,
        kilometers=km_bar,
        km_per_degree=kpd,
        label_offset_deg=placement.label_offset_y,
    )
