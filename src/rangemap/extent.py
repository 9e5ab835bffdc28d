"""Padded map extent from a range geometry."""

from __future__ import annotations

import math
from typing import Any

from .errors import InvalidGeometryError
from .geometry import bounding_box, buffer_bounds
from .models import Extent

DEFAULT_BUFFER_DEG = 8.0


def compute_extent(range_geometry: Any, buffer_deg: float = DEFAULT_BUFFER_DEG) -> Extent:
    """Bounding box of ``range_geometry`` grown by ``buffer_deg`` and snapped outward.

    The lower bounds are floored and the upper bounds ceiled, so the result
    always contains the buffered box.
    """
    if buffer_deg < 0:
        raise ValueError("buffer_deg must be >= 0")
    bounds = bounding_box(range_geometry)
    xmin, ymin, xmax, ymax = bounds
    if xmax <= xmin or ymax <= ymin:
        raise InvalidGeometryError(
            f"Range geometry has a zero-area bounding box: {bounds}",
            stage="extent",
        )
    bxmin, bymin, bxmax, bymax = buffer_bounds(bounds, buffer_deg)
    return Extent(
        xmin=float(math.floor(bxmin)),
        xmax=float(math.ceil(bxmax)),
        ymin=float(math.floor(bymin)),
        ymax=float(math.ceil(bymax)),
    )
