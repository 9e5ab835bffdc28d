"""Centroid labels for cropped base-layer features, split into focus and context."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from .errors import LabelDataError
from .geometry import centroid_xy, intersects_any, is_usable_geometry, repair
from .models import BaseFeature, LabelCandidate, LabelClass, LabelSets

_LOGGER = logging.getLogger("rangemap.labels")


def space_text(text: str, spaces: int = 1) -> str:
    """Uppercase ``text`` and join every character, spaces included, with ``spaces`` blanks.

    ``"Sri Lanka"`` becomes ``"S R I   L A N K A"``.
    """
    if spaces < 0:
        raise ValueError("spaces must be >= 0")
    return (" " * spaces).join(text.upper())


def _clean_name(name: Any) -> str | None:
    if name is None:
        return None
    if isinstance(name, float) and math.isnan(name):
        return None
    text = str(name).strip()
    return text or None


def place_labels(
    features: Iterable[BaseFeature],
    range_geometry: Any,
    *,
    letter_spacing: int = 1,
) -> LabelSets:
    """Build focus/context label candidates for ``features``.

    A feature is ``focus`` when its polygon (not its centroid) intersects the
    range. Unnamed, empty or invalid features and features without a defined
    centroid are excluded. Output order follows the input order.
    """
    range_shape = repair(range_geometry)
    focus: list[LabelCandidate] = []
    context: list[LabelCandidate] = []
    total = 0
    missing_names = 0
    excluded = 0

    for feature in features:
        total += 1
        name = _clean_name(feature.name)
        if name is None:
            missing_names += 1
            excluded += 1
            continue
        geometry = feature.geometry
        if not is_usable_geometry(geometry) or not geometry.is_valid:
            excluded += 1
            continue
        xy = centroid_xy(geometry)
        if xy is None:
            excluded += 1
            continue

        in_range = intersects_any(geometry, [range_shape])
        label_class = LabelClass.FOCUS if in_range else LabelClass.CONTEXT
        candidate = LabelCandidate(
            x=xy[0],
            y=xy[1],
            text=space_text(name, letter_spacing),
            label_class=label_class,
        )
        (focus if in_range else context).append(candidate)

    issue: LabelDataError | None = None
    if total and missing_names == total:
        issue = LabelDataError(f"All {total} base features lack a name; no labels placed")
        _LOGGER.warning(issue.message)
    elif excluded:
        _LOGGER.debug("Excluded %d of %d features from labelling", excluded, total)

    return LabelSets(
        focus=tuple(focus),
        context=tuple(context),
        excluded=excluded,
        issue=issue,
    )
