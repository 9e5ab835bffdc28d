"""Page layout: physical panel sizes in millimetres, normalized to canvas space.

The page is a two-column template. The left column holds the main map, whose
height follows the extent's aspect ratio so the map is never stretched. The
right column holds the locator inset (top) and the photo (bottom), sized so
the column is flush with the map's top and bottom edges. A title band sits
above both columns and an attribution band below them.

Horizontal positions are fixed fractions of the page width; vertical
positions are millimetres divided by the derived page height.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import Extent, LayoutPlan, Panel, PanelRect

MM_PER_INCH = 25.4


@dataclass(frozen=True, slots=True)
class LayoutSettings:
    page_width_mm: float = 240.0
    left_column_fraction: float = 0.75
    title_mm: float = 28.0
    attribution_mm: float = 16.0
    photo_gap_mm: float = 0.0
    photo_credit_mm: float = 4.0
    column_gutter: float = 0.008
    column_trim: float = 0.010
    divider_offset: float = 0.003
    inset_window: Extent = field(
        default_factory=lambda: Extent(xmin=0.0, xmax=160.0, ymin=-60.0, ymax=72.0)
    )

    def __post_init__(self) -> None:
        if self.page_width_mm <= 0:
            raise ValueError("page_width_mm must be > 0")
        if not 0.0 < self.left_column_fraction < 1.0:
            raise ValueError("left_column_fraction must be between 0 and 1")
        for name in ("title_mm", "attribution_mm", "photo_gap_mm", "photo_credit_mm"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.column_gutter < 0 or self.column_trim < self.column_gutter:
            raise ValueError("column_trim must be >= column_gutter >= 0")
        if self.column_trim >= 1.0 - self.left_column_fraction:
            raise ValueError("column_trim must be smaller than the right column")

    @property
    def right_column_fraction(self) -> float:
        return 1.0 - self.left_column_fraction


DEFAULT_LAYOUT = LayoutSettings()


def compute_layout(extent: Extent, settings: LayoutSettings = DEFAULT_LAYOUT) -> LayoutPlan:
    """Compute the panel rectangles for a map of ``extent``."""
    col_left_mm = settings.page_width_mm * settings.left_column_fraction
    col_right_mm = settings.page_width_mm * settings.right_column_fraction

    map_height_mm = col_left_mm * (extent.lat_span / extent.lon_span)
    page_height_mm = map_height_mm + settings.title_mm + settings.attribution_mm

    right_x = settings.left_column_fraction + settings.column_gutter
    right_width = settings.right_column_fraction - settings.column_trim

    # Very wide extents give a map shorter than the inset; shrink the inset
    # uniformly so it keeps its geographic aspect and stays inside the column.
    inset_height_mm = col_right_mm * settings.inset_window.aspect
    inset_width = right_width
    if inset_height_mm > map_height_mm:
        shrink = map_height_mm / inset_height_mm
        inset_height_mm = map_height_mm
        inset_width = right_width * shrink

    photo_height_mm = max(map_height_mm - inset_height_mm - settings.photo_gap_mm, 0.0)

    attribution_h = settings.attribution_mm / page_height_mm
    map_h = map_height_mm / page_height_mm
    title_h = settings.title_mm / page_height_mm
    inset_h = inset_height_mm / page_height_mm
    photo_h = photo_height_mm / page_height_mm
    credit_h = min(settings.photo_credit_mm / page_height_mm, photo_h)

    map_y = attribution_h
    title_y = attribution_h + map_h
    inset_y = title_y - inset_h
    photo_y = attribution_h

    panels = {
        Panel.ATTRIBUTION: PanelRect(x=0.0, y=0.0, width=1.0, height=attribution_h),
        Panel.MAIN_MAP: PanelRect(
            x=0.0, y=map_y, width=settings.left_column_fraction, height=map_h
        ),
        Panel.TITLE: PanelRect(x=0.0, y=title_y, width=1.0, height=title_h),
        Panel.LOCATOR_INSET: PanelRect(x=right_x, y=inset_y, width=inset_width, height=inset_h),
        Panel.PHOTO: PanelRect(x=right_x, y=photo_y, width=right_width, height=photo_h),
        Panel.DIVIDER: PanelRect(
            x=settings.left_column_fraction + settings.divider_offset,
            y=map_y,
            width=0.0,
            height=map_h,
        ),
    }
    anchors = {
        "title": (0.5, title_y + title_h * 0.67),
        "scientific_name": (0.5, title_y + title_h * 0.24),
        "data_source": (0.02, attribution_h * 0.65),
        "map_author": (0.02, attribution_h * 0.28),
        "photo_credit": (right_x, photo_y + credit_h * 0.45),
    }
    return LayoutPlan(
        panels=panels,
        page_width_mm=settings.page_width_mm,
        page_height_mm=page_height_mm,
        map_height_mm=map_height_mm,
        inset_height_mm=inset_height_mm,
        photo_height_mm=photo_height_mm,
        photo_credit_height=credit_h,
        anchors=anchors,
        inset_window=settings.inset_window,
    )


def page_size_inches(plan: LayoutPlan) -> tuple[float, float]:
    return (plan.page_width_mm / MM_PER_INCH, plan.page_height_mm / MM_PER_INCH)
