"""matplotlib renderer for a planned species map page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .geometry import extent_box, is_usable_geometry
from .io_data import PhotoAsset
from .layout import DEFAULT_LAYOUT, page_size_inches
from .models import BaseFeature, LabelCandidate, Panel
from .pipeline import SpeciesMapPlan

_LOGGER = logging.getLogger("rangemap.render")


@dataclass(frozen=True, slots=True)
class _TextPolicy:
    focus_pt: float
    context_pt: float
    species_pt: float
    scientific_pt: float
    scale_pt: float
    inset_marker_pt: float
    region_pt: float
    title_pt: float
    subtitle_pt: float
    attribution_pt: float
    credit_pt: float
    title_color: str
    subtitle_color: str
    attribution_color: str
    scale_color: str


@dataclass(frozen=True, slots=True)
class _StrokePolicy:
    land_width: float
    range_width: float
    range_alpha: float
    scale_width: float
    divider_width: float


@dataclass(frozen=True, slots=True)
class _InsetPolicy:
    water: str
    land: str
    border: str
    frame: str
    frame_width: float
    land_width: float
    box_alpha: float
    box_width: float
    region_color: str
    region_drop_deg: float


_TEXT_POLICY = _TextPolicy(
    focus_pt=8.5,
    context_pt=6.5,
    species_pt=8.5,
    scientific_pt=7.4,
    scale_pt=6.0,
    inset_marker_pt=5.3,
    region_pt=6.5,
    title_pt=28.0,
    subtitle_pt=16.0,
    attribution_pt=6.0,
    credit_pt=4.8,
    title_color="#2B2B2B",
    subtitle_color="#888888",
    attribution_color="#AAAAAA",
    scale_color="#666666",
)
_STROKE_POLICY = _StrokePolicy(
    land_width=0.43,
    range_width=0.85,
    range_alpha=0.85,
    scale_width=1.1,
    divider_width=0.8,
)
_INSET_POLICY = _InsetPolicy(
    water="#C8DAE5",
    land="#D5CFC3",
    border="#B8B0A4",
    frame="#7A9EAD",
    frame_width=2.0,
    land_width=0.23,
    box_alpha=0.45,
    box_width=2.0,
    region_color="#5A8A9A",
    region_drop_deg=9.0,
)

_SCIENTIFIC_OFFSET = (0.2, -1.5)


class MapRenderer:
    """Draw one species page to an image file at a fixed physical size."""

    def __init__(self, *, dpi: int = 300, image_format: str = "png") -> None:
        self.dpi = dpi
        self.image_format = image_format

    def render(
        self,
        plan: SpeciesMapPlan,
        *,
        output_path: Path,
        photo: PhotoAsset | None = None,
        inset_features: Sequence[BaseFeature] = (),
    ) -> Path:
        plt = _require_matplotlib()
        fig = plt.figure(figsize=page_size_inches(plan.layout), dpi=self.dpi)
        fig.patch.set_facecolor("white")
        try:
            self._draw_main_map(fig, plan)
            _LOGGER.debug("  main map drawn")
            self._draw_locator_inset(fig, plan, inset_features)
            _LOGGER.debug("  locator inset drawn")
            self._draw_divider(fig, plan)
            self._draw_text_bands(fig, plan)
            if photo is not None:
                self._draw_photo(fig, plan, photo)

            # Output only appears once complete.
            output_path.parent.mkdir(parents=True, exist_ok=True)
            partial = output_path.with_name(output_path.name + ".part")
            try:
                fig.savefig(partial, dpi=self.dpi, format=self.image_format, facecolor="white")
                partial.replace(output_path)
            except Exception:
                partial.unlink(missing_ok=True)
                raise
            return output_path
        finally:
            plt.close(fig)

    def _draw_main_map(self, fig: Any, plan: SpeciesMapPlan) -> None:
        palette = plan.palette.palette
        extent = plan.extent
        ax = fig.add_axes(plan.layout[Panel.MAIN_MAP].as_axes_box())
        _frameless(ax, facecolor=palette.ocean)

        _plot_geometries(
            ax,
            [feature.geometry for feature in plan.land],
            facecolor=palette.land,
            edgecolor=palette.border,
            linewidth=_STROKE_POLICY.land_width,
            zorder=1,
        )
        _plot_geometries(
            ax,
            [plan.range_geometry],
            facecolor=palette.range,
            edgecolor=palette.stroke,
            linewidth=_STROKE_POLICY.range_width,
            alpha=_STROKE_POLICY.range_alpha,
            zorder=2,
        )
        _draw_labels(ax, plan.labels.focus, color=palette.focus_text, size=_TEXT_POLICY.focus_pt)
        _draw_labels(ax, plan.labels.context, color=palette.context_text, size=_TEXT_POLICY.context_pt)

        label_x, label_y = plan.species_anchor
        ax.text(
            label_x,
            label_y,
            f"{plan.job.common_name} range",
            color=palette.species_text,
            fontsize=_TEXT_POLICY.species_pt,
            fontweight="bold",
            ha="left",
            va="center",
            zorder=5,
        )
        ax.text(
            label_x + _SCIENTIFIC_OFFSET[0],
            label_y + _SCIENTIFIC_OFFSET[1],
            plan.job.scientific_name,
            color=palette.species_text,
            fontsize=_TEXT_POLICY.scientific_pt,
            fontstyle="italic",
            ha="left",
            va="center",
            zorder=5,
        )

        for bar in plan.scale_bars:
            ax.plot(
                [bar.anchor_x, bar.anchor_x + bar.length_deg],
                [bar.anchor_y, bar.anchor_y],
                color=_TEXT_POLICY.scale_color,
                linewidth=_STROKE_POLICY.scale_width,
                solid_capstyle="butt",
                zorder=5,
            )
            ax.text(
                bar.anchor_x,
                bar.anchor_y + plan.scale_bars.label_offset_deg,
                bar.label,
                color=_TEXT_POLICY.scale_color,
                fontsize=_TEXT_POLICY.scale_pt,
                ha="left",
                va="center",
                zorder=5,
            )

        ax.set_xlim(extent.xmin, extent.xmax)
        ax.set_ylim(extent.ymin, extent.ymax)

    def _draw_locator_inset(
        self,
        fig: Any,
        plan: SpeciesMapPlan,
        inset_features: Sequence[BaseFeature],
    ) -> None:
        window = plan.layout.inset_window or DEFAULT_LAYOUT.inset_window
        palette = plan.palette.palette
        ax = fig.add_axes(plan.layout[Panel.LOCATOR_INSET].as_axes_box())
        ax.set_facecolor(_INSET_POLICY.water)
        ax.set_xticks([])
        ax.set_yticks([])
        for spine in ax.spines.values():
            spine.set_visible(True)
            spine.set_linewidth(_INSET_POLICY.frame_width)
            spine.set_edgecolor(_INSET_POLICY.frame)

        _plot_geometries(
            ax,
            [feature.geometry for feature in inset_features],
            facecolor=_INSET_POLICY.land,
            edgecolor=_INSET_POLICY.border,
            linewidth=_INSET_POLICY.land_width,
            zorder=1,
        )
        _plot_geometries(
            ax,
            [extent_box(plan.extent)],
            facecolor=palette.range,
            edgecolor=palette.stroke,
            linewidth=_INSET_POLICY.box_width,
            alpha=_INSET_POLICY.box_alpha,
            zorder=2,
        )
        box_x, box_y = plan.extent.center
        ax.text(
            box_x,
            box_y,
            "MAP\nAREA",
            color="white",
            fontsize=_TEXT_POLICY.inset_marker_pt,
            fontweight="bold",
            ha="center",
            va="center",
            linespacing=0.85,
            clip_on=True,
            zorder=3,
        )
        region_x, _ = window.center
        ax.text(
            region_x,
            window.ymax - _INSET_POLICY.region_drop_deg,
            plan.region.display,
            color=_INSET_POLICY.region_color,
            fontsize=_TEXT_POLICY.region_pt,
            fontweight="bold",
            ha="center",
            va="center",
            zorder=3,
        )
        ax.set_xlim(window.xmin, window.xmax)
        ax.set_ylim(window.ymin, window.ymax)

    def _draw_divider(self, fig: Any, plan: SpeciesMapPlan) -> None:
        lines = _require_matplotlib_lines()
        rect = plan.layout[Panel.DIVIDER]
        fig.add_artist(
            lines.Line2D(
                [rect.x, rect.x],
                [rect.y, rect.top],
                transform=fig.transFigure,
                color=plan.palette.palette.border,
                linewidth=_STROKE_POLICY.divider_width,
            )
        )

    def _draw_text_bands(self, fig: Any, plan: SpeciesMapPlan) -> None:
        anchors = plan.layout.anchors
        title_x, title_y = anchors["title"]
        fig.text(
            title_x,
            title_y,
            plan.job.common_name,
            fontsize=_TEXT_POLICY.title_pt,
            fontweight="bold",
            color=_TEXT_POLICY.title_color,
            ha="center",
            va="center",
        )
        sci_x, sci_y = anchors["scientific_name"]
        fig.text(
            sci_x,
            sci_y,
            plan.job.scientific_name,
            fontsize=_TEXT_POLICY.subtitle_pt,
            fontstyle="italic",
            color=_TEXT_POLICY.subtitle_color,
            ha="center",
            va="center",
        )
        for key, text in (("data_source", plan.data_source), ("map_author", plan.map_author)):
            if not text:
                continue
            x, y = anchors[key]
            fig.text(
                x,
                y,
                text,
                fontsize=_TEXT_POLICY.attribution_pt,
                color=_TEXT_POLICY.attribution_color,
                ha="left",
                va="center",
            )

    def _draw_photo(self, fig: Any, plan: SpeciesMapPlan, photo: PhotoAsset) -> None:
        rect = plan.layout[Panel.PHOTO]
        credit_h = plan.layout.photo_credit_height
        image_h = rect.height - credit_h
        if image_h <= 0 or rect.width <= 0:
            _LOGGER.warning("  Photo panel has no room on this page; photo omitted")
            return
        ax = fig.add_axes([rect.x, rect.y + credit_h, rect.width, image_h])
        ax.imshow(photo.image, interpolation="bilinear")
        ax.axis("off")
        if photo.credit:
            x, y = plan.layout.anchors["photo_credit"]
            fig.text(
                x,
                y,
                f"Photo: {photo.credit}",
                fontsize=_TEXT_POLICY.credit_pt,
                fontstyle="italic",
                color=_TEXT_POLICY.attribution_color,
                ha="left",
                va="center",
            )


def _frameless(ax: Any, *, facecolor: str) -> None:
    ax.set_facecolor(facecolor)
    ax.set_xticks([])
    ax.set_yticks([])
    for spine in ax.spines.values():
        spine.set_visible(False)


def _plot_geometries(
    ax: Any,
    geometries: Sequence[Any],
    *,
    facecolor: str,
    edgecolor: str,
    linewidth: float,
    alpha: float = 1.0,
    zorder: int = 1,
) -> None:
    shapes = [geometry for geometry in geometries if is_usable_geometry(geometry)]
    if not shapes:
        return
    gpd = _require_geopandas()
    gpd.GeoSeries(shapes).plot(
        ax=ax,
        aspect=None,
        facecolor=facecolor,
        edgecolor=edgecolor,
        linewidth=linewidth,
        alpha=alpha,
        zorder=zorder,
    )


def _draw_labels(
    ax: Any,
    labels: Sequence[LabelCandidate],
    *,
    color: str,
    size: float,
) -> None:
    for label in labels:
        ax.text(
            label.x,
            label.y,
            label.text,
            color=color,
            fontsize=size,
            ha="center",
            va="center",
            zorder=4,
        )


def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


def _require_matplotlib_lines() -> Any:
    try:
        import matplotlib.lines as lines
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return lines


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for geometry plotting") from exc
    return gpd
