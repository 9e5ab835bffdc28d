"""One species: range geometry in, composed page plan and rendered file out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

from .config import AppConfig
from .crop import crop_base_layer
from .errors import BuildFailure, InvalidGeometryError, RangeMapError
from .extent import DEFAULT_BUFFER_DEG, compute_extent
from .geometry import is_usable_geometry, repair
from .labels import place_labels
from .layout import DEFAULT_LAYOUT, LayoutSettings, compute_layout
from .models import (
    BaseFeature,
    BuildErr,
    BuildOk,
    BuildResult,
    Extent,
    LabelSets,
    LayoutPlan,
    Region,
    ScaleBars,
    SpeciesJob,
)
from .palettes import DEFAULT_PALETTE_TABLE, PaletteTable, ResolvedPalette
from .regions import DEFAULT_REGION_TABLE, RegionTable, classify_region
from .scalebar import DEFAULT_MILES, compute_scale_bars

_LOGGER = logging.getLogger("rangemap.pipeline")

_T = TypeVar("_T")

_SPECIES_LABEL_OFFSET_X = 1.5
_SPECIES_LABEL_HEIGHT_RATIO = 0.28


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    buffer_deg: float = DEFAULT_BUFFER_DEG
    scale_bar_miles: int = DEFAULT_MILES
    letter_spacing: int = 1
    layout: LayoutSettings = DEFAULT_LAYOUT
    palettes: PaletteTable = DEFAULT_PALETTE_TABLE
    regions: RegionTable = DEFAULT_REGION_TABLE
    data_source: str = "Source: IUCN Red List of Threatened Species"
    map_author: str = ""

    @classmethod
    def from_config(cls, cfg: AppConfig) -> PipelineSettings:
        return cls(
            buffer_deg=cfg.map.buffer_deg,
            scale_bar_miles=cfg.map.scale_bar_miles,
            letter_spacing=cfg.map.letter_spacing,
            layout=cfg.layout,
            palettes=cfg.palettes,
            regions=cfg.regions,
            data_source=cfg.project.data_source,
            map_author=cfg.project.map_author,
        )


@dataclass(frozen=True, slots=True)
class SpeciesMapPlan:
    """Everything the renderer needs for one page, in geographic/canvas units."""

    job: SpeciesJob
    range_geometry: Any
    extent: Extent
    land: tuple[BaseFeature, ...]
    labels: LabelSets
    scale_bars: ScaleBars
    region: Region
    palette: ResolvedPalette
    layout: LayoutPlan
    species_anchor: tuple[float, float]
    data_source: str
    map_author: str

    @property
    def warnings(self) -> tuple[str, ...]:
        out: list[str] = []
        if self.palette.warning is not None:
            out.append(str(self.palette.warning))
        if self.labels.issue is not None:
            out.append(self.labels.issue.message)
        return tuple(out)

    def summary_dict(self) -> dict[str, Any]:
        return {
            "common_name": self.job.common_name,
            "scientific_name": self.job.scientific_name,
            "extent": self.extent.to_dict(),
            "region": self.region.value,
            "palette": self.palette.name.value,
            "land_features": len(self.land),
            "focus_labels": [label.text for label in self.labels.focus],
            "context_labels": [label.text for label in self.labels.context],
            "scale_bars": {
                bar.unit.value: {"length_deg": bar.length_deg, "magnitude": bar.magnitude}
                for bar in self.scale_bars
            },
            "layout": self.layout.to_dict(),
            "warnings": list(self.warnings),
        }


def _run_stage(stage: str, species: str, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
    try:
        return fn(*args, **kwargs)
    except RangeMapError as exc:
        raise exc.with_context(stage=stage, species=species)
    except Exception as exc:
        raise BuildFailure(f"{stage} failed: {exc}", stage=stage, species=species) from exc


def prepare_range_geometry(range_geometry: Any) -> Any:
    """Validated, repaired copy of the input range; the input is never modified."""
    if not is_usable_geometry(range_geometry):
        raise InvalidGeometryError("Range geometry is empty")
    fixed = repair(range_geometry)
    if not is_usable_geometry(fixed) or not fixed.is_valid:
        raise InvalidGeometryError("Range geometry could not be repaired")
    return fixed


def plan_species_map(
    job: SpeciesJob,
    range_geometry: Any,
    base_features: Sequence[BaseFeature],
    settings: PipelineSettings,
) -> SpeciesMapPlan:
    """Run every layout stage for one species without touching the filesystem."""
    species = job.common_name
    range_shape = _run_stage("validate", species, prepare_range_geometry, range_geometry)
    extent = _run_stage("extent", species, compute_extent, range_shape, settings.buffer_deg)
    land = _run_stage("crop", species, crop_base_layer, extent, base_features)
    labels = _run_stage(
        "labels",
        species,
        place_labels,
        land,
        range_shape,
        letter_spacing=settings.letter_spacing,
    )
    scale_bars = _run_stage(
        "scale_bar", species, compute_scale_bars, extent, settings.scale_bar_miles
    )
    region = _run_stage("region", species, classify_region, extent, settings.regions)
    palette = _run_stage("palette", species, settings.palettes.resolve, job.palette_key)
    layout = _run_stage("layout", species, compute_layout, extent, settings.layout)

    _LOGGER.info(
        "  Extent: %g to %g lon | %g to %g lat",
        extent.xmin,
        extent.xmax,
        extent.ymin,
        extent.ymax,
    )
    _LOGGER.info("  Countries: %d", len(land))
    _LOGGER.info("  Focus labels: %d", len(labels.focus))
    _LOGGER.info("  Context labels: %d", len(labels.context))
    _LOGGER.info("  Continent: %s", region.display.replace("\n", " "))
    _LOGGER.info("  Page: %.0f x %.1f mm", layout.page_width_mm, layout.page_height_mm)

    return SpeciesMapPlan(
        job=job,
        range_geometry=range_shape,
        extent=extent,
        land=land,
        labels=labels,
        scale_bars=scale_bars,
        region=region,
        palette=palette,
        layout=layout,
        species_anchor=(
            extent.xmin + _SPECIES_LABEL_OFFSET_X,
            extent.ymin + extent.lat_span * _SPECIES_LABEL_HEIGHT_RATIO,
        ),
        data_source=settings.data_source,
        map_author=settings.map_author,
    )


class BuildPipeline:
    """Loads inputs, plans the page and hands it to the renderer."""

    def __init__(self, settings: PipelineSettings, repository: Any, renderer: Any) -> None:
        self.settings = settings
        self.repository = repository
        self.renderer = renderer

    def plan(self, job: SpeciesJob) -> SpeciesMapPlan:
        species = job.common_name
        range_geometry = _run_stage(
            "load_range", species, self.repository.load_range_geometry, job.range_path
        )
        base_features = _run_stage("load_base_layer", species, self.repository.load_base_features)
        return plan_species_map(job, range_geometry, base_features, self.settings)

    def build(self, job: SpeciesJob, output_path: Path) -> BuildResult:
        """Build one species map; every failure comes back as ``BuildErr``."""
        species = job.common_name
        _LOGGER.info("Building: %s", species)
        try:
            plan = self.plan(job)
            photo = _run_stage("photo", species, self.repository.load_photo, job.photo)
            inset_features = _run_stage(
                "load_inset_layer", species, self.repository.load_inset_features
            )
            _run_stage(
                "render",
                species,
                self.renderer.render,
                plan,
                output_path=output_path,
                photo=photo,
                inset_features=inset_features,
            )
        except RangeMapError as exc:
            _LOGGER.error("  FAILED: %s [%s] %s", species, exc.stage, exc.message)
            return BuildErr(error=exc)
        _LOGGER.info("  Exported: %s", output_path)
        return BuildOk(output_path=output_path, plan=plan)
