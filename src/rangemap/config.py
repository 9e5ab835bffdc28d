"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .errors import InvalidGeometryError
from .extent import DEFAULT_BUFFER_DEG
from .layout import LayoutSettings
from .models import Extent
from .palettes import DEFAULT_PALETTES, PaletteTable, parse_palette_name
from .regions import DEFAULT_REGION_TABLE, RegionTable
from .scalebar import DEFAULT_MILES


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    return _path_from_cfg(value, field_name, root_dir)


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    data_source: str
    map_author: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectConfig:
        return cls(
            data_source=_str(
                raw.get("data_source", "Source: IUCN Red List of Threatened Species"),
                "project.data_source",
            ),
            map_author=_str(raw.get("map_author", "Map by the range map project"), "project.map_author"),
        )


@dataclass(frozen=True, slots=True)
class PathsConfig:
    base_layer: Path
    inset_layer: Path | None
    queue_csv: Path
    outputs_dir: Path
    photos_dir: Path
    shapefile_root: Path
    manifests_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.outputs_dir, self.manifests_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            base_layer=_path_from_cfg(raw.get("base_layer"), "paths.base_layer", root_dir),
            inset_layer=_optional_path(raw.get("inset_layer"), "paths.inset_layer", root_dir),
            queue_csv=_path_from_cfg(
                raw.get("queue_csv", "data/species_queue.csv"), "paths.queue_csv", root_dir
            ),
            outputs_dir=_path_from_cfg(raw.get("outputs_dir", "outputs"), "paths.outputs_dir", root_dir),
            photos_dir=_path_from_cfg(raw.get("photos_dir", "data/photos"), "paths.photos_dir", root_dir),
            shapefile_root=_path_from_cfg(
                raw.get("shapefile_root", "data/ranges"), "paths.shapefile_root", root_dir
            ),
            manifests_dir=_path_from_cfg(
                raw.get("manifests_dir", "build/manifests"), "paths.manifests_dir", root_dir
            ),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    buffer_deg: float
    scale_bar_miles: int
    letter_spacing: int

    @classmethod
    def from_mapping(
        cls,
        extent_raw: Mapping[str, Any],
        scale_raw: Mapping[str, Any],
        labels_raw: Mapping[str, Any],
    ) -> MapConfig:
        buffer_deg = _float(extent_raw.get("buffer_deg", DEFAULT_BUFFER_DEG), "extent.buffer_deg")
        miles = _int(scale_raw.get("miles", DEFAULT_MILES), "scale_bar.miles")
        spacing = _int(labels_raw.get("letter_spacing", 1), "labels.letter_spacing")
        if buffer_deg < 0:
            raise ValueError("extent.buffer_deg must be >= 0")
        if miles <= 0:
            raise ValueError("scale_bar.miles must be > 0")
        if spacing < 0:
            raise ValueError("labels.letter_spacing must be >= 0")
        return cls(buffer_deg=buffer_deg, scale_bar_miles=miles, letter_spacing=spacing)


def _layout_from_mapping(raw: Mapping[str, Any]) -> LayoutSettings:
    defaults = LayoutSettings()
    window_raw = _mapping(raw.get("inset_window"), "layout.inset_window")
    window = defaults.inset_window
    if window_raw:
        bounds = {
            key: _float(window_raw.get(key), f"layout.inset_window.{key}")
            for key in ("xmin", "xmax", "ymin", "ymax")
        }
        try:
            window = Extent(**bounds)
        except InvalidGeometryError as exc:
            raise ValueError(f"layout.inset_window: {exc}") from exc

    def num(key: str) -> float:
        return _float(raw.get(key, getattr(defaults, key)), f"layout.{key}")

    return LayoutSettings(
        page_width_mm=num("page_width_mm"),
        left_column_fraction=num("left_column_fraction"),
        title_mm=num("title_mm"),
        attribution_mm=num("attribution_mm"),
        photo_gap_mm=num("photo_gap_mm"),
        photo_credit_mm=num("photo_credit_mm"),
        column_gutter=num("column_gutter"),
        column_trim=num("column_trim"),
        divider_offset=num("divider_offset"),
        inset_window=window,
    )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    dpi: int
    format: str
    output_suffix: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        dpi = _int(raw.get("dpi", 300), "render.dpi")
        if dpi <= 0:
            raise ValueError("render.dpi must be > 0")
        fmt = _str(raw.get("format", "png"), "render.format").casefold()
        suffix = raw.get("output_suffix", "_range_map")
        if not isinstance(suffix, str):
            raise ValueError("Expected string for 'render.output_suffix'")
        return cls(dpi=dpi, format=fmt, output_suffix=suffix)


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    project: ProjectConfig
    paths: PathsConfig
    map: MapConfig
    layout: LayoutSettings
    render: RenderConfig
    palettes: PaletteTable
    regions: RegionTable

    @property
    def root_dir(self) -> Path:
        return self.source_path.parent

    def output_path_for(self, slug: str) -> Path:
        """Deterministic output file for a species slug."""
        return self.paths.outputs_dir / f"{slug}{self.render.output_suffix}.{self.render.format}"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        palettes_raw = _mapping(raw.get("palettes"), "palettes")
        default_palette = parse_palette_name(
            _str(palettes_raw.get("default", "jungle"), "palettes.default")
        )
        return cls(
            source_path=source_path.resolve(),
            project=ProjectConfig.from_mapping(_mapping(raw.get("project"), "project")),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            map=MapConfig.from_mapping(
                _mapping(raw.get("extent"), "extent"),
                _mapping(raw.get("scale_bar"), "scale_bar"),
                _mapping(raw.get("labels"), "labels"),
            ),
            layout=_layout_from_mapping(_mapping(raw.get("layout"), "layout")),
            render=RenderConfig.from_mapping(_mapping(raw.get("render"), "render")),
            palettes=PaletteTable(palettes=DEFAULT_PALETTES, default=default_palette),
            regions=DEFAULT_REGION_TABLE,
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
