"""Domain models shared across pipeline modules."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Union

from .errors import InvalidGeometryError, RangeMapError
from .util import slugify


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


@dataclass(frozen=True, slots=True)
class Extent:
    """Rectangular map window in degrees (WGS-84)."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def __post_init__(self) -> None:
        values = (self.xmin, self.xmax, self.ymin, self.ymax)
        if any(math.isnan(float(value)) for value in values):
            raise InvalidGeometryError(f"Extent has NaN bounds: {values}", stage="extent")
        if not self.xmin < self.xmax or not self.ymin < self.ymax:
            raise InvalidGeometryError(f"Extent is degenerate: {values}", stage="extent")

    @property
    def lon_span(self) -> float:
        return self.xmax - self.xmin

    @property
    def lat_span(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> tuple[float, float]:
        return ((self.xmin + self.xmax) / 2.0, (self.ymin + self.ymax) / 2.0)

    @property
    def aspect(self) -> float:
        """Height over width in degrees."""
        return self.lat_span / self.lon_span

    def to_dict(self) -> dict[str, float]:
        return {"xmin": self.xmin, "xmax": self.xmax, "ymin": self.ymin, "ymax": self.ymax}


@dataclass(frozen=True, slots=True)
class BaseFeature:
    """Named reference polygon (usually a country) from the base layer."""

    name: str | None
    geometry: Any


class LabelClass(Enum):
    FOCUS = "focus"
    CONTEXT = "context"


@dataclass(frozen=True, slots=True)
class LabelCandidate:
    x: float
    y: float
    text: str
    label_class: LabelClass


@dataclass(frozen=True, slots=True)
class LabelSets:
    """Focus and context labels for one map, in feature iteration order."""

    focus: tuple[LabelCandidate, ...] = ()
    context: tuple[LabelCandidate, ...] = ()
    excluded: int = 0
    issue: RangeMapError | None = None

    @property
    def all_labels(self) -> tuple[LabelCandidate, ...]:
        return (*self.focus, *self.context)


class ScaleUnit(Enum):
    MILES = "mi"
    KILOMETERS = "km"


@dataclass(frozen=True, slots=True)
class ScaleBar:
    anchor_x: float
    anchor_y: float
    length_deg: float
    unit: ScaleUnit
    magnitude: int

    @property
    def label(self) -> str:
        return f"{self.magnitude} {self.unit.value}"


@dataclass(frozen=True, slots=True)
class ScaleBars:
    miles: ScaleBar
    kilometers: ScaleBar
    km_per_degree: float
    label_offset_deg: float = 0.55

    def __iter__(self):
        return iter((self.miles, self.kilometers))


class Region(Enum):
    ASIA = "ASIA"
    AFRICA = "AFRICA"
    NORTH_AMERICA = "NORTH_AMERICA"
    SOUTH_AMERICA = "SOUTH_AMERICA"
    EUROPE = "EUROPE"
    OCEANIA = "OCEANIA"
    WORLD = "WORLD"

    @property
    def display(self) -> str:
        """Two-line form used on the locator inset."""
        return self.value.replace("_", "\n")


class PaletteName(Enum):
    DESERT = "desert"
    SAVANNA = "savanna"
    JUNGLE = "jungle"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    OCEAN = "ocean"


@dataclass(frozen=True, slots=True)
class Palette:
    land: str
    border: str
    range: str
    stroke: str
    focus_text: str
    context_text: str
    species_text: str
    ocean: str


@dataclass(frozen=True, slots=True)
class PanelRect:
    """Normalized rectangle; ``y`` is measured from the canvas bottom."""

    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def as_axes_box(self) -> list[float]:
        return [self.x, self.y, self.width, self.height]

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class Panel(Enum):
    MAIN_MAP = "main_map"
    LOCATOR_INSET = "locator_inset"
    PHOTO = "photo"
    TITLE = "title"
    ATTRIBUTION = "attribution"
    DIVIDER = "divider"


@dataclass(frozen=True, slots=True)
class LayoutPlan:
    """Panel rectangles in canvas space plus the physical page size."""

    panels: Mapping[Panel, PanelRect]
    page_width_mm: float
    page_height_mm: float
    map_height_mm: float
    inset_height_mm: float
    photo_height_mm: float
    photo_credit_height: float = 0.0
    anchors: Mapping[str, tuple[float, float]] = field(default_factory=dict)
    inset_window: Extent | None = None

    def __getitem__(self, panel: Panel) -> PanelRect:
        return self.panels[panel]

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_width_mm": self.page_width_mm,
            "page_height_mm": self.page_height_mm,
            "map_height_mm": self.map_height_mm,
            "inset_height_mm": self.inset_height_mm,
            "photo_height_mm": self.photo_height_mm,
            "panels": {panel.value: rect.to_dict() for panel, rect in self.panels.items()},
            "anchors": {name: list(xy) for name, xy in self.anchors.items()},
        }


@dataclass(frozen=True, slots=True)
class PhotoRef:
    """A species photo and its credit line."""

    path: Path
    credit: str = ""


@dataclass(frozen=True, slots=True)
class SpeciesJob:
    """Inputs for one species map, as read from the job queue."""

    common_name: str
    scientific_name: str
    range_path: Path
    photo: PhotoRef | None = None
    palette_key: str = "jungle"
    continent: str = ""
    iucn_status: str = ""

    @property
    def slug(self) -> str:
        return slugify(self.common_name)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], root_dir: Path) -> SpeciesJob:
        common_name = _require_str(row.get("common_name"), "common_name")
        scientific_name = _require_str(row.get("scientific_name"), "scientific_name")
        range_path = _resolve(Path(_require_str(row.get("shapefile_path"), "shapefile_path")), root_dir)

        photo_raw = _optional_str(row.get("photo_path"))
        photo = (
            PhotoRef(path=_resolve(Path(photo_raw), root_dir), credit=_optional_str(row.get("photo_credit")))
            if photo_raw
            else None
        )
        palette_key = _optional_str(row.get("palette_type")) or "jungle"
        return cls(
            common_name=common_name,
            scientific_name=scientific_name,
            range_path=range_path,
            photo=photo,
            palette_key=palette_key,
            continent=_optional_str(row.get("continent")),
            iucn_status=_optional_str(row.get("iucn_status")),
        )


def _resolve(path: Path, root_dir: Path) -> Path:
    return path if path.is_absolute() else root_dir / path


class QueueStatus(Enum):
    PENDING = "pending"
    BUILT = "built"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not QueueStatus.PENDING


@dataclass(frozen=True, slots=True)
class QueueItem:
    id: str
    inputs: SpeciesJob
    output_path: Path
    status: QueueStatus = QueueStatus.PENDING
    error: RangeMapError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "common_name": self.inputs.common_name,
            "output_path": str(self.output_path),
            "status": self.status.value,
            "error": self.error.to_error_dict() if self.error is not None else None,
        }


@dataclass(frozen=True, slots=True)
class BuildOk:
    output_path: Path
    plan: Any = None


@dataclass(frozen=True, slots=True)
class BuildErr:
    error: RangeMapError


BuildResult = Union[BuildOk, BuildErr]


@dataclass(frozen=True, slots=True)
class RunManifest:
    """Audit record written after each queue run."""

    generated_at_utc: str
    config_hash_sha256: str
    git_commit: str | None
    force_rebuild: bool
    summary: Mapping[str, int]
    items: tuple[Mapping[str, Any], ...]

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        git_commit: str | None,
        force_rebuild: bool,
        summary: Mapping[str, int],
        items: tuple[Mapping[str, Any], ...],
    ) -> RunManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            git_commit=git_commit,
            force_rebuild=force_rebuild,
            summary=summary,
            items=items,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "git_commit": self.git_commit,
            "force_rebuild": self.force_rebuild,
            "summary": dict(self.summary),
            "items": [dict(item) for item in self.items],
        }
