"""Species intake: unpack range archives, stage photos and register queue rows."""

from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from .io_data import find_shapefile, read_range_geometry
from .queue import upsert_queue_row
from .util import slugify

_LOGGER = logging.getLogger("rangemap.intake")

RangeLoader = Callable[[Path], Any]


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True, slots=True)
class IntakeRequest:
    """One species to add: a range source (zip, directory or ``.shp``) plus metadata."""

    common_name: str
    scientific_name: str
    range_source: Path
    photo_path: Path | None = None
    photo_credit: str = ""
    palette_type: str = "jungle"
    continent: str = ""
    iucn_status: str = ""

    @property
    def slug(self) -> str:
        return slugify(self.common_name)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> IntakeRequest:
        photo_raw = _optional_str(raw.get("photo"))
        return cls(
            common_name=_require_str(raw.get("common_name"), "common_name"),
            scientific_name=_require_str(raw.get("scientific_name"), "scientific_name"),
            range_source=_resolve(Path(_require_str(raw.get("range"), "range")), root_dir),
            photo_path=_resolve(Path(photo_raw), root_dir) if photo_raw else None,
            photo_credit=_optional_str(raw.get("photo_credit")),
            palette_type=_optional_str(raw.get("palette")) or "jungle",
            continent=_optional_str(raw.get("continent")),
            iucn_status=_optional_str(raw.get("iucn_status")),
        )


@dataclass(frozen=True, slots=True)
class IntakeResult:
    common_name: str
    shapefile_path: Path
    photo_path: Path | None
    bounds: tuple[float, float, float, float]
    queue_rows: int


@dataclass(slots=True)
class IntakeReport:
    added: list[IntakeResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def _resolve(path: Path, root_dir: Path) -> Path:
    return path if path.is_absolute() else root_dir / path


def _relative_to(path: Path, root_dir: Path) -> str:
    try:
        return path.resolve().relative_to(root_dir.resolve()).as_posix()
    except ValueError:
        return str(path)


def stage_range_source(source: Path, target_dir: Path) -> Path:
    """Return the shapefile for ``source``, extracting zip archives into ``target_dir``."""
    if not source.exists():
        raise FileNotFoundError(f"Range source not found: {source}")
    if source.is_dir():
        return find_shapefile(source)
    if zipfile.is_zipfile(source):
        target_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(source) as archive:
            archive.extractall(target_dir)
        _LOGGER.info("  Unzipped %s -> %s", source.name, target_dir)
        return find_shapefile(target_dir)
    if source.suffix.lower() == ".shp":
        return source
    raise ValueError(f"Unsupported range source (expected .zip, .shp or directory): {source}")


def stage_photo(source: Path, photos_dir: Path, slug: str) -> Path:
    if not source.exists():
        raise FileNotFoundError(f"Photo not found: {source}")
    target = photos_dir / f"{slug}{source.suffix.lower()}"
    photos_dir.mkdir(parents=True, exist_ok=True)
    if source.resolve() != target.resolve():
        shutil.copy2(source, target)
    _LOGGER.info("  Photo copied to %s", target)
    return target


def add_species(
    request: IntakeRequest,
    *,
    shapefile_root: Path,
    photos_dir: Path,
    queue_csv: Path,
    root_dir: Path,
    load_range: RangeLoader = read_range_geometry,
) -> IntakeResult:
    """Stage one species' inputs and upsert its row in the queue file.

    The range must load before the queue file is touched.
    """
    slug = request.slug
    _LOGGER.info("Adding: %s (%s)", request.common_name, request.scientific_name)

    shapefile = stage_range_source(request.range_source, shapefile_root / slug)
    geometry = load_range(shapefile)
    xmin, ymin, xmax, ymax = (float(v) for v in geometry.bounds)
    _LOGGER.info(
        "  Shapefile OK: %s | bbox %.1f to %.1f lon, %.1f to %.1f lat",
        shapefile.name,
        xmin,
        xmax,
        ymin,
        ymax,
    )

    photo_target: Path | None = None
    if request.photo_path is not None:
        photo_target = stage_photo(request.photo_path, photos_dir, slug)

    row = {
        "common_name": request.common_name,
        "scientific_name": request.scientific_name,
        "shapefile_path": _relative_to(shapefile, root_dir),
        "photo_path": _relative_to(photo_target, root_dir) if photo_target is not None else "",
        "photo_credit": request.photo_credit,
        "palette_type": request.palette_type,
        "continent": request.continent,
        "iucn_status": request.iucn_status,
        "status": "pending",
    }
    total = upsert_queue_row(queue_csv, row)
    _LOGGER.info("  Queue updated: %d species in %s", total, queue_csv)
    return IntakeResult(
        common_name=request.common_name,
        shapefile_path=shapefile,
        photo_path=photo_target,
        bounds=(xmin, ymin, xmax, ymax),
        queue_rows=total,
    )


def batch_add(
    requests: Sequence[IntakeRequest],
    *,
    shapefile_root: Path,
    photos_dir: Path,
    queue_csv: Path,
    root_dir: Path,
    load_range: RangeLoader = read_range_geometry,
) -> IntakeReport:
    """Add several species; one failing entry does not stop the others."""
    report = IntakeReport()
    for request in requests:
        try:
            result = add_species(
                request,
                shapefile_root=shapefile_root,
                photos_dir=photos_dir,
                queue_csv=queue_csv,
                root_dir=root_dir,
                load_range=load_range,
            )
        except Exception as exc:
            _LOGGER.error("  FAILED to add %s: %s", request.common_name, exc)
            report.add_error(f"{request.common_name}: {exc}")
            continue
        report.added.append(result)
    report.add_info(f"Added {len(report.added)} of {len(requests)} species.")
    return report


def format_intake_lines(report: IntakeReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Intake completed with no failures.")
    return lines
