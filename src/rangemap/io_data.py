"""Vector and photo inputs: base layers, species ranges, species photos."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from .errors import InvalidGeometryError, MissingResourceError
from .geometry import merge_geometries
from .models import BaseFeature, PhotoRef

_LOGGER = logging.getLogger("rangemap.io_data")

_WGS84_EPSG = 4326


def _first_existing_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    existing = {col.lower(): col for col in columns}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match:
            return match
    return None


def find_shapefile(directory: Path) -> Path:
    """First ``.shp`` below ``directory`` in sorted path order."""
    matches = sorted(directory.rglob("*.shp"))
    if not matches:
        raise MissingResourceError(f"No .shp file found in: {directory}", stage="load_range")
    return matches[0]


@dataclass(frozen=True, slots=True)
class PhotoAsset:
    image: Any
    width_px: int
    height_px: int
    credit: str

    @property
    def aspect(self) -> float:
        return self.width_px / self.height_px


class SpeciesDataRepository:
    """File access for base layers, range geometries and photos.

    Base layers are read once per repository and shared read-only between
    builds.
    """

    NAME_COLUMNS = ("NAME", "NAME_EN", "ADMIN", "NAME_LONG", "SOVEREIGNT", "name")

    def __init__(self, base_layer_path: Path, inset_layer_path: Path | None = None) -> None:
        self.base_layer_path = base_layer_path
        self.inset_layer_path = inset_layer_path
        self._base_features: tuple[BaseFeature, ...] | None = None
        self._inset_features: tuple[BaseFeature, ...] | None = None

    def load_base_features(self) -> tuple[BaseFeature, ...]:
        if self._base_features is None:
            self._base_features = self._read_features(self.base_layer_path)
            _LOGGER.info(
                "Loaded %d base-layer features from %s",
                len(self._base_features),
                self.base_layer_path,
            )
        return self._base_features

    def load_inset_features(self) -> tuple[BaseFeature, ...]:
        """Small-scale layer for the locator inset; falls back to the base layer."""
        if self.inset_layer_path is None:
            return self.load_base_features()
        if self._inset_features is None:
            self._inset_features = self._read_features(self.inset_layer_path)
        return self._inset_features

    def load_range_geometry(self, path: Path) -> Any:
        return read_range_geometry(path)

    def load_photo(self, photo: PhotoRef | None) -> PhotoAsset | None:
        """Open a species photo; a missing photo is not an error."""
        if photo is None:
            _LOGGER.info("No photo (path not set)")
            return None
        if not photo.path.exists():
            _LOGGER.warning("No photo (file not found: %s)", photo.path)
            return None
        image_module = self._require_pillow()
        with image_module.open(photo.path) as img:
            image = img.convert("RGB")
        asset = PhotoAsset(image=image, width_px=image.width, height_px=image.height, credit=photo.credit)
        _LOGGER.info("Photo loaded: %dx%d px (aspect %.2f)", asset.width_px, asset.height_px, asset.aspect)
        return asset

    def _read_features(self, path: Path) -> tuple[BaseFeature, ...]:
        if not path.exists():
            raise MissingResourceError(f"Base layer not found: {path}", stage="load_base_layer")
        frame = _to_wgs84(self._require_geopandas().read_file(path))
        name_col = _first_existing_column(frame.columns, self.NAME_COLUMNS)
        if name_col is None:
            cols = ", ".join(str(c) for c in frame.columns)
            raise ValueError(f"Could not detect a name column in {path}. Available columns: {cols}")
        features: list[BaseFeature] = []
        for name, geometry in zip(frame[name_col].tolist(), frame.geometry):
            features.append(BaseFeature(name=name, geometry=geometry))
        return tuple(features)

    @staticmethod
    def _require_geopandas() -> Any:
        try:
            import geopandas as gpd
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError("geopandas is required for vector data loading") from exc
        return gpd

    @staticmethod
    def _require_pillow() -> Any:
        try:
            from PIL import Image
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError("Pillow is required for photo loading") from exc
        return Image


def read_range_geometry(path: Path) -> Any:
    """Read a species range file (or a directory holding one) as a single geometry."""
    if not path.exists():
        raise MissingResourceError(f"Range geometry source not found: {path}", stage="load_range")
    source = find_shapefile(path) if path.is_dir() else path
    frame = _to_wgs84(SpeciesDataRepository._require_geopandas().read_file(source))
    if len(frame) == 0:
        raise InvalidGeometryError(f"Range file has no features: {source}", stage="load_range")
    geometry = merge_geometries(frame.geometry)
    if geometry.is_empty:
        raise InvalidGeometryError(
            f"Range file has only empty geometries: {source}", stage="load_range"
        )
    return geometry


def _to_wgs84(frame: Any) -> Any:
    if frame.crs is not None and frame.crs.to_epsg() != _WGS84_EPSG:
        return frame.to_crs(epsg=_WGS84_EPSG)
    return frame
