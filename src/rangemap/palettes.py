"""Named colour palettes for species maps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .errors import UnknownPaletteWarning
from .models import Palette, PaletteName

_LOGGER = logging.getLogger("rangemap.palettes")

_SEA = "#D6E8F0"

DEFAULT_PALETTES: Mapping[PaletteName, Palette] = {
    PaletteName.DESERT: Palette(
        land="#EBE1D1", border="#C5B9A8", range="#D4845A", stroke="#B8633A",
        focus_text="#8A7E6E", context_text="#ADA393", species_text="#B8633A", ocean=_SEA,
    ),
    PaletteName.SAVANNA: Palette(
        land="#E4DDD0", border="#C5BDB1", range="#C8A856", stroke="#B8983E",
        focus_text="#8A8478", context_text="#A8A198", species_text="#B8983E", ocean=_SEA,
    ),
    PaletteName.JUNGLE: Palette(
        land="#E4DDD0", border="#C5B9A8", range="#8B6E4E", stroke="#6B5038",
        focus_text="#7A6E62", context_text="#ADA393", species_text="#6B5038", ocean=_SEA,
    ),
    PaletteName.FOREST: Palette(
        land="#E8E3D8", border="#C5BDB1", range="#7A9E6B", stroke="#5C7D4E",
        focus_text="#7A7E6E", context_text="#ADA898", species_text="#5C7D4E", ocean=_SEA,
    ),
    PaletteName.MOUNTAIN: Palette(
        land="#E6E0D5", border="#C2BAB0", range="#8C7B6B", stroke="#6B5D50",
        focus_text="#7A7268", context_text="#ADA59B", species_text="#6B5D50", ocean=_SEA,
    ),
    PaletteName.OCEAN: Palette(
        land="#E4DDD0", border="#C5B9A8", range="#5B8FA8", stroke="#3D6E85",
        focus_text="#7A7E82", context_text="#ADA8A3", species_text="#3D6E85", ocean="#D0E4EE",
    ),
}


@dataclass(frozen=True, slots=True)
class ResolvedPalette:
    name: PaletteName
    palette: Palette
    warning: UnknownPaletteWarning | None = None


@dataclass(frozen=True, slots=True)
class PaletteTable:
    palettes: Mapping[PaletteName, Palette]
    default: PaletteName = PaletteName.JUNGLE

    def __post_init__(self) -> None:
        missing = [name.value for name in PaletteName if name not in self.palettes]
        if missing:
            raise ValueError("Palette table is missing: " + ", ".join(missing))

    def resolve(self, key: str | None) -> ResolvedPalette:
        """Look up ``key`` case-insensitively; unknown keys fall back to the default."""
        normalized = (key or "").strip().casefold()
        for name in PaletteName:
            if name.value == normalized:
                return ResolvedPalette(name=name, palette=self.palettes[name])

        warning = UnknownPaletteWarning(
            f"Unknown palette '{key}', using {self.default.value}"
        )
        _LOGGER.warning(str(warning))
        return ResolvedPalette(
            name=self.default,
            palette=self.palettes[self.default],
            warning=warning,
        )


DEFAULT_PALETTE_TABLE = PaletteTable(palettes=DEFAULT_PALETTES)


def parse_palette_name(value: str) -> PaletteName:
    normalized = value.strip().casefold()
    for name in PaletteName:
        if name.value == normalized:
            return name
    allowed = ", ".join(name.value for name in PaletteName)
    raise ValueError(f"Unknown palette '{value}'; expected one of: {allowed}")
