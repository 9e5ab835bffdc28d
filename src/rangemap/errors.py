"""Error taxonomy for species map builds.

Every failure raised inside a single species build derives from
``RangeMapError`` and carries the stage it happened in, so the queue runner can
report it without inspecting exception types.
"""

from __future__ import annotations


class RangeMapError(Exception):
    """Base exception for species map build failures.

    Attributes:
        message: Human-readable error description.
        stage: Build stage where the error occurred (e.g. ``"extent"``).
        code: Machine-readable error code.
        species: Common name of the species being built, when known.
    """

    default_stage: str = ""
    default_code: str = "RANGEMAP_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        species: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.species = species
        super().__init__(message)

    def with_context(self, *, stage: str = "", species: str = "") -> RangeMapError:
        """Fill in stage/species if they were not set where the error was raised."""
        if stage and not self.stage:
            self.stage = stage
        if species and not self.species:
            self.species = species
        return self

    def to_error_dict(self) -> dict[str, str]:
        return {
            "type": type(self).__name__,
            "code": self.code,
            "stage": self.stage,
            "species": self.species,
            "message": self.message,
        }


class InvalidGeometryError(RangeMapError):
    """Degenerate/empty bounding box or a geometry that cannot be repaired."""

    default_code = "INVALID_GEOMETRY"


class MissingResourceError(RangeMapError):
    """A referenced geometry or photo source does not exist."""

    default_code = "MISSING_RESOURCE"


class LabelDataError(RangeMapError):
    """Every label candidate was excluded because of missing names.

    Never raised by the label placer; it is attached to the label result as a
    diagnostic and the build continues with empty label sets.
    """

    default_stage = "labels"
    default_code = "LABEL_DATA"


class BuildFailure(RangeMapError):
    """Unhandled error during one species build."""

    default_code = "BUILD_FAILED"


class UnknownPaletteWarning(UserWarning):
    """A palette key was not recognised and the default palette was used."""
