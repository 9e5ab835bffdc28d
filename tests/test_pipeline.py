"""Tests for single-species planning and the build pipeline."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest
from shapely.geometry import Polygon, box

from rangemap.errors import BuildFailure, InvalidGeometryError, MissingResourceError
from rangemap.models import BaseFeature, BuildErr, BuildOk, Extent, PaletteName, Region
from rangemap.pipeline import BuildPipeline, PipelineSettings, plan_species_map


class FakeRepository:
    def __init__(self, range_geometry: Any, features: list[BaseFeature]) -> None:
        self.range_geometry = range_geometry
        self.features = features
        self.photo_requests: list[Any] = []

    def load_range_geometry(self, path: Path) -> Any:
        if isinstance(self.range_geometry, Exception):
            raise self.range_geometry
        return self.range_geometry

    def load_base_features(self) -> tuple[BaseFeature, ...]:
        return tuple(self.features)

    def load_inset_features(self) -> tuple[BaseFeature, ...]:
        return tuple(self.features)

    def load_photo(self, photo: Any) -> Any:
        self.photo_requests.append(photo)
        return None


class FakeRenderer:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.calls: list[dict[str, Any]] = []

    def render(self, plan: Any, *, output_path: Path, photo: Any, inset_features: Any) -> Path:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append({"plan": plan, "output_path": output_path, "photo": photo})
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"png")
        return output_path


class TestPlanSpeciesMap:
    def test_sri_lanka_plan(self, leopard_job, sri_lanka_range, south_asia_features) -> None:
        plan = plan_species_map(leopard_job, sri_lanka_range, south_asia_features, PipelineSettings())
        assert plan.extent == Extent(xmin=71.0, xmax=90.0, ymin=-3.0, ymax=18.0)
        assert [f.name for f in plan.land] == ["India", "Sri Lanka", "Maldives"]
        assert [label.text for label in plan.labels.focus] == ["I N D I A", "S R I   L A N K A"]
        assert [label.text for label in plan.labels.context] == ["M A L D I V E S"]
        assert plan.region is Region.ASIA
        assert plan.palette.name is PaletteName.JUNGLE
        assert plan.layout.page_width_mm == 240.0
        assert plan.warnings == ()

    def test_species_anchor(self, leopard_job, sri_lanka_range, south_asia_features) -> None:
        plan = plan_species_map(leopard_job, sri_lanka_range, south_asia_features, PipelineSettings())
        assert plan.species_anchor == pytest.approx((72.5, -3.0 + 21.0 * 0.28))

    def test_input_geometry_is_not_modified(self, leopard_job, bowtie) -> None:
        before = bowtie.wkt
        plan_species_map(leopard_job, bowtie, [], PipelineSettings())
        assert bowtie.wkt == before
        assert not bowtie.is_valid

    def test_unknown_palette_becomes_plan_warning(self, leopard_job, sri_lanka_range) -> None:
        job = replace(leopard_job, palette_key="tundra")
        plan = plan_species_map(job, sri_lanka_range, [], PipelineSettings())
        assert plan.palette.name is PaletteName.JUNGLE
        assert any("tundra" in warning for warning in plan.warnings)

    def test_empty_range_fails_validation(self, leopard_job) -> None:
        with pytest.raises(InvalidGeometryError) as exc_info:
            plan_species_map(leopard_job, Polygon(), [], PipelineSettings())
        assert exc_info.value.stage == "validate"
        assert exc_info.value.species == "Sri Lankan Leopard"

    def test_summary_dict(self, leopard_job, sri_lanka_range, south_asia_features) -> None:
        plan = plan_species_map(leopard_job, sri_lanka_range, south_asia_features, PipelineSettings())
        summary = plan.summary_dict()
        assert summary["region"] == "ASIA"
        assert summary["palette"] == "jungle"
        assert summary["scale_bars"]["km"]["magnitude"] == 804
        assert summary["layout"]["panels"]["main_map"]["x"] == 0.0


class TestBuildPipeline:
    def test_successful_build(self, tmp_path, leopard_job, sri_lanka_range, south_asia_features) -> None:
        renderer = FakeRenderer()
        repository = FakeRepository(sri_lanka_range, south_asia_features)
        pipeline = BuildPipeline(PipelineSettings(), repository, renderer)
        output = tmp_path / "out" / "leopard.png"

        result = pipeline.build(leopard_job, output)

        assert isinstance(result, BuildOk)
        assert result.output_path == output
        assert output.exists()
        assert renderer.calls[0]["plan"].job is leopard_job
        assert repository.photo_requests == [leopard_job.photo]

    def test_missing_range_becomes_build_err(self, tmp_path, leopard_job, south_asia_features) -> None:
        repository = FakeRepository(MissingResourceError("Range geometry source not found"), south_asia_features)
        pipeline = BuildPipeline(PipelineSettings(), repository, FakeRenderer())

        result = pipeline.build(leopard_job, tmp_path / "x.png")

        assert isinstance(result, BuildErr)
        assert isinstance(result.error, MissingResourceError)
        assert result.error.stage == "load_range"
        assert result.error.species == "Sri Lankan Leopard"
        assert not (tmp_path / "x.png").exists()

    def test_unexpected_renderer_error_is_wrapped(
        self, tmp_path, leopard_job, sri_lanka_range, south_asia_features
    ) -> None:
        renderer = FakeRenderer(fail_with=RuntimeError("disk full"))
        pipeline = BuildPipeline(PipelineSettings(), FakeRepository(sri_lanka_range, south_asia_features), renderer)

        result = pipeline.build(leopard_job, tmp_path / "x.png")

        assert isinstance(result, BuildErr)
        assert isinstance(result.error, BuildFailure)
        assert result.error.stage == "render"
        assert isinstance(result.error.__cause__, RuntimeError)
        assert result.error.to_error_dict()["code"] == "BUILD_FAILED"

    def test_plan_does_not_render(self, leopard_job, sri_lanka_range) -> None:
        renderer = FakeRenderer()
        pipeline = BuildPipeline(PipelineSettings(), FakeRepository(sri_lanka_range, []), renderer)
        plan = pipeline.plan(leopard_job)
        assert plan.land == ()
        assert renderer.calls == []

    def test_settings_from_config(self, tmp_path) -> None:
        from rangemap.config import load_config

        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(
            "paths:\n  base_layer: base.shp\nextent:\n  buffer_deg: 3\nproject:\n  map_author: Me\n",
            encoding="utf-8",
        )
        settings = PipelineSettings.from_config(load_config(cfg_path))
        assert settings.buffer_deg == 3.0
        assert settings.map_author == "Me"


class TestFailureIsolation:
    def test_failed_build_does_not_affect_next(self, tmp_path, leopard_job, south_asia_features) -> None:
        repository = FakeRepository(Polygon(), south_asia_features)
        pipeline = BuildPipeline(PipelineSettings(), repository, FakeRenderer())
        assert isinstance(pipeline.build(leopard_job, tmp_path / "a.png"), BuildErr)

        repository.range_geometry = box(79.5, 5.9, 81.9, 9.8)
        assert isinstance(pipeline.build(leopard_job, tmp_path / "b.png"), BuildOk)
