"""Tests for species intake: archive staging, photo copy and queue upsert."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
from shapely.geometry import box

from rangemap.intake import IntakeRequest, add_species, batch_add, format_intake_lines, stage_range_source
from rangemap.queue import read_queue_rows


def _fake_loader(path: Path):
    assert path.suffix == ".shp"
    return box(79.5, 5.9, 81.9, 9.8)


def _make_archive(path: Path) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("redlist_species_data/data_0.shp", b"")
        archive.writestr("redlist_species_data/data_0.dbf", b"")
        archive.writestr("redlist_species_data/README.txt", "range data")
    return path


@pytest.fixture()
def workspace(tmp_path: Path) -> dict[str, Path]:
    return {
        "shapefile_root": tmp_path / "data" / "ranges",
        "photos_dir": tmp_path / "data" / "photos",
        "queue_csv": tmp_path / "data" / "species_queue.csv",
        "root_dir": tmp_path,
    }


class TestStageRangeSource:
    def test_zip_is_extracted_and_shapefile_found(self, tmp_path: Path) -> None:
        archive = _make_archive(tmp_path / "leopard.zip")
        shapefile = stage_range_source(archive, tmp_path / "ranges" / "leopard")
        assert shapefile == tmp_path / "ranges" / "leopard" / "redlist_species_data" / "data_0.shp"

    def test_directory_source(self, tmp_path: Path) -> None:
        (tmp_path / "dir" / "nested").mkdir(parents=True)
        (tmp_path / "dir" / "nested" / "b.shp").write_bytes(b"")
        (tmp_path / "dir" / "a.shp").write_bytes(b"")
        assert stage_range_source(tmp_path / "dir", tmp_path / "unused") == tmp_path / "dir" / "a.shp"

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            stage_range_source(tmp_path / "nope.zip", tmp_path / "out")

    def test_unsupported_source(self, tmp_path: Path) -> None:
        bad = tmp_path / "range.txt"
        bad.write_text("not a range", encoding="utf-8")
        with pytest.raises(ValueError):
            stage_range_source(bad, tmp_path / "out")


class TestAddSpecies:
    def test_adds_queue_row_and_copies_photo(self, tmp_path: Path, workspace) -> None:
        photo = tmp_path / "incoming" / "Leopard.JPG"
        photo.parent.mkdir()
        photo.write_bytes(b"jpeg")
        request = IntakeRequest(
            common_name="Sri Lankan Leopard",
            scientific_name="Panthera pardus kotiya",
            range_source=_make_archive(tmp_path / "leopard.zip"),
            photo_path=photo,
            photo_credit="A. Photographer",
        )

        result = add_species(request, load_range=_fake_loader, **workspace)

        assert result.photo_path == workspace["photos_dir"] / "sri_lankan_leopard.jpg"
        assert result.photo_path.read_bytes() == b"jpeg"
        assert result.bounds == pytest.approx((79.5, 5.9, 81.9, 9.8))
        assert result.queue_rows == 1
        row = read_queue_rows(workspace["queue_csv"])[0]
        assert row["shapefile_path"] == "data/ranges/sri_lankan_leopard/redlist_species_data/data_0.shp"
        assert row["photo_path"] == "data/photos/sri_lankan_leopard.jpg"
        assert row["palette_type"] == "jungle"
        assert row["status"] == "pending"

    def test_re_adding_replaces_row(self, tmp_path: Path, workspace) -> None:
        archive = _make_archive(tmp_path / "leopard.zip")
        for sci in ("Panthera pardus", "Panthera pardus kotiya"):
            request = IntakeRequest(common_name="Sri Lankan Leopard", scientific_name=sci, range_source=archive)
            add_species(request, load_range=_fake_loader, **workspace)
        rows = read_queue_rows(workspace["queue_csv"])
        assert len(rows) == 1
        assert rows[0]["scientific_name"] == "Panthera pardus kotiya"
        assert rows[0]["photo_path"] == ""

    def test_unloadable_range_writes_no_row(self, tmp_path: Path, workspace) -> None:
        def broken_loader(path: Path):
            raise ValueError("corrupt shapefile")

        request = IntakeRequest(
            common_name="Red Panda",
            scientific_name="Ailurus fulgens",
            range_source=_make_archive(tmp_path / "panda.zip"),
        )
        with pytest.raises(ValueError):
            add_species(request, load_range=broken_loader, **workspace)
        assert not workspace["queue_csv"].exists()


class TestBatchAdd:
    def test_failures_are_isolated(self, tmp_path: Path, workspace) -> None:
        requests = [
            IntakeRequest(
                common_name="Red Panda",
                scientific_name="Ailurus fulgens",
                range_source=tmp_path / "missing.zip",
            ),
            IntakeRequest(
                common_name="Snow Leopard",
                scientific_name="Panthera uncia",
                range_source=_make_archive(tmp_path / "snow.zip"),
            ),
        ]
        report = batch_add(requests, load_range=_fake_loader, **workspace)

        assert [result.common_name for result in report.added] == ["Snow Leopard"]
        assert len(report.errors) == 1 and report.errors[0].startswith("Red Panda:")
        assert "[INFO] Added 1 of 2 species." in format_intake_lines(report)
        assert [row["common_name"] for row in read_queue_rows(workspace["queue_csv"])] == ["Snow Leopard"]


class TestIntakeRequest:
    def test_from_mapping_resolves_relative_paths(self, tmp_path: Path) -> None:
        request = IntakeRequest.from_mapping(
            {
                "common_name": "Red Panda",
                "scientific_name": "Ailurus fulgens",
                "range": "downloads/panda.zip",
                "photo": "downloads/panda.jpg",
                "palette": "forest",
            },
            tmp_path,
        )
        assert request.range_source == tmp_path / "downloads" / "panda.zip"
        assert request.photo_path == tmp_path / "downloads" / "panda.jpg"
        assert request.palette_type == "forest"
        assert request.slug == "red_panda"

    def test_from_mapping_requires_range(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="range"):
            IntakeRequest.from_mapping({"common_name": "A", "scientific_name": "B"}, tmp_path)
