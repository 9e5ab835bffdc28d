"""Tests for page layout computation."""

from __future__ import annotations

import pytest

from rangemap.layout import DEFAULT_LAYOUT, LayoutSettings, compute_layout, page_size_inches
from rangemap.models import Extent, Panel


def _assert_in_canvas(plan) -> None:
    for panel, rect in plan.panels.items():
        assert rect.x >= 0.0, panel
        assert rect.y >= 0.0, panel
        assert rect.width >= 0.0, panel
        assert rect.height >= 0.0, panel
        assert rect.right <= 1.0 + 1e-9, panel
        assert rect.top <= 1.0 + 1e-9, panel


class TestSquareExtent:
    def test_physical_sizes(self, square_extent) -> None:
        plan = compute_layout(square_extent)
        assert plan.map_height_mm == pytest.approx(180.0)
        assert plan.page_height_mm == pytest.approx(224.0)
        assert plan.inset_height_mm == pytest.approx(49.5)
        assert plan.photo_height_mm == pytest.approx(130.5)

    def test_main_map_rect(self, square_extent) -> None:
        rect = compute_layout(square_extent)[Panel.MAIN_MAP]
        assert rect.x == 0.0
        assert rect.width == pytest.approx(0.75)
        assert rect.y == pytest.approx(16.0 / 224.0)
        assert rect.height == pytest.approx(180.0 / 224.0)

    def test_right_column_is_flush_with_map(self, square_extent) -> None:
        plan = compute_layout(square_extent)
        main = plan[Panel.MAIN_MAP]
        inset = plan[Panel.LOCATOR_INSET]
        photo = plan[Panel.PHOTO]
        assert inset.top == pytest.approx(main.top)
        assert photo.y == pytest.approx(main.y)
        assert photo.top == pytest.approx(inset.y)
        assert inset.x == pytest.approx(0.758)
        assert photo.width == pytest.approx(0.24)

    def test_divider_and_bands(self, square_extent) -> None:
        plan = compute_layout(square_extent)
        assert plan[Panel.DIVIDER].x == pytest.approx(0.753)
        assert plan[Panel.DIVIDER].height == pytest.approx(plan[Panel.MAIN_MAP].height)
        assert plan[Panel.TITLE].top == pytest.approx(1.0)
        assert plan[Panel.ATTRIBUTION].y == 0.0

    def test_text_anchors(self, square_extent) -> None:
        plan = compute_layout(square_extent)
        assert plan.anchors["title"] == pytest.approx((0.5, (196.0 + 28.0 * 0.67) / 224.0))
        assert plan.anchors["scientific_name"] == pytest.approx((0.5, (196.0 + 28.0 * 0.24) / 224.0))
        assert plan.anchors["data_source"] == pytest.approx((0.02, 16.0 * 0.65 / 224.0))
        assert plan.anchors["map_author"] == pytest.approx((0.02, 16.0 * 0.28 / 224.0))

    def test_page_size_inches(self, square_extent) -> None:
        width, height = page_size_inches(compute_layout(square_extent))
        assert width == pytest.approx(240.0 / 25.4)
        assert height == pytest.approx(224.0 / 25.4)


class TestAspectRatios:
    def test_two_to_one_extent_halves_map_height(self) -> None:
        plan = compute_layout(Extent(xmin=0.0, xmax=20.0, ymin=0.0, ymax=10.0))
        assert plan.map_height_mm == pytest.approx(90.0)
        assert plan.photo_height_mm == pytest.approx(40.5)
        _assert_in_canvas(plan)

    def test_very_wide_extent_shrinks_inset(self) -> None:
        plan = compute_layout(Extent(xmin=0.0, xmax=100.0, ymin=0.0, ymax=10.0))
        inset = plan[Panel.LOCATOR_INSET]
        assert plan.inset_height_mm == pytest.approx(18.0)
        assert plan.photo_height_mm == 0.0
        assert plan.photo_credit_height == 0.0
        assert inset.width == pytest.approx(0.24 * 18.0 / 49.5)
        assert inset.top == pytest.approx(plan[Panel.MAIN_MAP].top)
        _assert_in_canvas(plan)

    def test_tall_extent_grows_page(self) -> None:
        plan = compute_layout(Extent(xmin=0.0, xmax=10.0, ymin=0.0, ymax=30.0))
        assert plan.page_height_mm == pytest.approx(540.0 + 28.0 + 16.0)
        _assert_in_canvas(plan)

    @pytest.mark.parametrize(
        ("xmin", "xmax", "ymin", "ymax"),
        [(0, 1, 0, 50), (0, 360, 0, 1), (-10, 10, -3, 3), (71, 90, -3, 18)],
    )
    def test_all_panels_within_canvas(self, xmin, xmax, ymin, ymax) -> None:
        _assert_in_canvas(compute_layout(Extent(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)))


class TestLayoutSettings:
    def test_defaults(self) -> None:
        assert DEFAULT_LAYOUT.page_width_mm == 240.0
        assert DEFAULT_LAYOUT.right_column_fraction == pytest.approx(0.25)
        assert DEFAULT_LAYOUT.inset_window == Extent(xmin=0.0, xmax=160.0, ymin=-60.0, ymax=72.0)

    def test_plan_carries_inset_window(self, square_extent) -> None:
        assert compute_layout(square_extent).inset_window == DEFAULT_LAYOUT.inset_window

    def test_photo_gap_reduces_photo(self, square_extent) -> None:
        plan = compute_layout(square_extent, LayoutSettings(photo_gap_mm=10.0))
        assert plan.photo_height_mm == pytest.approx(120.5)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"page_width_mm": 0},
            {"left_column_fraction": 1.0},
            {"title_mm": -1},
            {"column_gutter": 0.02, "column_trim": 0.01},
            {"left_column_fraction": 0.995},
        ],
    )
    def test_invalid_settings_rejected(self, kwargs) -> None:
        with pytest.raises(ValueError):
            LayoutSettings(**kwargs)
