"""Tests for contrast math and text color selection."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tokensmith.core.contrast import (
    BLACK,
    BLACK_STEP,
    WHITE,
    WHITE_STEP,
    PaletteStep,
    blend_over,
    check_contrast,
    contrast_ratio,
    is_hex_color,
    meets_threshold,
    min_alpha_for_threshold,
    parse_hex,
    pick_aa_step_in_family,
    pick_text_color,
    relative_luminance,
    to_hex,
)
from tokensmith.core.errors import CoercionError

GRAYS = [
    PaletteStep(level, hex_value)
    for level, hex_value in [
        ("000", "#ffffff"),
        ("050", "#f5f5f5"),
        ("100", "#e0e0e0"),
        ("200", "#cccccc"),
        ("300", "#b3b3b3"),
        ("400", "#999999"),
        ("500", "#808080"),
        ("600", "#666666"),
        ("700", "#4d4d4d"),
        ("800", "#333333"),
        ("900", "#000000"),
    ]
]

hex_colors = st.tuples(*[st.integers(min_value=0, max_value=255)] * 3).map(to_hex)


# =============================================================================
# Parsing
# =============================================================================


class TestHexParsing:
    def test_long_form(self):
        assert parse_hex("#1d4ed8") == (29, 78, 216)

    def test_short_form_and_missing_hash(self):
        assert parse_hex("#fff") == (255, 255, 255)
        assert parse_hex("0f0") == (0, 255, 0)

    @pytest.mark.parametrize("value", ["", "#ff", "#gggggg", "rgb(0,0,0)", "#12345"])
    def test_rejects_non_hex(self, value):
        with pytest.raises(CoercionError):
            parse_hex(value)

    def test_is_hex_color(self):
        assert is_hex_color("#ABCDEF")
        assert not is_hex_color("8px")
        assert not is_hex_color(0.5)

    def test_to_hex_is_lowercase(self):
        assert to_hex((171, 205, 239)) == "#abcdef"


# =============================================================================
# Ratios
# =============================================================================


class TestContrastRatio:
    def test_black_on_white(self):
        assert contrast_ratio(BLACK, WHITE) == pytest.approx(21.0, abs=0.01)

    def test_identical_colors(self):
        assert contrast_ratio("#6b7280", "#6b7280") == pytest.approx(1.0)

    def test_luminance_bounds(self):
        assert relative_luminance(BLACK) == 0.0
        assert relative_luminance(WHITE) == pytest.approx(1.0)

    def test_known_pair(self):
        # white text on the light theme's primary tone
        assert contrast_ratio("#1d4ed8", WHITE) == pytest.approx(6.70, abs=0.05)

    def test_check_contrast(self):
        check = check_contrast("#6b7280", WHITE)
        assert check.passes
        assert not check_contrast("#f3f4f6", WHITE).passes
        assert meets_threshold(BLACK, WHITE, threshold=7.0)

    @given(first=hex_colors, second=hex_colors)
    def test_ratio_is_symmetric_and_bounded(self, first, second):
        ratio = contrast_ratio(first, second)
        assert ratio == pytest.approx(contrast_ratio(second, first))
        assert 1.0 <= ratio <= 21.0 + 1e-9


# =============================================================================
# Suggestions
# =============================================================================


class TestPickTextColor:
    def test_on_extremes(self):
        assert pick_text_color(WHITE) == BLACK
        assert pick_text_color(BLACK) == WHITE

    def test_on_saturated_blue(self):
        assert pick_text_color("#1d4ed8") == WHITE

    @given(background=hex_colors)
    def test_always_black_or_white(self, background):
        assert pick_text_color(background) in (BLACK, WHITE)


class TestBlending:
    def test_blend_endpoints(self):
        assert blend_over(BLACK, WHITE, 0.0) == WHITE
        assert blend_over(BLACK, WHITE, 1.0) == BLACK

    def test_blend_half(self):
        assert blend_over(BLACK, WHITE, 0.5) == "#808080"

    def test_alpha_is_clamped(self):
        assert blend_over(BLACK, WHITE, 5) == BLACK

    def test_min_alpha_picks_smallest_passing_step(self):
        assert min_alpha_for_threshold(WHITE, BLACK, [0.1, 0.38, 0.68, 1.0]) == 0.68

    def test_min_alpha_order_does_not_matter(self):
        assert min_alpha_for_threshold(WHITE, BLACK, [1.0, 0.68, 0.1]) == 0.68

    def test_min_alpha_defaults_to_opaque(self):
        assert min_alpha_for_threshold(WHITE, "#f3f4f6", [0.1, 0.5]) == 1.0


class TestPaletteFamily:
    def test_steps_lighter_on_dark_surface(self):
        # 400 reaches only 4.43:1 on #333333
        assert pick_aa_step_in_family("#333333", GRAYS, "500").level == "300"

    def test_steps_darker_on_light_surface(self):
        assert pick_aa_step_in_family("#f5f5f5", GRAYS, "500").level == "600"

    def test_lighter_side_is_tried_first(self):
        # both the 000 and the 900 ends pass on #757575
        assert pick_aa_step_in_family("#757575", GRAYS, "500").level == "000"

    def test_start_level_itself_is_skipped(self):
        assert pick_aa_step_in_family("#808080", GRAYS, "500").level == "900"

    def test_candidates_are_blended_at_alpha(self):
        assert pick_aa_step_in_family(WHITE, GRAYS, "300").level == "600"
        assert pick_aa_step_in_family(WHITE, GRAYS, "300", alpha=0.5) == BLACK_STEP

    def test_black_or_white_when_no_step_passes(self):
        without_ends = [step for step in GRAYS if step.level != "900"]
        assert pick_aa_step_in_family("#808080", without_ends, "500") == BLACK_STEP

    def test_without_start_level_only_black_and_white(self):
        assert pick_aa_step_in_family("#666666", GRAYS) == WHITE_STEP
        assert pick_aa_step_in_family("#f5f5f5", []) == BLACK_STEP

    def test_white_preferred_when_both_pass(self):
        assert pick_aa_step_in_family("#757575", []) == WHITE_STEP

    def test_unknown_start_level(self):
        assert pick_aa_step_in_family("#808080", GRAYS, "invalid") is None
        assert pick_aa_step_in_family("#808080", [], "500") is None
