"""Tests for color parsing and the structure palette."""

import pytest

from graphscene.render.colors import darker, hsl, parse_color, structure_palette, to_hex


class TestParseColor:
    def test_long_hex(self):
        assert parse_color("#102030") == (16, 32, 48)

    def test_short_hex(self):
        assert parse_color("#fff") == (255, 255, 255)

    def test_rgb_function(self):
        assert parse_color("rgb(1, 2, 3)") == (1, 2, 3)

    def test_named(self):
        assert parse_color("White") == (255, 255, 255)
        assert parse_color("orange") == (255, 165, 0)
        assert parse_color("steelblue") == (70, 130, 180)
        assert parse_color("rebeccapurple") == (102, 51, 153)

    def test_hex_with_alpha(self):
        assert parse_color("#ff000080") == (255, 0, 0)
        assert parse_color("#f008") == (255, 0, 0)

    def test_rgba_and_percentages(self):
        assert parse_color("rgba(10, 20, 30, 0.5)") == (10, 20, 30)
        assert parse_color("rgb(100%, 0%, 50%)") == (255, 0, 128)
        assert parse_color("rgb(10 20 30 / 50%)") == (10, 20, 30)
        assert parse_color("rgb(300, -5, 0)") == (255, 0, 0)

    def test_hsl_function(self):
        assert parse_color("hsl(120, 50%, 50%)") == (64, 191, 64)
        assert parse_color("hsla(0, 100%, 50%, 0.3)") == (255, 0, 0)
        assert parse_color("hsl(0, 0%, 0%)") == (0, 0, 0)

    def test_darker_accepts_names(self):
        assert darker("white") == darker("#ffffff")

    @pytest.mark.parametrize("bad", ["", "#12", "#gggggg", "url(#x)", "rgb(1, 2)", "notacolor"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_color(bad)


class TestDarker:
    def test_scales_channels(self):
        assert darker("#ffffff") == "#b2b2b2"

    def test_twice(self):
        assert darker("#ffffff", 2) == to_hex(124, 124, 124)

    def test_black_stays_black(self):
        assert darker("#000000") == "#000000"


class TestPalette:
    def test_hsl_primaries(self):
        assert hsl(0, 1.0, 0.5) == "#ff0000"
        assert hsl(120, 1.0, 0.5) == "#00ff00"

    def test_deterministic_per_template(self):
        assert structure_palette(3) == structure_palette(3)
        assert structure_palette(0) != structure_palette(1)

    def test_expanded_is_lighter(self):
        collapsed = parse_color(structure_palette(0))
        expanded = parse_color(structure_palette(0, expanded=True))
        assert sum(expanded) > sum(collapsed)

    def test_wraps_around_hues(self):
        assert structure_palette(0) == structure_palette(10)
