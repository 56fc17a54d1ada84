"""Tests for colour normalisation, plotly colour strings and palettes."""

import pytest

from propmap.model.colour import (
    PALETTES,
    colour_scale,
    normalise_colour,
    rgb_string,
)


class TestNormaliseColour:
    def test_css_name(self):
        assert normalise_colour("red") == (1.0, 0.0, 0.0)

    def test_hex_string(self):
        assert normalise_colour("#00FF00") == pytest.approx((0.0, 1.0, 0.0))

    def test_grey_float(self):
        assert normalise_colour(0.7) == pytest.approx((0.7, 0.7, 0.7))

    def test_rgb_tuple(self):
        assert normalise_colour((0.5, 0.3, 0.1)) == pytest.approx(
            (0.5, 0.3, 0.1)
        )

    def test_invalid_name_raises(self):
        with pytest.raises(ValueError, match="Unrecognised colour"):
            normalise_colour("notacolour")

    def test_grey_out_of_range_raises(self):
        with pytest.raises(ValueError, match="Grey value"):
            normalise_colour(1.5)

    def test_rgb_wrong_length_raises(self):
        with pytest.raises(ValueError, match="3 elements"):
            normalise_colour((0.5, 0.3))  # type: ignore[arg-type]

    def test_rgb_out_of_range_raises(self):
        with pytest.raises(ValueError, match="RGB component"):
            normalise_colour((0.5, 1.5, 0.0))


class TestRgbString:
    def test_named_colour(self):
        assert rgb_string("red") == "rgb(255, 0, 0)"

    def test_grey(self):
        assert rgb_string(0.0) == "rgb(0, 0, 0)"

    def test_alpha(self):
        assert rgb_string((1.0, 1.0, 1.0), alpha=0.3) == "rgba(255, 255, 255, 0.3)"


class TestColourScale:
    def test_default_samples(self):
        scale = colour_scale("viridis")
        assert len(scale) == 11
        assert scale[0][0] == 0.0
        assert scale[-1][0] == 1.0

    def test_entries_are_rgb_strings(self):
        for _, colour in colour_scale("inferno", n_samples=3):
            assert colour.startswith("rgb(")

    def test_every_palette_resolves(self):
        for palette in PALETTES:
            assert len(colour_scale(palette, n_samples=2)) == 2

    def test_unknown_palette_raises(self):
        with pytest.raises(ValueError, match="palette must be one of"):
            colour_scale("jet")

    def test_too_few_samples_raises(self):
        with pytest.raises(ValueError, match="at least 2"):
            colour_scale("viridis", n_samples=1)
