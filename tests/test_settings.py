"""Tests for settings file I/O."""

import json

import pytest

from propmap.model.options import SETTINGS_SECTIONS, MapOptions
from propmap.settings import load_settings, save_settings


class TestSettingsFiles:
    def test_round_trip(self, store, tmp_path):
        options = MapOptions(store, {"symbol": "phase", "palette": "plasma"})
        path = tmp_path / "settings.json"
        save_settings(path, options.save_settings())
        assert load_settings(path) == options.save_settings()

    def test_indented_with_trailing_newline(self, store, tmp_path):
        path = tmp_path / "settings.json"
        save_settings(path, MapOptions(store).save_settings())
        text = path.read_text()
        assert text.endswith("}\n")
        assert '\n  "x": {' in text

    def test_partial_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"palette": "magma"}))
        assert load_settings(path) == {"palette": "magma"}

    def test_sections_match_saved_settings(self, store):
        assert set(MapOptions(store).save_settings()) == SETTINGS_SECTIONS

    def test_save_unknown_key_raises(self, tmp_path):
        with pytest.raises(ValueError, match="unknown top-level keys"):
            save_settings(tmp_path / "s.json", {"camera": {}})

    def test_load_unknown_key_raises(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"camera": {}}))
        with pytest.raises(ValueError, match="unknown top-level keys"):
            load_settings(path)

    def test_load_non_object_raises(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            load_settings(path)
