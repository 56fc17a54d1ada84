"""Tests for the properties map engine on a recording surface."""

import numpy as np
import pytest

from propmap import PropertiesMap
from propmap.errors import ConfigurationError, RenderSurfaceWarning
from propmap.model.options import ModificationOrigin

FILTER_ENERGY = {
    "opacity": {
        "mode": "filter",
        "filter": {"property": "energy", "operator": ">", "cutoff": 4.0},
    },
}


class TestCreation:
    def test_traces(self, pmap, surface):
        assert [trace["name"] for trace in surface.traces[:3]] == [
            "main", "background", "selected",
        ]
        # one legend placeholder per category of the largest categorical property
        assert len(surface.traces) == 6
        assert [trace["showlegend"] for trace in surface.traces] == [False] * 6
        np.testing.assert_array_equal(surface.traces[0]["x"], [1.0, 5.0, 9.0, 2.0])
        np.testing.assert_array_equal(surface.traces[0]["y"], [2.0, 4.0, 6.0, 8.0])

    def test_layout(self, pmap, surface):
        assert surface.layout["xaxis"]["title"]["text"] == "energy"
        assert surface.layout["yaxis"]["title"]["text"] == "volume"
        assert surface.layout["coloraxis"]["showscale"] is False
        assert surface.config["displaylogo"] is False

    def test_neutral_colours(self, pmap, surface):
        assert [trace["marker"]["color"] for trace in surface.traces[:3]] == [0.5] * 3

    def test_ranges_read_back(self, pmap):
        assert (pmap.options.x.min.value, pmap.options.x.max.value) == (0.0, 10.0)
        assert (pmap.options.y.min.value, pmap.options.y.max.value) == (0.0, 10.0)

    def test_store_accepted(self, surface, store):
        pmap = PropertiesMap(surface, store)
        assert pmap.store is store

    def test_unknown_property_in_settings(self, surface, raw_properties):
        with pytest.raises(ConfigurationError, match="unknown property"):
            PropertiesMap(surface, raw_properties, settings={"x": {"property": "missing"}})


class TestAxes:
    def test_property_change(self, pmap, surface):
        pmap.apply_settings({"x": {"property": "volume"}})
        np.testing.assert_array_equal(surface.traces[0]["x"], [2.0, 4.0, 6.0, 8.0])
        assert surface.layout["xaxis"]["title"]["text"] == "volume"
        assert surface.layout["scene"]["xaxis"]["title"]["text"] == "volume"

    def test_scale_change(self, pmap, surface):
        pmap.options.y.scale.value = "log"
        assert surface.layout["yaxis"]["type"] == "log"

    def test_range_edit_relayouts_once(self, pmap, surface):
        start = len(surface.calls)
        pmap.options.x.max.value = 4.0
        relayouts = [
            payload for name, payload in surface.calls[start:] if name == "relayout"
        ]
        assert relayouts == [{"xaxis.range": [0.0, 4.0]}]
        assert surface.ranges["x"] == (0.0, 4.0)
        assert pmap.options.x.max.value == 4.0

    def test_surface_writes_are_not_pushed(self, pmap, surface):
        start = len(surface.calls)
        pmap.options.x.min.set(3.0, ModificationOrigin.SURFACE)
        assert surface.calls[start:] == []

    def test_3d_ranges_go_to_scene(self, pmap, surface):
        pmap.apply_settings({"z": {"property": "volume"}})
        pmap.options.z.max.value = 5.0
        assert surface.layout["scene"]["zaxis"]["range"] == [0.0, 5.0]

    def test_z_scale_ignored_without_z(self, pmap, surface):
        start = len(surface.calls)
        pmap.options.z.scale.value = "log"
        assert surface.calls[start:] == []


class TestColours:
    def test_colour_property(self, pmap, surface):
        pmap.apply_settings({"color": {"property": "energy"}})
        coloraxis = surface.layout["coloraxis"]
        assert (coloraxis["cmin"], coloraxis["cmax"]) == (1.0, 9.0)
        assert coloraxis["showscale"] is True
        assert coloraxis["colorbar"]["title"]["text"] == "energy"
        np.testing.assert_array_equal(
            surface.traces[0]["marker"]["color"], [1.0, 5.0, 9.0, 2.0],
        )
        assert surface.traces[0]["hovertemplate"].startswith("energy: ")

    def test_range_from_main_points(self, pmap):
        pmap.apply_settings(FILTER_ENERGY)
        pmap.apply_settings({"color": {"property": "energy"}})
        assert (pmap.options.color.min.value, pmap.options.color.max.value) == (5.0, 9.0)

    def test_reset_range_uses_every_point(self, pmap, surface):
        pmap.apply_settings(FILTER_ENERGY)
        pmap.apply_settings({"color": {"property": "energy"}})
        pmap.reset_color_range()
        assert (pmap.options.color.min.value, pmap.options.color.max.value) == (1.0, 9.0)
        assert surface.layout["coloraxis"]["cmin"] == 1.0

    def test_reset_range_without_colour_is_noop(self, pmap, surface):
        start = len(surface.calls)
        pmap.reset_color_range()
        assert surface.calls[start:] == []

    def test_remove_colour_property(self, pmap, surface):
        pmap.apply_settings({"color": {"property": "energy"}})
        pmap.apply_settings({"color": {"property": ""}})
        assert surface.layout["coloraxis"]["showscale"] is False
        assert surface.layout["coloraxis"]["colorbar"]["title"]["text"] is None
        assert surface.traces[0]["marker"]["color"] == 0.5
        assert not pmap.options.color.min.enabled

    def test_saved_range_kept_at_construction(self, surface, raw_properties):
        pmap = PropertiesMap(
            surface, raw_properties,
            settings={"color": {"property": "energy", "min": 2.0, "max": 3.0}},
        )
        assert (pmap.options.color.min.value, pmap.options.color.max.value) == (2.0, 3.0)
        assert surface.layout["coloraxis"]["cmax"] == 3.0

    def test_range_computed_at_construction(self, surface, raw_properties):
        pmap = PropertiesMap(
            surface, raw_properties, settings={"color": {"property": "volume"}},
        )
        assert (pmap.options.color.min.value, pmap.options.color.max.value) == (2.0, 8.0)

    def test_construction_range_from_main_points(self, surface, raw_properties):
        pmap = PropertiesMap(
            surface, raw_properties,
            settings={"color": {"property": "energy"}, **FILTER_ENERGY},
        )
        assert (pmap.options.color.min.value, pmap.options.color.max.value) == (5.0, 9.0)
        coloraxis = surface.layout["coloraxis"]
        assert (coloraxis["cmin"], coloraxis["cmax"]) == (5.0, 9.0)

    def test_palette(self, pmap, surface):
        pmap.apply_settings({"palette": "viridis"})
        assert surface.layout["coloraxis"]["colorscale"][0] == [0.0, "rgb(68, 1, 84)"]


class TestOpacityFilter:
    def test_partition(self, pmap, surface):
        pmap.apply_settings(FILTER_ENERGY)
        np.testing.assert_array_equal(pmap.resolver.partition.main, [1, 2])
        np.testing.assert_array_equal(pmap.resolver.partition.background, [0, 3])
        np.testing.assert_array_equal(surface.traces[0]["x"], [5.0, 9.0])
        np.testing.assert_array_equal(surface.traces[1]["x"], [1.0, 2.0])

    def test_opacities(self, pmap, surface):
        pmap.apply_settings(FILTER_ENERGY)
        opacities = [trace["marker"]["opacity"] for trace in surface.traces[:3]]
        assert opacities == [1.0, 0.1, 1.0]

    def test_constant_mode_ignores_filter(self, pmap):
        pmap.apply_settings({"opacity": {"filter": {"cutoff": 4.0}}})
        assert len(pmap.resolver.partition.main) == 4

    def test_filter_property_resets_cutoff(self, pmap):
        pmap.apply_settings({"opacity": {"filter": {"property": "volume"}}})
        assert pmap.options.opacity.filter.cutoff.value == 5.0

    def test_minimum_clamped_below_maximum(self, pmap):
        pmap.apply_settings({"opacity": {"maximum": 0.25, "minimum": 0.2}})
        pmap.apply_settings({"opacity": {"mode": "filter"}})
        assert pmap.options.opacity.minimum.value == pytest.approx(0.05)

    def test_enabled_options_follow_mode(self, pmap):
        opacity = pmap.options.opacity
        assert not opacity.filter.cutoff.enabled
        assert not opacity.minimum.enabled
        pmap.apply_settings({"opacity": {"mode": "filter"}})
        assert opacity.filter.cutoff.enabled
        assert opacity.minimum.enabled

    def test_opacity_limits(self, pmap, surface):
        pmap.apply_settings({"opacity": {"maximum": 0.7, "minimum": 0.3}})
        opacities = [trace["marker"]["opacity"] for trace in surface.traces[:3]]
        assert opacities == [0.7, 0.3, 0.7]


class TestSymbolsAndSizes:
    def test_symbol_legend(self, pmap, surface):
        pmap.apply_settings({"symbol": "phase"})
        legend = surface.traces[3:]
        assert [trace["name"] for trace in legend] == ["a", "b", "c"]
        assert [trace["showlegend"] for trace in legend] == [True] * 3
        np.testing.assert_array_equal(surface.traces[0]["marker"]["symbol"], [0, 1, 0, 2])
        assert surface.layout["coloraxis"]["colorbar"]["len"] == pytest.approx(0.865)

    def test_clear_symbol(self, pmap, surface):
        pmap.apply_settings({"symbol": "phase"})
        pmap.apply_settings({"symbol": ""})
        assert [trace["showlegend"] for trace in surface.traces[3:]] == [False] * 3
        assert surface.traces[0]["marker"]["symbol"] == "circle"

    def test_size_mode(self, pmap, surface):
        assert not pmap.options.size.property.enabled
        pmap.apply_settings({"size": {"mode": "linear", "property": "volume"}})
        assert pmap.options.size.property.enabled
        sizes = np.asarray(surface.traces[0]["marker"]["size"])
        assert sizes[0] < sizes[3]

    def test_size_factor(self, pmap, surface):
        before = np.asarray(surface.traces[0]["marker"]["size"])
        pmap.options.size.factor.value = 100
        after = np.asarray(surface.traces[0]["marker"]["size"])
        assert np.all(after > before)


class TestClicks:
    def test_without_marker_only_reports(self, pmap, surface):
        selected = []
        pmap.on_select = selected.append
        surface.click(0, 2)
        assert selected == [2]
        assert pmap.markers == []

    def test_moves_active_marker(self, pmap, surface):
        selected = []
        pmap.on_select = selected.append
        pmap.add_marker("m1", "red", 0)
        surface.click(0, 3)
        assert pmap.markers[0].current == 3
        assert selected == [3]

    def test_point_numbers_mapped_through_partition(self, pmap, surface):
        selected = []
        pmap.on_select = selected.append
        pmap.apply_settings(FILTER_ENERGY)
        surface.click(0, 0)
        surface.click(1, 1)
        assert selected == [1, 3]

    def test_double_click_ignored(self, pmap, surface):
        selected = []
        pmap.on_select = selected.append
        surface.click(0, 2, double=True)
        assert selected == []

    def test_legend_click_ignored(self, pmap, surface):
        selected = []
        pmap.on_select = selected.append
        surface.click(4, 0)
        assert selected == []

    def test_selected_trace_click_in_3d(self, pmap, surface):
        selected, changes = [], []
        pmap.on_select = selected.append
        pmap.on_active_changed = lambda guid, point: changes.append((guid, point))
        pmap.apply_settings({"z": {"property": "volume"}})
        pmap.add_marker("m1", "red", 2)
        pmap.add_marker("m2", "blue", 0)
        surface.click(2, 0)
        assert pmap.active == "m1"
        assert changes == [("m1", 2)]
        assert selected == [2]
        np.testing.assert_array_equal(
            surface.traces[2]["marker"]["size"], [4000.0, 2000.0],
        )

    def test_overlay_click(self, pmap):
        changes = []
        pmap.on_active_changed = lambda guid, point: changes.append((guid, point))
        m1 = pmap.add_marker("m1", "red", 2)
        pmap.add_marker("m2", "blue", 0)
        m1.overlay.click()
        assert pmap.active == "m1"
        assert changes == [("m1", 2)]


class TestSelectionAPI:
    def test_markers(self, pmap):
        pmap.add_marker("m1", "red", 2)
        pmap.add_marker("m2", "blue", 0)
        pmap.set_active("m1")
        pmap.select(1)
        assert [(m.guid, m.current) for m in pmap.markers] == [("m1", 1), ("m2", 0)]
        pmap.remove_marker("m1")
        assert pmap.active == "m2"

    def test_select_without_marker_raises(self, pmap):
        with pytest.raises(ConfigurationError, match="no active marker"):
            pmap.select(1)

    def test_overlay_position(self, pmap):
        marker = pmap.add_marker("m1", "red", 2)
        assert marker.overlay.right == pytest.approx(60.0, abs=1.0)
        assert marker.overlay.top == pytest.approx(160.0, abs=1.0)

    def test_zoom_hides_marker(self, pmap):
        marker = pmap.add_marker("m1", "red", 2)
        pmap.apply_settings({"x": {"min": 0.0, "max": 4.0}})
        assert not marker.overlay.visible


class TestSettings:
    def test_apply_own_settings_is_identity(self, pmap):
        pmap.apply_settings({"symbol": "phase", "color": {"property": "energy"}})
        pmap.apply_settings(FILTER_ENERGY)
        saved = pmap.save_settings()
        pmap.apply_settings(saved)
        assert pmap.save_settings() == saved

    def test_unknown_key_raises(self, pmap):
        with pytest.raises(ValueError, match="unknown keys"):
            pmap.apply_settings({"camera": {}})


class TestRenderFailures:
    def test_failures_warn_and_keep_state(self, pmap, surface):
        surface.fail = True
        with pytest.warns(RenderSurfaceWarning):
            pmap.apply_settings({"palette": "viridis"})
        assert pmap.options.palette.value == "viridis"
        assert pmap.adapter.failures == 1

    def test_custom_handler(self, surface, raw_properties):
        errors = []
        pmap = PropertiesMap(
            surface, raw_properties,
            on_error=lambda operation, exc: errors.append(operation),
        )
        surface.fail = True
        pmap.apply_settings({"symbol": "phase"})
        assert errors == ["restyle", "restyle", "relayout"]

    def test_failed_creation(self, surface, raw_properties):
        surface.fail = True
        with pytest.warns(RenderSurfaceWarning, match="create_plot"):
            pmap = PropertiesMap(surface, raw_properties)
        assert pmap.adapter.failures == 1
        assert pmap.options.x.property.value == "energy"
