"""Tests for selection markers and their overlay elements."""

import pytest

from propmap.model.marker import MarkerOverlay, SelectionMarker


class TestMarkerOverlay:
    def test_move_shows(self):
        overlay = MarkerOverlay(colour="rgb(255, 0, 0)", visible=False)
        overlay.move(10.0, 20.0)
        assert (overlay.right, overlay.top) == (10.0, 20.0)
        assert overlay.visible

    def test_click_calls_back(self):
        clicks = []
        overlay = MarkerOverlay(colour="black", on_click=lambda: clicks.append(1))
        overlay.click()
        assert clicks == [1]

    def test_click_after_destroy_raises(self):
        overlay = MarkerOverlay(colour="black")
        overlay.destroy()
        assert overlay.removed
        with pytest.raises(RuntimeError, match="removed"):
            overlay.click()


class TestSelectionMarker:
    def test_overlay_colour(self):
        marker = SelectionMarker(guid="m1", colour="red", current=2)
        assert marker.overlay.colour == "rgb(255, 0, 0)"

    def test_invalid_colour_raises(self):
        with pytest.raises(ValueError, match="Unrecognised colour"):
            SelectionMarker(guid="m1", colour="notacolour", current=0)

    def test_negative_point_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            SelectionMarker(guid="m1", colour="red", current=-1)

    def test_select_reports_change(self):
        marker = SelectionMarker(guid="m1", colour="red", current=2)
        assert marker.select(3)
        assert not marker.select(3)
        assert marker.current == 3

    def test_activate_deactivate(self):
        marker = SelectionMarker(guid="m1", colour="red", current=0)
        marker.activate()
        assert marker.active and marker.overlay.active
        marker.deactivate()
        assert not marker.active and not marker.overlay.active

    def test_toggle_visible(self):
        marker = SelectionMarker(guid="m1", colour="red", current=0)
        marker.toggle_visible()
        assert not marker.visible and not marker.overlay.visible
        marker.toggle_visible(True)
        assert marker.visible

    def test_remove_destroys_overlay(self):
        marker = SelectionMarker(guid="m1", colour="red", current=0)
        marker.remove()
        assert marker.overlay.removed
        assert not marker.visible
