"""Selection markers and their screen-space overlay."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence

import numpy as np

from propmap.errors import ConfigurationError
from propmap.model.colour import Colour
from propmap.model.marker import SelectionMarker
from propmap.model.options import AxisScale
from propmap.rendering.attributes import AttributeResolver
from propmap.rendering.surface import RenderSurface

#: Markers this many pixels outside the plot area are still placed.
REPROJECTION_BUFFER = 10.0

#: Selected trace attributes refreshed in 2D when the marker set changes.
SELECTED_PATHS_2D = ("x", "y", "marker.color", "marker.size", "marker.symbol")


class SelectionOverlay:
    """The set of selection markers and the active one among them.

    In 2D each marker is drawn as an overlay element positioned in
    screen space, which :meth:`reproject` keeps aligned with the
    surface after every pan or zoom.  In 3D the overlay elements are
    hidden and the markers are drawn by the selected trace, which is
    refreshed through *refresh_selected*.

    Args:
        surface: Render surface, used for its axis ranges and pixel
            transforms.
        resolver: Resolver providing marker data coordinates.
        refresh_selected: Called whenever the selected trace must be
            redrawn: in 3D on every update, in 2D when markers are added,
            removed or moved.  Receives the attribute paths to refresh,
            or ``None`` for all of them.

    Attributes:
        is_3d: Whether the map is currently volumetric.  Maintained by
            the mode controller.
        on_active_changed: Called with ``(guid, point)`` when the user
            clicks a marker's overlay element.
    """

    def __init__(
        self,
        surface: RenderSurface,
        resolver: AttributeResolver,
        refresh_selected: Callable[[Sequence[str] | None], None],
    ) -> None:
        self.surface = surface
        self.resolver = resolver
        self._refresh_selected = refresh_selected
        self._markers: dict[str, SelectionMarker] = {}
        self._active: str | None = None
        self.is_3d = False
        self.on_active_changed: Callable[[str, int], None] | None = None

    # ---- marker set ----

    @property
    def markers(self) -> list[SelectionMarker]:
        """Markers in iteration (insertion) order."""
        return list(self._markers.values())

    @property
    def active(self) -> str | None:
        """GUID of the active marker, or ``None`` if there are no markers."""
        return self._active

    def __contains__(self, guid: object) -> bool:
        return guid in self._markers

    def __iter__(self) -> Iterator[SelectionMarker]:
        return iter(self.markers)

    def __len__(self) -> int:
        return len(self._markers)

    def get(self, guid: str) -> SelectionMarker:
        """Return the marker with *guid*.

        Raises:
            ConfigurationError: If there is no such marker.
        """
        try:
            return self._markers[guid]
        except KeyError:
            raise ConfigurationError(f"no marker with GUID {guid!r}") from None

    def add(self, guid: str, colour: Colour, point: int) -> SelectionMarker:
        """Create a marker on *point* and make it the active one.

        Raises:
            ConfigurationError: If *guid* is already in use or *point*
                is outside the dataset.
        """
        if guid in self._markers:
            raise ConfigurationError(f"a marker with GUID {guid!r} already exists")
        self._check_point(point)

        marker = SelectionMarker(guid=guid, colour=colour, current=point)
        marker.overlay.on_click = lambda: self._clicked(guid)
        if self.is_3d:
            marker.toggle_visible(False)
        self._markers[guid] = marker
        self._markers_changed([marker])
        self.set_active(guid)
        return marker

    def remove(self, guid: str) -> None:
        """Destroy a marker, promoting another one if it was active."""
        marker = self.get(guid)
        if self._active == guid:
            remaining = [g for g in self._markers if g != guid]
            if remaining:
                self.set_active(remaining[0])
            else:
                self._active = None

        marker.remove()
        del self._markers[guid]
        self._markers_changed()

    def set_active(self, guid: str) -> None:
        """Make *guid* the active marker.

        In 3D the selected trace sizes are refreshed so the active
        marker is drawn larger.
        """
        marker = self.get(guid)
        if self._active is not None:
            self.get(self._active).deactivate()
        self._active = guid
        marker.activate()
        if self.is_3d:
            self._refresh_selected(["marker.size"])

    def select(self, point: int) -> bool:
        """Move the active marker to *point*.

        Returns:
            ``True`` if the marker moved, ``False`` if it was already
            on *point*.

        Raises:
            ConfigurationError: If there is no active marker or *point*
                is outside the dataset.
        """
        if self._active is None:
            raise ConfigurationError(
                "tried to update the selected point, but there is no "
                "active marker"
            )
        self._check_point(point)
        if self.get(self._active).select(point):
            self._markers_changed()
            return True
        return False

    def set_visible(self, visible: bool) -> None:
        """Show or hide every overlay element."""
        for marker in self._markers.values():
            marker.toggle_visible(visible)

    # ---- drawing ----

    def update(self, markers: Sequence[SelectionMarker] | None = None) -> None:
        """Redraw *markers* (all by default) for the current mode."""
        if self.is_3d:
            for marker in markers if markers is not None else self.markers:
                marker.toggle_visible(False)
            self._refresh_selected(None)
        else:
            self.reproject(markers)

    def reproject(self, markers: Sequence[SelectionMarker] | None = None) -> None:
        """Place overlay elements from the surface's current view.

        Each element sits at ``(plot_width - x_pixel, y_pixel)``,
        measured from the right and top edges.  Elements whose point
        lies outside the visible area (plus
        :data:`REPROJECTION_BUFFER` pixels) are hidden.  Does nothing
        in 3D mode.
        """
        if self.is_3d:
            return
        markers = self.markers if markers is None else list(markers)
        if not markers:
            return

        x_bounds = self._pixel_bounds("x")
        y_bounds = self._pixel_bounds("y")
        plot_width = self.surface.plot_width
        for marker in markers:
            x, y = self.resolver.point_coordinates(marker.current)
            px = self.surface.to_pixel("x", x)
            py = self.surface.to_pixel("y", y)
            inside = (
                np.isfinite(px) and np.isfinite(py)
                and x_bounds[0] <= px <= x_bounds[1]
                and y_bounds[0] <= py <= y_bounds[1]
            )
            if inside:
                marker.overlay.move(plot_width - px, py)
            else:
                marker.overlay.visible = False

    def _pixel_bounds(self, axis: str) -> tuple[float, float]:
        low, high = self.surface.axis_range(axis)
        scale = getattr(self.resolver.options, axis).scale.value
        if scale == AxisScale.LOG:
            low, high = 10.0**low, 10.0**high
        a = self.surface.to_pixel(axis, low)
        b = self.surface.to_pixel(axis, high)
        return (min(a, b) - REPROJECTION_BUFFER, max(a, b) + REPROJECTION_BUFFER)

    # ---- internals ----

    def _markers_changed(
        self, markers: Sequence[SelectionMarker] | None = None,
    ) -> None:
        # the selected trace holds one entry per marker in both modes
        if not self.is_3d:
            self._refresh_selected(SELECTED_PATHS_2D)
        self.update(markers)

    def _check_point(self, point: int) -> None:
        n_points = self.resolver.store.n_points
        if not 0 <= point < n_points:
            raise ConfigurationError(
                f"point index {point} out of range for {n_points} points"
            )

    def _clicked(self, guid: str) -> None:
        self.set_active(guid)
        if self.on_active_changed is not None:
            self.on_active_changed(guid, self.get(guid).current)
