"""The properties map: a 2D/3D scatter plot of per-point properties."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import numpy as np

from propmap.errors import ConfigurationError
from propmap.model.colour import Colour
from propmap.model.marker import SelectionMarker
from propmap.model.options import (
    AxisOptions,
    MapOptions,
    ModificationOrigin,
    OpacityMode,
    SizeMode,
)
from propmap.model.partition import compute_partition
from propmap.model.property import DisplayMode, PropertyStore
from propmap.rendering.adapter import FailureHandler, RenderAdapter
from propmap.rendering.attributes import (
    LEGEND_OFFSET,
    AttributeResolver,
    TraceRole,
)
from propmap.rendering.mode import ModeController
from propmap.rendering.overlay import SelectionOverlay
from propmap.rendering.surface import ClickEvent, RenderSurface

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT: dict[str, Any] = {
    # the colour axis is shared by the main and background markers
    "coloraxis": {
        "cmax": 0,
        "cmin": 0,
        "colorbar": {
            "len": 1,
            "thickness": 20,
            "title": {"text": ""},
            "y": 0,
            "yanchor": "bottom",
        },
        "colorscale": [],
        "showscale": True,
    },
    "hovermode": "closest",
    "legend": {
        "itemclick": False,
        "itemdoubleclick": False,
        "tracegroupgap": 5,
        "y": 1,
        "yanchor": "top",
    },
    "margin": {"b": 50, "l": 50, "r": 50, "t": 50},
    "scene": {
        "camera": {"projection": {"type": "orthographic"}},
        "xaxis": {"showspikes": False, "title": {"text": ""}},
        "yaxis": {"showspikes": False, "title": {"text": ""}},
        "zaxis": {"showspikes": False, "title": {"text": ""}},
    },
    "showlegend": True,
    "xaxis": {"title": {"text": ""}, "type": "linear", "zeroline": False},
    "yaxis": {"title": {"text": ""}, "type": "linear", "zeroline": False},
}

DEFAULT_CONFIG: dict[str, Any] = {
    "displayModeBar": True,
    "displaylogo": False,
    "responsive": True,
    "scrollZoom": True,
    "modeBarButtonsToRemove": [
        "hoverClosestCartesian",
        "hoverCompareCartesian",
        "toggleSpikelines",
        "autoScale2d",
        "zoomIn2d",
        "zoomOut2d",
        "select2d",
        "lasso2d",
        "hoverClosest3d",
        "tableRotation",
        "resetCameraLastSave3d",
    ],
}

_POINT_TRACES = [int(role) for role in TraceRole]
_AXES = ("x", "y", "z")


def _plain(value: Any) -> Any:
    """Convert numpy arrays into lists for plotly trace dictionaries."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _value_range(values: np.ndarray) -> tuple[float, float]:
    values = np.asarray(values, dtype=float)
    values = values[np.isfinite(values)]
    if len(values) == 0:
        return (0.0, 0.0)
    return (float(values.min()), float(values.max()))


class PropertiesMap:
    """Interactive scatter plot of dataset properties.

    Keeps a render surface in sync with the map options: every option
    change recomputes the affected rendering attributes and pushes a
    partial update to the surface.  The map also owns the selection
    markers and routes clicks on the surface to them.

    Args:
        surface: Render surface to draw on, e.g.
            :class:`~propmap.rendering.surface.PlotlySurface`.
        properties: A :class:`~propmap.model.property.PropertyStore`, or
            raw properties ``{name: {"target": ..., "values": [...]}}``.
        mode: Display mode to use when *properties* is raw.
        settings: Optional settings dictionary, as returned by
            :meth:`save_settings`.
        on_error: Handler for render surface failures; defaults to
            emitting a :class:`~propmap.errors.RenderSurfaceWarning`.

    Attributes:
        on_select: Called with the dataset index of a point the user
            clicked on.
        on_active_changed: Called with ``(guid, point)`` when a click
            on a marker makes it the active one.

    Example:
        >>> from propmap import PlotlySurface, PropertiesMap
        >>> surface = PlotlySurface()
        >>> pmap = PropertiesMap(surface, {"energy": [1.0, 5.0, 9.0, 2.0],
        ...                                "volume": [3.0, 1.0, 4.0, 1.5]})
        >>> marker = pmap.add_marker("m1", "red", 2)
        >>> surface.figure.show()  # doctest: +SKIP
    """

    def __init__(
        self,
        surface: RenderSurface,
        properties: PropertyStore | Mapping[str, Any],
        *,
        mode: DisplayMode | str = DisplayMode.STRUCTURE,
        settings: dict | None = None,
        on_error: FailureHandler | None = None,
    ) -> None:
        if isinstance(properties, PropertyStore):
            self.store = properties
        else:
            self.store = PropertyStore.from_raw(properties, mode)
        self.options = MapOptions(self.store, settings)

        self.adapter = RenderAdapter(surface, on_error)
        self.resolver = AttributeResolver(
            self.store, self.options, markers=lambda: self.overlay.markers,
        )
        self.overlay = SelectionOverlay(
            surface, self.resolver, self._update_selected_trace,
        )
        self.overlay.on_active_changed = self._marker_clicked
        self.mode = ModeController(
            self.options, self.resolver, self.overlay, self.adapter,
        )

        self.on_select: Callable[[int], None] | None = None
        self.on_active_changed: Callable[[str, int], None] | None = None

        self._update_filter()
        saved_colors = settings.get("color", {}) if settings else {}
        self._init_colors(keep_range="min" in saved_colors or "max" in saved_colors)
        self._sync_enabled()
        self._connect_settings()

        surface.on("click", self._on_click)
        surface.on("afterplot", self._afterplot)
        self._create_plot()

    @property
    def surface(self) -> RenderSurface:
        return self.adapter.surface

    @property
    def is_3d(self) -> bool:
        return self.mode.is_3d

    # ------------------------------------------------------------------
    # Selection API
    # ------------------------------------------------------------------

    @property
    def markers(self) -> list[SelectionMarker]:
        """Selection markers in insertion order."""
        return self.overlay.markers

    @property
    def active(self) -> str | None:
        """GUID of the active marker, if any."""
        return self.overlay.active

    def add_marker(self, guid: str, colour: Colour, point: int) -> SelectionMarker:
        """Add a selection marker on *point*; it becomes the active marker."""
        return self.overlay.add(guid, colour, point)

    def remove_marker(self, guid: str) -> None:
        """Remove the marker with *guid*."""
        self.overlay.remove(guid)

    def set_active(self, guid: str) -> None:
        """Make *guid* the active marker."""
        self.overlay.set_active(guid)

    def select(self, point: int) -> None:
        """Move the active marker to the dataset point *point*."""
        self.overlay.select(point)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def save_settings(self) -> dict:
        """Current settings of the map, as a JSON-compatible dictionary."""
        return self.options.save_settings()

    def apply_settings(self, settings: dict) -> None:
        """Apply a (possibly partial) settings dictionary to the live map."""
        self.options.apply_settings(settings)

    def reset_color_range(self) -> None:
        """Fit the colour range to every point, filtered out or not."""
        name = self.options.color.property.value
        if name == "":
            return
        low, high = _value_range(self.store.get(name).values)
        self.options.color.min.value = low
        self.options.color.max.value = high

    # ------------------------------------------------------------------
    # Option handlers
    # ------------------------------------------------------------------

    def _init_colors(self, *, keep_range: bool) -> None:
        color = self.options.color
        if color.property.value != "":
            color.enable()
            if not keep_range:
                low, high = self._main_color_range()
                color.min.value = low
                color.max.value = high
        else:
            color.disable()
            color.min.value = 0.0
            color.max.value = 0.0

    def _sync_enabled(self) -> None:
        """Enable only the options that the current modes make use of."""
        opacity = self.options.opacity
        filtered = opacity.mode.value == OpacityMode.FILTER
        for option in (
            opacity.filter.property, opacity.filter.operator,
            opacity.filter.cutoff, opacity.minimum,
        ):
            if filtered:
                option.enable()
            else:
                option.disable()

        size = self.options.size
        variable = size.mode.value != SizeMode.CONSTANT
        for option in (size.property, size.reverse):
            if variable:
                option.enable()
            else:
                option.disable()

    def _connect_settings(self) -> None:
        options = self.options

        for name in ("x", "y"):
            axis: AxisOptions = getattr(options, name)
            axis.property.on_change(self._planar_property_changed(name))
            axis.scale.on_change(self._scale_changed(name))
            axis.min.on_change(self._range_changed(name))
            axis.max.on_change(self._range_changed(name))

        options.z.property.on_change(self._z_property_changed)
        options.z.scale.on_change(self._scale_changed("z"))
        options.z.min.on_change(self._range_changed("z"))
        options.z.max.on_change(self._range_changed("z"))

        options.color.property.on_change(self._color_property_changed)
        options.color.min.on_change(self._color_range_changed)
        options.color.max.on_change(self._color_range_changed)
        options.palette.on_change(
            lambda value, origin: self.adapter.relayout(
                {"coloraxis.colorscale": options.color_scale()},
            )
        )

        options.opacity.mode.on_change(self._opacity_mode_changed)
        options.opacity.filter.property.on_change(self._filter_property_changed)
        options.opacity.filter.operator.on_change(self._filter_changed)
        options.opacity.filter.cutoff.on_change(self._filter_changed)
        options.opacity.minimum.on_change(
            lambda value, origin: self.adapter.restyle(
                {"marker.opacity": [value]}, [TraceRole.BACKGROUND],
            )
        )
        options.opacity.maximum.on_change(
            lambda value, origin: self.adapter.restyle(
                {"marker.opacity": [value, value]},
                [TraceRole.MAIN, TraceRole.SELECTED],
            )
        )

        options.symbol.on_change(self._symbol_changed)

        options.size.mode.on_change(self._size_mode_changed)
        for option in (options.size.factor, options.size.property, options.size.reverse):
            option.on_change(lambda value, origin: self._restyle_sizes())

    def _planar_property_changed(self, name: str) -> Callable:
        axis = getattr(self.options, name)

        def handler(value: str, origin: ModificationOrigin) -> None:
            self.adapter.restyle(
                {name: self.resolver.coordinates(axis).as_list()}, _POINT_TRACES,
            )
            self.adapter.relayout({
                f"scene.{name}axis.title.text": value,
                f"{name}axis.title.text": value,
            })
        return handler

    def _scale_changed(self, name: str) -> Callable:
        def handler(value: str, origin: ModificationOrigin) -> None:
            if name == "z":
                if self.options.z.property.value != "":
                    self.adapter.relayout({"scene.zaxis.type": value})
            elif self.is_3d:
                self.adapter.relayout({f"scene.{name}axis.type": value})
            else:
                self.adapter.relayout({f"{name}axis.type": value})
        return handler

    def _range_changed(self, name: str) -> Callable:
        axis = getattr(self.options, name)

        def handler(value: float, origin: ModificationOrigin) -> None:
            # values read back from the surface must not be pushed again
            if origin is ModificationOrigin.SURFACE:
                return
            bounds = [axis.min.value, axis.max.value]
            if self.is_3d:
                self.adapter.relayout({f"scene.{name}axis.range": bounds})
            elif name != "z":
                self.adapter.relayout({f"{name}axis.range": bounds})
        return handler

    def _z_property_changed(self, value: str, origin: ModificationOrigin) -> None:
        self.mode.sync()
        self.adapter.restyle(
            {"z": self.resolver.coordinates(self.options.z).as_list()},
            _POINT_TRACES,
        )
        self.adapter.relayout({"scene.zaxis.title.text": value})

    def _color_property_changed(self, value: str, origin: ModificationOrigin) -> None:
        color = self.options.color
        if value != "":
            color.enable()
            low, high = self._main_color_range()
            color.min.value = low
            color.max.value = high
            self.adapter.relayout({
                "coloraxis.colorbar.title.text": value,
                "coloraxis.showscale": True,
            })
        else:
            color.disable()
            color.min.value = 0.0
            color.max.value = 0.0
            self.adapter.relayout({
                "coloraxis.colorbar.title.text": None,
                "coloraxis.showscale": False,
            })

        self.adapter.restyle(
            {
                "hovertemplate": [self.options.hovertemplate()] * len(_POINT_TRACES),
                "marker.color": self.resolver.colors().as_list(),
            },
            _POINT_TRACES,
        )

    def _color_range_changed(self, value: float, origin: ModificationOrigin) -> None:
        self.adapter.relayout({
            "coloraxis.cmin": self.options.color.min.value,
            "coloraxis.cmax": self.options.color.max.value,
            # updating cmin/cmax alone does not recolour the points
            "coloraxis.colorscale": self.options.color_scale(),
        })

    def _main_color_range(self) -> tuple[float, float]:
        main = self.resolver.colors(TraceRole.MAIN)
        if np.size(main) == 0:
            return _value_range(self.store.get(self.options.color.property.value).values)
        return _value_range(main)

    def _opacity_mode_changed(self, value: str, origin: ModificationOrigin) -> None:
        self._sync_enabled()
        opacity = self.options.opacity
        if value == OpacityMode.FILTER:
            opacity.minimum.value = max(
                0.0, min(opacity.minimum.value, opacity.maximum.value - 0.2),
            )
        self._refilter()

    def _filter_property_changed(self, value: str, origin: ModificationOrigin) -> None:
        # the cutoff handler recomputes the partition
        values = self.store.get(value).values
        self.options.opacity.filter.cutoff.value = float(np.mean(values))

    def _filter_changed(self, value: Any, origin: ModificationOrigin) -> None:
        self._refilter()

    def _symbol_changed(self, value: str, origin: ModificationOrigin) -> None:
        self.adapter.restyle(
            {"marker.symbol": self.resolver.symbols().as_list()}, _POINT_TRACES,
        )
        legend_traces = self._legend_traces()
        if legend_traces:
            self.adapter.restyle(
                {
                    "name": self.resolver.legend_names(),
                    "showlegend": self.resolver.show_legend(),
                },
                legend_traces,
            )
        self.adapter.relayout(
            {"coloraxis.colorbar.len": self.resolver.colorbar_len()},
        )

    def _size_mode_changed(self, value: str, origin: ModificationOrigin) -> None:
        self._sync_enabled()
        self._restyle_sizes()

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _update_filter(self) -> None:
        filter_options = self.options.opacity.filter
        values = self.store.get(filter_options.property.value).values
        self.resolver.partition = compute_partition(
            values,
            filter_options.operator.value,
            filter_options.cutoff.value,
            enabled=self.options.opacity.mode.value == OpacityMode.FILTER,
        )

    def _refilter(self) -> None:
        """Recompute the partition and redraw every partitioned attribute."""
        self._update_filter()
        resolver = self.resolver
        self.adapter.restyle(
            {
                "marker.color": resolver.colors().as_list(),
                "marker.size": resolver.sizes().as_list(),
                "marker.symbol": resolver.symbols().as_list(),
                "marker.opacity": resolver.opacities().as_list(),
                "x": resolver.coordinates(self.options.x).as_list(),
                "y": resolver.coordinates(self.options.y).as_list(),
                "z": resolver.coordinates(self.options.z).as_list(),
            },
            _POINT_TRACES,
        )

    def _restyle_sizes(self) -> None:
        self.adapter.restyle(
            {"marker.size": self.resolver.sizes().as_list()}, _POINT_TRACES,
        )

    def _update_selected_trace(self, paths: Sequence[str] | None = None) -> None:
        """Redraw the selected trace, optionally only some attribute *paths*."""
        role = TraceRole.SELECTED
        resolver = self.resolver
        compute: dict[str, Callable[[], Any]] = {
            "x": lambda: resolver.coordinates(self.options.x, role),
            "y": lambda: resolver.coordinates(self.options.y, role),
            "z": lambda: resolver.coordinates(self.options.z, role),
            "marker.color": lambda: resolver.colors(role),
            "marker.size": lambda: resolver.sizes(role),
            "marker.symbol": lambda: resolver.symbols(role),
        }
        if paths is None:
            paths = list(compute)
        unknown = set(paths) - set(compute)
        if unknown:
            raise ConfigurationError(
                f"cannot refresh selected trace attributes {sorted(unknown)}"
            )
        self.adapter.restyle({path: [compute[path]()] for path in paths}, [role])

    def _legend_traces(self) -> list[int]:
        return list(range(LEGEND_OFFSET, self.mode.n_traces))

    # ------------------------------------------------------------------
    # Plot creation and surface events
    # ------------------------------------------------------------------

    def _create_plot(self) -> None:
        resolver = self.resolver
        options = self.options
        trace_type = self.mode.trace_type
        is_3d = self.is_3d

        x = resolver.coordinates(options.x)
        y = resolver.coordinates(options.y)
        z = resolver.coordinates(options.z)
        colors = resolver.colors()
        line_colors = resolver.line_colors()
        line_widths = resolver.line_widths()
        sizes = resolver.sizes()
        symbols = resolver.symbols()
        opacities = resolver.opacities()

        traces = []
        for role in TraceRole:
            trace = {
                "name": role.name.lower(),
                "type": trace_type,
                "x": _plain(x[role]),
                "y": _plain(y[role]),
                "hovertemplate": options.hovertemplate(),
                "marker": {
                    "color": _plain(colors[role]),
                    "line": {
                        "color": _plain(line_colors[role]),
                        "width": line_widths[role],
                    },
                    # per-trace opacity, otherwise plotly dims bubble charts
                    "opacity": opacities[role],
                    "size": _plain(sizes[role]),
                    "sizemode": "area",
                    "symbol": _plain(symbols[role]),
                },
                "mode": "markers",
                "showlegend": False,
            }
            if role is TraceRole.SELECTED:
                trace["hoverinfo"] = "none"
                del trace["hovertemplate"]
            else:
                trace["marker"]["coloraxis"] = "coloraxis"
            if is_3d:
                trace["z"] = _plain(z[role])
            traces.append(trace)

        names = resolver.legend_names()
        show = resolver.show_legend()
        for s, symbol in enumerate(resolver.legend_symbols()):
            trace = {
                "name": names[s],
                "type": trace_type,
                "x": [np.nan],
                "y": [np.nan],
                "marker": {"color": "black", "size": 10, "symbol": symbol},
                "mode": "markers",
                "showlegend": show[s],
            }
            if is_3d:
                trace["z"] = [np.nan]
            traces.append(trace)

        layout = copy.deepcopy(DEFAULT_LAYOUT)
        for name in ("x", "y"):
            axis = getattr(options, name)
            layout[f"{name}axis"]["title"]["text"] = axis.property.value
            layout[f"{name}axis"]["type"] = axis.scale.value
        for name in _AXES:
            axis = getattr(options, name)
            layout["scene"][f"{name}axis"]["title"]["text"] = axis.property.value
            layout["scene"][f"{name}axis"]["type"] = axis.scale.value
        coloraxis = layout["coloraxis"]
        coloraxis["colorscale"] = options.color_scale()
        coloraxis["cmin"] = options.color.min.value
        coloraxis["cmax"] = options.color.max.value
        coloraxis["colorbar"]["title"]["text"] = options.color.property.value
        coloraxis["colorbar"]["len"] = resolver.colorbar_len()
        coloraxis["showscale"] = options.has_colors()

        logger.debug(
            "creating %s properties map with %d points",
            self.mode.mode, self.store.n_points,
        )
        self.adapter.create(traces, layout, copy.deepcopy(DEFAULT_CONFIG))
        self.overlay.update()

    def _on_click(self, event: ClickEvent) -> None:
        # a double click resets the zoom in 2D
        if event.double:
            return

        partition = self.resolver.partition
        if event.trace == TraceRole.MAIN:
            point = int(partition.main[event.point])
        elif event.trace == TraceRole.BACKGROUND:
            point = int(partition.background[event.point])
        elif event.trace == TraceRole.SELECTED and self.is_3d:
            marker = self.overlay.markers[event.point]
            point = marker.current
            if self.overlay.active != marker.guid:
                self.overlay.set_active(marker.guid)
                if self.on_active_changed is not None:
                    self.on_active_changed(marker.guid, point)
        else:
            return

        if self.overlay.active is not None:
            self.overlay.select(point)
        if self.on_select is not None:
            self.on_select(point)

    def _marker_clicked(self, guid: str, point: int) -> None:
        if self.on_active_changed is not None:
            self.on_active_changed(guid, point)

    def _afterplot(self) -> None:
        """Read the rendered axis ranges back and realign the overlay."""
        axes = _AXES if self.is_3d else _AXES[:2]
        for name in axes:
            low, high = self.surface.axis_range(name)
            axis = getattr(self.options, name)
            axis.min.set(low, ModificationOrigin.SURFACE)
            axis.max.set(high, ModificationOrigin.SURFACE)
        if not self.is_3d:
            self.overlay.reproject()
