"""Render surface contract and a plotly-backed implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np

logger = logging.getLogger(__name__)

#: Trace type used for planar maps.
TRACE_2D = "scattergl"
#: Trace type used for volumetric maps.
TRACE_3D = "scatter3d"

# plotly's default figure size when the layout does not set one
_DEFAULT_WIDTH = 700.0
_DEFAULT_HEIGHT = 450.0
_AUTORANGE_PADDING = 0.05
_DEFAULT_MARGIN = {"l": 80.0, "r": 80.0, "t": 100.0, "b": 80.0}

# trace properties the planar scatter type does not carry
_UNSUPPORTED_2D = ("z",)


@dataclass(frozen=True)
class ClickEvent:
    """A click on a rendered point.

    Attributes:
        trace: Index of the clicked trace.
        point: Index of the clicked point within that trace.
        double: Whether this was the second click of a double click.
    """

    trace: int
    point: int
    double: bool = False


class RenderSurface(Protocol):
    """What the engine needs from a plotting backend.

    Updates use plotly's restyle/relayout vocabulary: dotted attribute
    paths (``"marker.line.color"``) mapped to new values.  Restyle
    values are always lists holding one entry per index in *traces*;
    an entry of ``None`` for a property the trace type does not have
    (``z`` on a planar trace) means "channel unused" and is skipped.

    The introspection methods expose the currently rendered view and
    are the only state the engine reads back from the surface.
    """

    def create_plot(self, traces: list[dict], layout: dict, config: dict) -> None:
        """Replace any existing plot with *traces* and *layout*."""
        ...

    def restyle(self, update: dict[str, list], traces: Sequence[int]) -> None:
        """Apply per-trace attribute updates to the given traces."""
        ...

    def relayout(self, update: dict[str, Any]) -> None:
        """Apply layout attribute updates."""
        ...

    def on(self, event: str, handler: Callable[..., None]) -> None:
        """Register a handler for ``"click"`` or ``"afterplot"``.

        ``"click"`` handlers receive a :class:`ClickEvent`;
        ``"afterplot"`` handlers are called without arguments after
        every render pass.
        """
        ...

    def axis_range(self, axis: str) -> tuple[float, float]:
        """Current visible range of axis ``"x"``, ``"y"`` or ``"z"``.

        Ranges of logarithmic axes are in ``log10`` units.
        """
        ...

    def to_pixel(self, axis: str, value: float) -> float:
        """Pixel position of a data *value* on planar axis ``"x"`` or ``"y"``.

        x pixels grow rightwards from the left edge of the plot, y
        pixels grow downwards from its top edge.
        """
        ...

    @property
    def plot_width(self) -> float:
        """Total width of the plot in pixels."""
        ...


class PlotlySurface:
    """Render surface backed by a ``plotly.graph_objects.Figure``.

    Restyle and relayout go through ``Figure.plotly_restyle`` and
    ``Figure.plotly_relayout``.  Changing the trace ``type`` cannot be
    done in place on typed plotly traces, so such updates rebuild the
    figure from its JSON with the new type.  Every operation counts as
    a render pass and fires ``"afterplot"`` handlers synchronously.

    Without a browser there is no rendered layout to read back, so the
    introspection methods derive the view from the figure: explicit
    axis ranges are used as-is, otherwise the range is the data extent
    padded by 5% on each side, and data values map linearly to pixels
    inside the layout margins.

    Args:
        width: Figure width in pixels when the layout does not set one.
        height: Figure height in pixels when the layout does not set one.
    """

    def __init__(
        self,
        width: float = _DEFAULT_WIDTH,
        height: float = _DEFAULT_HEIGHT,
    ) -> None:
        self._default_width = width
        self._default_height = height
        self.figure = None
        self.config: dict = {}
        self._handlers: dict[str, list[Callable[..., None]]] = {
            "click": [],
            "afterplot": [],
        }

    # ---- contract ----

    def create_plot(self, traces: list[dict], layout: dict, config: dict) -> None:
        import plotly.graph_objects as go

        self.figure = go.Figure(data=traces, layout=layout)
        self.config = dict(config)
        logger.debug("created plotly figure with %d traces", len(traces))
        self._emit("afterplot")

    def restyle(self, update: dict[str, list], traces: Sequence[int]) -> None:
        figure = self._require_figure()
        update = dict(update)
        new_types = update.pop("type", None)

        for position, index in enumerate(traces):
            trace = figure.data[index]
            patch = {}
            for key, values in update.items():
                value = values[position]
                if value is None and key.split(".")[0] not in trace:
                    continue
                if isinstance(value, np.ndarray):
                    value = value.tolist()
                patch[key] = [value]
            if patch:
                figure.plotly_restyle(patch, trace_indexes=[index])

        if new_types is not None:
            self._change_types(dict(zip(traces, new_types)))
        self._emit("afterplot")

    def relayout(self, update: dict[str, Any]) -> None:
        figure = self._require_figure()
        figure.plotly_relayout(dict(update))
        self._emit("afterplot")

    def on(self, event: str, handler: Callable[..., None]) -> None:
        if event not in self._handlers:
            raise ValueError(
                f"unknown event {event!r}; expected one of "
                f"{sorted(self._handlers)}"
            )
        self._handlers[event].append(handler)

    def axis_range(self, axis: str) -> tuple[float, float]:
        layout_axis = self._layout_axis(axis)
        if layout_axis.range is not None:
            low, high = layout_axis.range
            return (float(low), float(high))

        figure = self._require_figure()
        chunks = []
        for trace in figure.data:
            if axis in trace and trace[axis] is not None:
                chunks.append(np.asarray(trace[axis], dtype=float).ravel())
        values = np.concatenate(chunks) if chunks else np.empty(0)
        if layout_axis.type == "log":
            values = np.log10(values[values > 0])
        values = values[np.isfinite(values)]
        if len(values) == 0:
            return (-1.0, 1.0)

        low, high = float(values.min()), float(values.max())
        padding = _AUTORANGE_PADDING * (high - low) if high > low else 0.5
        return (low - padding, high + padding)

    def to_pixel(self, axis: str, value: float) -> float:
        if axis not in ("x", "y"):
            raise ValueError(f"pixel transforms exist for x and y only, got {axis!r}")
        layout_axis = self._layout_axis(axis)
        if layout_axis.type == "log":
            value = np.log10(value) if value > 0 else np.nan
        low, high = self.axis_range(axis)
        fraction = (value - low) / (high - low)

        if axis == "x":
            left, right = self._margin("l"), self._margin("r")
            return float(left + fraction * (self.plot_width - left - right))
        top, bottom = self._margin("t"), self._margin("b")
        return float(top + (1.0 - fraction) * (self.plot_height - top - bottom))

    @property
    def plot_width(self) -> float:
        width = self._require_figure().layout.width
        return float(width) if width is not None else self._default_width

    @property
    def plot_height(self) -> float:
        height = self._require_figure().layout.height
        return float(height) if height is not None else self._default_height

    # ---- interaction ----

    def click(self, trace: int, point: int, *, double: bool = False) -> None:
        """Dispatch a click on *point* of *trace* to ``"click"`` handlers."""
        event = ClickEvent(trace=trace, point=point, double=double)
        for handler in list(self._handlers["click"]):
            handler(event)

    @property
    def is_3d(self) -> bool:
        """Whether the first trace currently uses the volumetric type."""
        figure = self._require_figure()
        return len(figure.data) > 0 and figure.data[0].type == TRACE_3D

    # ---- internals ----

    def _require_figure(self):
        if self.figure is None:
            raise RuntimeError("create_plot() must be called first")
        return self.figure

    def _margin(self, side: str) -> float:
        value = self._require_figure().layout.margin[side]
        return float(value) if value is not None else _DEFAULT_MARGIN[side]

    def _layout_axis(self, axis: str):
        if axis not in ("x", "y", "z"):
            raise ValueError(f"unknown axis {axis!r}")
        layout = self._require_figure().layout
        if self.is_3d:
            return layout.scene[f"{axis}axis"]
        if axis == "z":
            raise ValueError("planar plots have no z axis")
        return layout[f"{axis}axis"]

    def _change_types(self, new_types: dict[int, str]) -> None:
        import plotly.graph_objects as go

        figure = self._require_figure()
        data = [trace.to_plotly_json() for trace in figure.data]
        for index, trace_type in new_types.items():
            data[index]["type"] = trace_type
            if trace_type == TRACE_2D:
                for key in _UNSUPPORTED_2D:
                    data[index].pop(key, None)
        self.figure = go.Figure(data=data, layout=figure.layout.to_plotly_json())

    def _emit(self, event: str) -> None:
        for handler in list(self._handlers[event]):
            handler()
