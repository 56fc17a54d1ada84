"""Rendering: trace attributes, selection overlay and the plotly surface."""

from propmap.rendering.adapter import RenderAdapter, warn_on_failure
from propmap.rendering.attributes import (
    AttributeResolver,
    Constant,
    PerPoint,
    RoleValues,
    TraceRole,
)
from propmap.rendering.mode import Mode, ModeController
from propmap.rendering.overlay import SelectionOverlay
from propmap.rendering.surface import (
    ClickEvent,
    PlotlySurface,
    RenderSurface,
)

__all__ = [
    "AttributeResolver",
    "ClickEvent",
    "Constant",
    "Mode",
    "ModeController",
    "PerPoint",
    "PlotlySurface",
    "RenderAdapter",
    "RenderSurface",
    "RoleValues",
    "SelectionOverlay",
    "TraceRole",
    "warn_on_failure",
]
