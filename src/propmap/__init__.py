"""Propmap: an interactive scatter-plot map of per-point properties.

Propmap draws 2D or 3D scatter plots of dataset properties with
plotly, maps properties onto position, colour, size, symbol and
opacity, and keeps a set of selection markers aligned with the plot.

Example usage::

    from propmap import PlotlySurface, PropertiesMap

    surface = PlotlySurface()
    pmap = PropertiesMap(surface, {"energy": [1.0, 5.0, 9.0, 2.0],
                                   "volume": [3.0, 1.0, 4.0, 1.5]})
    pmap.apply_settings({"color": {"property": "energy"}})
    surface.figure.write_html("map.html")
"""

from propmap.errors import ConfigurationError, RenderSurfaceWarning
from propmap.model import (
    PALETTES,
    AxisScale,
    Colour,
    DisplayMode,
    FilterOperator,
    MapOptions,
    ModificationOrigin,
    OpacityMode,
    Partition,
    Property,
    PropertyStore,
    SelectionMarker,
    SizeMode,
    compute_partition,
)
from propmap.properties_map import PropertiesMap
from propmap.rendering import (
    ClickEvent,
    Mode,
    PlotlySurface,
    RenderSurface,
    TraceRole,
)
from propmap.settings import load_settings, save_settings

__all__ = [
    "AxisScale",
    "ClickEvent",
    "Colour",
    "ConfigurationError",
    "DisplayMode",
    "FilterOperator",
    "MapOptions",
    "Mode",
    "ModificationOrigin",
    "OpacityMode",
    "PALETTES",
    "Partition",
    "PlotlySurface",
    "PropertiesMap",
    "Property",
    "PropertyStore",
    "RenderSurface",
    "RenderSurfaceWarning",
    "SelectionMarker",
    "SizeMode",
    "TraceRole",
    "compute_partition",
    "load_settings",
    "save_settings",
]
