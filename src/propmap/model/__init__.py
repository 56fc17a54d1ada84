"""Core data model for propmap: properties, options, partitions, markers.

Everything is re-exported here so that ``from propmap.model import
Partition`` works without knowing the submodule layout.
"""

from propmap.model.colour import (
    PALETTES,
    Colour,
    colour_scale,
    normalise_colour,
    rgb_string,
)
from propmap.model.marker import MarkerOverlay, SelectionMarker
from propmap.model.options import (
    SETTINGS_SECTIONS,
    SYMBOLS_3D,
    AxisOptions,
    AxisScale,
    ColorOptions,
    FilterOptions,
    MapOptions,
    ModificationOrigin,
    OpacityMode,
    OpacityOptions,
    Option,
    SizeMode,
    SizeOptions,
    get_3d_symbol,
)
from propmap.model.partition import FilterOperator, Partition, compute_partition
from propmap.model.property import DisplayMode, Property, PropertyStore

__all__ = [
    "AxisOptions",
    "AxisScale",
    "ColorOptions",
    "Colour",
    "DisplayMode",
    "FilterOperator",
    "FilterOptions",
    "MapOptions",
    "MarkerOverlay",
    "ModificationOrigin",
    "OpacityMode",
    "OpacityOptions",
    "Option",
    "PALETTES",
    "Partition",
    "Property",
    "PropertyStore",
    "SETTINGS_SECTIONS",
    "SYMBOLS_3D",
    "SelectionMarker",
    "SizeMode",
    "SizeOptions",
    "colour_scale",
    "compute_partition",
    "get_3d_symbol",
    "normalise_colour",
    "rgb_string",
]
