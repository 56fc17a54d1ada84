"""Observable per-channel map options and their settings dictionaries."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import Any, Generic, TypeVar

import numpy as np

from propmap.errors import ConfigurationError
from propmap.model.colour import PALETTES, colour_scale
from propmap.model.partition import FilterOperator
from propmap.model.property import Property, PropertyStore

T = TypeVar("T")


class ModificationOrigin(StrEnum):
    """Where an option write came from.

    Attributes:
        EDIT: A user edit, an applied settings dictionary, or a value
            the engine derived itself.
        SURFACE: A value re-read from the render surface after a render
            pass (e.g. the axis range after a zoom).  Handlers that push
            the value back to the surface must ignore these writes.
    """

    EDIT = "edit"
    SURFACE = "surface"


class AxisScale(StrEnum):
    LINEAR = "linear"
    LOG = "log"


class SizeMode(StrEnum):
    """How a property is turned into marker sizes."""

    CONSTANT = "constant"
    LINEAR = "linear"
    LOG = "log"
    SQRT = "sqrt"
    INVERSE = "inverse"


class OpacityMode(StrEnum):
    """Whether all points share one opacity or a filter splits them."""

    CONSTANT = "constant"
    FILTER = "filter"


#: Handler signature for option changes: ``(new_value, origin)``.
OptionHandler = Callable[[Any, ModificationOrigin], None]


class Option(Generic[T]):
    """A single observable setting.

    Handlers registered with :meth:`on_change` fire in registration
    order on every write, including writes that do not change the
    value, and receive the write's :class:`ModificationOrigin`.

    Args:
        value: Initial value.
        validate: Optional callable returning the cleaned value or
            raising :class:`ValueError`.
    """

    def __init__(
        self,
        value: T,
        validate: Callable[[Any], T] | None = None,
    ) -> None:
        self._validate = validate
        self._value = self._clean(value)
        self._handlers: list[OptionHandler] = []
        self.enabled = True

    def _clean(self, value: Any) -> T:
        if self._validate is None:
            return value
        try:
            return self._validate(value)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from None

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self.set(value)

    def set(self, value: T, origin: ModificationOrigin = ModificationOrigin.EDIT) -> None:
        """Write *value* and notify handlers with *origin*."""
        self._value = self._clean(value)
        for handler in list(self._handlers):
            handler(self._value, origin)

    def on_change(self, handler: OptionHandler) -> None:
        self._handlers.append(handler)

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def __repr__(self) -> str:
        return f"Option({self._value!r})"


def _choice(choices: Sequence[str]) -> Callable[[Any], str]:
    def validate(value: Any) -> str:
        value = str(value)
        if value not in choices:
            raise ValueError(f"expected one of {list(choices)}, got {value!r}")
        return value
    return validate


def _property_name(store: PropertyStore, *, optional: bool) -> Callable[[Any], str]:
    def validate(value: Any) -> str:
        value = str(value)
        if value == "" and optional:
            return value
        if value not in store:
            raise ValueError(f"unknown property {value!r} requested in map")
        return value
    return validate


def _categorical_name(store: PropertyStore) -> Callable[[Any], str]:
    def validate(value: Any) -> str:
        value = str(value)
        if value == "":
            return value
        if value not in store.names(categorical=True):
            raise ValueError(
                f"symbols require a categorical property, got {value!r}"
            )
        return value
    return validate


def _bounded(low: float, high: float) -> Callable[[Any], float]:
    def validate(value: Any) -> float:
        value = float(value)
        if not low <= value <= high:
            raise ValueError(f"value must be in [{low}, {high}], got {value}")
        return value
    return validate


class AxisOptions:
    """Property, scale and range for one positional (or colour) axis."""

    def __init__(self, store: PropertyStore, property: str, *, optional: bool) -> None:
        self.property: Option[str] = Option(
            property, _property_name(store, optional=optional),
        )
        self.scale: Option[str] = Option(
            AxisScale.LINEAR.value, _choice([s.value for s in AxisScale]),
        )
        self.min: Option[float] = Option(0.0, float)
        self.max: Option[float] = Option(0.0, float)

    def enable(self) -> None:
        for option in (self.property, self.scale, self.min, self.max):
            option.enable()

    def disable(self) -> None:
        for option in (self.scale, self.min, self.max):
            option.disable()

    def to_dict(self) -> dict:
        return {
            "property": self.property.value,
            "scale": self.scale.value,
            "min": self.min.value,
            "max": self.max.value,
        }

    def apply(self, d: dict) -> None:
        _check_keys(d, {"property", "scale", "min", "max"}, "axis")
        for key in ("property", "scale", "min", "max"):
            if key in d:
                getattr(self, key).value = d[key]


class ColorOptions:
    """Property and range of the colour axis."""

    def __init__(self, store: PropertyStore, property: str) -> None:
        self.property: Option[str] = Option(
            property, _property_name(store, optional=True),
        )
        self.min: Option[float] = Option(0.0, float)
        self.max: Option[float] = Option(0.0, float)

    def enable(self) -> None:
        for option in (self.property, self.min, self.max):
            option.enable()

    def disable(self) -> None:
        self.min.disable()
        self.max.disable()

    def to_dict(self) -> dict:
        return {
            "property": self.property.value,
            "min": self.min.value,
            "max": self.max.value,
        }

    def apply(self, d: dict) -> None:
        _check_keys(d, {"property", "min", "max"}, "color")
        for key in ("property", "min", "max"):
            if key in d:
                getattr(self, key).value = d[key]


class SizeOptions:
    """Marker size mode, driving property and user factor."""

    def __init__(self, store: PropertyStore, property: str) -> None:
        self.mode: Option[str] = Option(
            SizeMode.CONSTANT.value, _choice([m.value for m in SizeMode]),
        )
        self.factor: Option[float] = Option(50.0, _bounded(1.0, 100.0))
        self.property: Option[str] = Option(
            property, _property_name(store, optional=False),
        )
        self.reverse: Option[bool] = Option(False, bool)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "factor": self.factor.value,
            "property": self.property.value,
            "reverse": self.reverse.value,
        }

    def apply(self, d: dict) -> None:
        _check_keys(d, {"mode", "factor", "property", "reverse"}, "size")
        for key in ("property", "factor", "reverse", "mode"):
            if key in d:
                getattr(self, key).value = d[key]


class FilterOptions:
    """Predicate parameters of the opacity filter."""

    def __init__(self, store: PropertyStore, property: str) -> None:
        self.property: Option[str] = Option(
            property, _property_name(store, optional=False),
        )
        self.operator: Option[str] = Option(
            FilterOperator.GREATER.value,
            _choice([o.value for o in FilterOperator]),
        )
        self.cutoff: Option[float] = Option(0.0, float)

    def to_dict(self) -> dict:
        return {
            "property": self.property.value,
            "operator": self.operator.value,
            "cutoff": self.cutoff.value,
        }

    def apply(self, d: dict) -> None:
        _check_keys(d, {"property", "operator", "cutoff"}, "opacity.filter")
        for key in ("property", "operator", "cutoff"):
            if key in d:
                getattr(self, key).value = d[key]


class OpacityOptions:
    """Opacity mode, opacity limits and the filter predicate."""

    def __init__(self, store: PropertyStore, property: str) -> None:
        self.mode: Option[str] = Option(
            OpacityMode.CONSTANT.value, _choice([m.value for m in OpacityMode]),
        )
        self.minimum: Option[float] = Option(0.1, _bounded(0.0, 1.0))
        self.maximum: Option[float] = Option(1.0, _bounded(0.0, 1.0))
        self.filter = FilterOptions(store, property)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "minimum": self.minimum.value,
            "maximum": self.maximum.value,
            "filter": self.filter.to_dict(),
        }

    def apply(self, d: dict) -> None:
        _check_keys(d, {"mode", "minimum", "maximum", "filter"}, "opacity")
        if "filter" in d:
            self.filter.apply(d["filter"])
        # mode first: switching to the filter mode clamps the minimum
        for key in ("mode", "maximum", "minimum"):
            if key in d:
                getattr(self, key).value = d[key]


#: Top-level keys of a settings dictionary.
SETTINGS_SECTIONS = frozenset({
    "x", "y", "z", "color", "palette", "symbol", "size", "opacity",
})


def _check_keys(d: dict, allowed: set[str] | frozenset[str], section: str) -> None:
    unknown = set(d) - set(allowed)
    if unknown:
        raise ValueError(
            f"unknown keys in {section} settings: {sorted(unknown)}"
        )


# Size slider: factor 1..100 maps logarithmically onto [1/6, 6].
_SIZE_FACTOR_RANGE = (1.0 / 6.0, 6.0)
_SIZE_SCALED_RANGE = (0.1, 1.0)
DEFAULT_SIZE_2D = 150.0
DEFAULT_SIZE_3D = 1000.0

#: Marker shapes supported by 3D scatter traces, in legend order.
SYMBOLS_3D: tuple[str, ...] = (
    "circle",
    "square",
    "diamond",
    "cross",
    "x",
    "circle-open",
    "square-open",
    "diamond-open",
)


def get_3d_symbol(index: int) -> str:
    """Map a category index onto the 3D marker shapes, wrapping around."""
    return SYMBOLS_3D[index % len(SYMBOLS_3D)]


class MapOptions:
    """All options of a properties map.

    Defaults mirror the dataset: x and y use the first two properties
    (the first one twice if there is only one), z, colour and symbol
    start unset, size and filter refer to the first property.

    Args:
        store: Properties the options may refer to.
        settings: Optional settings dictionary applied on top of the
            defaults, as produced by :meth:`save_settings`.
    """

    def __init__(self, store: PropertyStore, settings: dict | None = None) -> None:
        self._store = store
        names = store.names()
        first = names[0]
        second = names[1] if len(names) > 1 else first

        self.x = AxisOptions(store, first, optional=False)
        self.y = AxisOptions(store, second, optional=False)
        self.z = AxisOptions(store, "", optional=True)
        self.color = ColorOptions(store, "")
        self.palette: Option[str] = Option("inferno", _choice(PALETTES))
        self.symbol: Option[str] = Option("", _categorical_name(store))
        self.size = SizeOptions(store, first)
        self.opacity = OpacityOptions(store, first)

        if settings is not None:
            self.apply_settings(settings)

    def is_3d(self) -> bool:
        return self.z.property.value != ""

    def has_colors(self) -> bool:
        return self.color.property.value != ""

    def color_scale(self) -> list[list[float | str]]:
        """Plotly colour scale for the current palette."""
        return colour_scale(self.palette.value)

    def hovertemplate(self) -> str:
        """Hover label template for the point traces."""
        if self.has_colors():
            return (
                f"{self.color.property.value}: %{{marker.color:.2f}}"
                "<extra></extra>"
            )
        return "%{x:.2f}, %{y:.2f}<extra></extra>"

    def calculate_sizes(self, values: np.ndarray) -> np.ndarray:
        """Turn property values into marker areas.

        Non-constant modes transform the values (``log`` and ``sqrt``
        after shifting the minimum to zero, ``inverse`` as
        ``1 / (1 + shifted)``), normalise them into ``[0.1, 1]``
        (flipped when :attr:`SizeOptions.reverse` is set) and scale the
        result by the mode's default size and the user factor.

        Args:
            values: Raw per-point property values.

        Returns:
            Per-point sizes, same length as *values*.
        """
        values = np.asarray(values, dtype=float)
        low, high = _SIZE_FACTOR_RANGE
        t = (self.size.factor.value - 1.0) / 99.0
        user_factor = float(np.exp(np.log(low) + t * (np.log(high) - np.log(low))))
        default = DEFAULT_SIZE_3D if self.is_3d() else DEFAULT_SIZE_2D
        base = default * user_factor

        mode = SizeMode(self.size.mode.value)
        if mode is SizeMode.CONSTANT or len(values) == 0:
            return np.full(len(values), base)

        shifted = values - np.nanmin(values)
        if mode is SizeMode.LOG:
            transformed = np.log1p(shifted)
        elif mode is SizeMode.SQRT:
            transformed = np.sqrt(shifted)
        elif mode is SizeMode.INVERSE:
            transformed = 1.0 / (1.0 + shifted)
        else:
            transformed = shifted

        vmin, vmax = np.nanmin(transformed), np.nanmax(transformed)
        if vmax == vmin:
            normalised = np.full(len(values), 0.5)
        else:
            normalised = (transformed - vmin) / (vmax - vmin)
        if self.size.reverse.value:
            normalised = 1.0 - normalised
        bottom, top = _SIZE_SCALED_RANGE
        return base * (bottom + (top - bottom) * normalised)

    def symbols(self, prop: Property, is_3d: bool) -> list[int] | list[str]:
        """Per-point marker symbols for a categorical property.

        In 2D the label index is used directly as a plotly symbol code;
        in 3D it is reduced onto :data:`SYMBOLS_3D`.
        """
        indices = prop.label_indices
        if is_3d:
            return [get_3d_symbol(int(i)) for i in indices]
        return [int(i) for i in indices]

    def save_settings(self) -> dict:
        """Current settings as a JSON-compatible dictionary."""
        return {
            "x": self.x.to_dict(),
            "y": self.y.to_dict(),
            "z": self.z.to_dict(),
            "color": self.color.to_dict(),
            "palette": self.palette.value,
            "symbol": self.symbol.value,
            "size": self.size.to_dict(),
            "opacity": self.opacity.to_dict(),
        }

    def apply_settings(self, settings: dict) -> None:
        """Apply a (possibly partial) settings dictionary.

        Each written option notifies its handlers, so applying settings
        to a live map updates the plot.  Properties are written before
        ranges so that handlers which derive a range from the property
        do not overwrite the saved one.

        Raises:
            ValueError: If *settings* contains unknown keys.
        """
        _check_keys(settings, SETTINGS_SECTIONS, "map")
        for axis in ("x", "y", "z"):
            if axis in settings:
                getattr(self, axis).apply(settings[axis])
        if "color" in settings:
            self.color.apply(settings["color"])
        if "palette" in settings:
            self.palette.value = settings["palette"]
        if "symbol" in settings:
            self.symbol.value = settings["symbol"]
        if "size" in settings:
            self.size.apply(settings["size"])
        if "opacity" in settings:
            self.opacity.apply(settings["opacity"])
