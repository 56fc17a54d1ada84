"""Resolution of channel options into per-trace rendering attributes.

The map is drawn with three point traces plus one legend placeholder
trace per possible symbol:

- ``MAIN``: points passing the opacity filter (all points when the
  filter is off), drawn at the maximum opacity.
- ``BACKGROUND``: points failing the filter, drawn at the minimum
  opacity.
- ``SELECTED``: one point per selection marker, in marker order.  Only
  visible in 3D; in 2D the markers are drawn by the overlay instead.

Every attribute is resolved into a :class:`RoleValues` triple from an
explicitly tagged source: a :class:`Constant` shared by every role, or
a :class:`PerPoint` array indexed by each role's points.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import numpy as np

from propmap.model.marker import SelectionMarker
from propmap.model.options import AxisOptions, MapOptions, get_3d_symbol
from propmap.model.partition import Partition
from propmap.model.property import PropertyStore


class TraceRole(IntEnum):
    """Index of each point trace in the plot."""

    MAIN = 0
    BACKGROUND = 1
    SELECTED = 2


#: Index of the first legend placeholder trace.
LEGEND_OFFSET = 3

#: Colour value used for every point when no colour property is set,
#: the middle of the colour scale.
NEUTRAL_COLOUR = 0.5

LINE_COLOUR_2D = "rgba(1, 1, 1, 0.3)"
LINE_COLOUR_SELECTED = "black"
# translucent outlines break depth sorting of 3D scatter traces
LINE_COLOUR_3D = "black"

LINE_WIDTHS_2D = (1, 1, 0)
LINE_WIDTHS_3D = (1, 1, 2)

SIZE_ACTIVE_3D = 4000.0
SIZE_INACTIVE_3D = 2000.0

DEFAULT_SYMBOL = "circle"

# height of one legend entry, in plot fraction
LEGEND_ITEM_HEIGHT = 0.045


@dataclass(frozen=True)
class Constant:
    """One value shared by every point of every role."""

    value: Any


@dataclass(frozen=True)
class PerPoint:
    """One value per dataset point.

    Attributes:
        values: Array of length ``n_points``.
        key: Optional cache key.  Role arrays of keyed sources are
            cached until the partition changes.
    """

    values: np.ndarray
    key: Hashable | None = None


AttributeSource = Constant | PerPoint


@dataclass(frozen=True)
class RoleValues:
    """Resolved values for the main, background and selected traces.

    Each entry is either an array (one value per point of the role) or
    a scalar shared by the whole trace.  ``None`` marks an unused
    channel.
    """

    main: Any
    background: Any
    selected: Any

    def __getitem__(self, role: TraceRole | int) -> Any:
        return self.as_list()[TraceRole(role)]

    def as_list(self) -> list:
        """Values in trace order, as expected by restyle."""
        return [self.main, self.background, self.selected]


class AttributeResolver:
    """Compute rendering attributes from options, data and partition.

    Args:
        store: Dataset properties.
        options: Current map options.
        markers: Callable returning the selection markers in iteration
            order.  Selected-role arrays follow this order.
        partition: Initial partition; defaults to the trivial one.
    """

    def __init__(
        self,
        store: PropertyStore,
        options: MapOptions,
        markers: Callable[[], Sequence[SelectionMarker]],
        partition: Partition | None = None,
    ) -> None:
        self.store = store
        self.options = options
        self._markers = markers
        self.is_3d = options.is_3d()
        self._partition = (
            partition if partition is not None
            else Partition.trivial(store.n_points)
        )
        self._cache: dict[tuple[Hashable, TraceRole], np.ndarray] = {}

    @property
    def partition(self) -> Partition:
        return self._partition

    @partition.setter
    def partition(self, partition: Partition) -> None:
        if partition.n_points != self.store.n_points:
            raise ValueError(
                f"partition covers {partition.n_points} points, "
                f"dataset has {self.store.n_points}"
            )
        self._partition = partition
        self.invalidate()

    def invalidate(self) -> None:
        """Drop every cached per-role array."""
        self._cache.clear()

    # ------------------------------------------------------------------
    # Generic resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        source: AttributeSource,
        role: TraceRole | None = None,
        selected: Any = None,
    ) -> RoleValues | Any:
        """Resolve *source* into per-role values.

        Args:
            source: The tagged attribute source.
            role: If given, only this role's value is computed and
                returned.
            selected: Explicit values for the selected role, one per
                marker, overriding the values looked up from *source*.

        Returns:
            A :class:`RoleValues`, or a single role's value when *role*
            is given.
        """
        roles = list(TraceRole) if role is None else [TraceRole(role)]
        resolved: dict[TraceRole, Any] = {}
        for r in roles:
            if r is TraceRole.SELECTED and selected is not None:
                resolved[r] = selected
            elif isinstance(source, Constant):
                resolved[r] = source.value
            else:
                resolved[r] = self._per_point(source, r)

        if role is not None:
            return resolved[TraceRole(role)]
        return RoleValues(
            main=resolved[TraceRole.MAIN],
            background=resolved[TraceRole.BACKGROUND],
            selected=resolved[TraceRole.SELECTED],
        )

    def _per_point(self, source: PerPoint, role: TraceRole) -> np.ndarray:
        if role is TraceRole.SELECTED:
            indices = np.array(
                [marker.current for marker in self._markers()], dtype=int,
            )
            return np.asarray(source.values)[indices]

        cache_key = (source.key, role)
        if source.key is not None and cache_key in self._cache:
            return self._cache[cache_key]
        indices = (
            self._partition.main if role is TraceRole.MAIN
            else self._partition.background
        )
        values = np.asarray(source.values)[indices]
        if source.key is not None:
            self._cache[cache_key] = values
        return values

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def coordinates(
        self, axis: AxisOptions, role: TraceRole | None = None,
    ) -> RoleValues | Any:
        """Positions along *axis*, ``None`` in every role if it is unused.

        In 2D the selected role holds ``NaN`` for every marker, since
        the overlay draws markers there.
        """
        name = axis.property.value
        if name == "":
            return self.resolve(Constant(None), role)
        values = self.store.get(name).values
        selected = None
        if not self.is_3d:
            selected = np.full(len(self._markers()), np.nan)
        return self.resolve(
            PerPoint(values, key=("coordinates", name)), role, selected,
        )

    def colors(self, role: TraceRole | None = None) -> RoleValues | Any:
        """Colour-axis values, or :data:`NEUTRAL_COLOUR` with no colour property."""
        name = self.options.color.property.value
        if name == "":
            return self.resolve(Constant(NEUTRAL_COLOUR), role)
        values = self.store.get(name).values
        return self.resolve(PerPoint(values, key=("colors", name)), role)

    def line_colors(self, role: TraceRole | None = None) -> RoleValues | Any:
        """Marker outline colours."""
        if self.is_3d:
            return self.resolve(Constant(LINE_COLOUR_3D), role)
        return self.resolve(
            Constant(LINE_COLOUR_2D), role, selected=LINE_COLOUR_SELECTED,
        )

    def line_widths(self) -> RoleValues:
        """Marker outline widths, one scalar per point trace."""
        widths = LINE_WIDTHS_3D if self.is_3d else LINE_WIDTHS_2D
        return RoleValues(*widths)

    def sizes(self, role: TraceRole | None = None) -> RoleValues | Any:
        """Marker areas.

        In 3D the selected role ignores the size property: the active
        marker gets :data:`SIZE_ACTIVE_3D` and the others
        :data:`SIZE_INACTIVE_3D`.
        """
        prop = self.store.get(self.options.size.property.value)
        values = self.options.calculate_sizes(prop.values)
        selected = None
        if self.is_3d:
            selected = np.array([
                SIZE_ACTIVE_3D if marker.active else SIZE_INACTIVE_3D
                for marker in self._markers()
            ])
        return self.resolve(PerPoint(values), role, selected)

    def symbols(self, role: TraceRole | None = None) -> RoleValues | Any:
        """Marker symbols: plotly codes in 2D, 3D symbol names in 3D."""
        name = self.options.symbol.value
        if name == "":
            return self.resolve(Constant(DEFAULT_SYMBOL), role)
        prop = self.store.get(name)
        symbols = np.asarray(self.options.symbols(prop, self.is_3d))
        return self.resolve(PerPoint(symbols), role)

    def opacities(self) -> RoleValues:
        """Trace opacities: maximum for main and selected, minimum for background."""
        maximum = self.options.opacity.maximum.value
        return RoleValues(
            main=maximum,
            background=self.options.opacity.minimum.value,
            selected=maximum,
        )

    def point_coordinates(self, index: int) -> tuple[float, float]:
        """Data-space x and y of a single point."""
        x = self.store.get(self.options.x.property.value).values[index]
        y = self.store.get(self.options.y.property.value).values[index]
        return float(x), float(y)

    # ------------------------------------------------------------------
    # Symbol legend
    # ------------------------------------------------------------------

    def symbols_count(self) -> int:
        """Number of categories of the current symbol property (0 if unset)."""
        name = self.options.symbol.value
        if name == "":
            return 0
        labels = self.store.get(name).labels
        return len(labels) if labels is not None else 0

    def legend_names(self) -> list[str]:
        """One name per legend placeholder trace."""
        names = [""] * self.store.max_symbols
        name = self.options.symbol.value
        if name != "":
            for i, label in enumerate(self.store.get(name).labels or ()):
                names[i] = label
        return names

    def show_legend(self) -> list[bool]:
        """Legend visibility per placeholder trace."""
        count = self.symbols_count()
        return [i < count for i in range(self.store.max_symbols)]

    def legend_symbols(self) -> list[int] | list[str]:
        """Symbol of each legend placeholder trace for the current mode."""
        if self.is_3d:
            return [get_3d_symbol(s) for s in range(self.store.max_symbols)]
        return list(range(self.store.max_symbols))

    def colorbar_len(self) -> float:
        """Colour bar length leaving room for the symbol legend."""
        return 1.0 - LEGEND_ITEM_HEIGHT * self.symbols_count()
