from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

import numpy as np

from propmap.errors import ConfigurationError


class DisplayMode(StrEnum):
    """Which entity a map point stands for.

    Attributes:
        STRUCTURE: One point per structure.
        ATOM: One point per atom (atom-centred environments).
    """

    STRUCTURE = "structure"
    ATOM = "atom"


@dataclass(frozen=True)
class Property:
    """A named per-point property.

    Categorical properties store the index of each point's label in
    :attr:`labels` as their numeric values, so every property can be
    used on a numeric channel.

    Attributes:
        name: Property name, unique within a display mode.
        values: Per-point numeric values, shape ``(n_points,)``.  The
            array is made read-only on construction.
        labels: Ordered distinct labels for categorical properties, or
            ``None`` for purely numeric ones.

    Raises:
        ValueError: If *values* is not one-dimensional, or if a
            categorical value does not index into *labels*.
    """

    name: str
    values: np.ndarray
    labels: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=float)
        if values.ndim != 1:
            raise ValueError(
                f"property {self.name!r} must be one-dimensional, "
                f"got shape {values.shape}"
            )
        if self.labels is not None:
            labels = tuple(str(label) for label in self.labels)
            if len(values) and (
                values.min() < 0
                or values.max() >= len(labels)
                or not np.all(values == np.floor(values))
            ):
                raise ValueError(
                    f"categorical property {self.name!r} has values that "
                    f"do not index its {len(labels)} labels"
                )
            object.__setattr__(self, "labels", labels)
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_categorical(self) -> bool:
        """Whether the property carries string labels."""
        return self.labels is not None

    @property
    def label_indices(self) -> np.ndarray:
        """Per-point label indices as integers.

        Raises:
            ConfigurationError: If the property is not categorical.
        """
        if self.labels is None:
            raise ConfigurationError(
                f"property {self.name!r} has no categorical labels"
            )
        return self.values.astype(int)

    @classmethod
    def from_values(cls, name: str, values: Sequence) -> Property:
        """Build a property from raw numbers or strings.

        String values are interned into labels in first-seen order.
        """
        raw = list(values)
        if raw and all(isinstance(v, str) for v in raw):
            seen: dict[str, int] = {}
            indices = []
            for v in raw:
                if v not in seen:
                    seen[v] = len(seen)
                indices.append(seen[v])
            return cls(name=name, values=np.array(indices), labels=tuple(seen))
        if any(isinstance(v, str) for v in raw):
            raise ValueError(
                f"property {name!r} mixes string and numeric values"
            )
        return cls(name=name, values=np.asarray(raw, dtype=float))


@dataclass
class PropertyStore:
    """Properties grouped by display mode.

    Attributes:
        properties: Mapping from display mode to a name-keyed mapping of
            properties.  Every property within a mode must have the same
            number of points.
        mode: The display mode whose properties :meth:`get` serves.
    """

    properties: dict[DisplayMode, dict[str, Property]] = field(
        default_factory=dict
    )
    mode: DisplayMode = DisplayMode.STRUCTURE

    def __post_init__(self) -> None:
        self.mode = DisplayMode(self.mode)
        self.properties = {
            DisplayMode(mode): dict(props)
            for mode, props in self.properties.items()
        }
        for mode, props in self.properties.items():
            lengths = {len(p) for p in props.values()}
            if len(lengths) > 1:
                raise ValueError(
                    f"{mode} properties have inconsistent lengths: "
                    f"{sorted(lengths)}"
                )
        if not self.properties.get(self.mode):
            raise ValueError(f"no properties available in {self.mode} mode")

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, Mapping | Sequence],
        mode: DisplayMode | str = DisplayMode.STRUCTURE,
    ) -> PropertyStore:
        """Build a store from the dataset property mapping.

        Each entry is either ``{"target": "structure" | "atom",
        "values": [...]}`` or a bare sequence of values, which targets
        structures.

        Args:
            raw: Property name to property description.
            mode: The display mode to serve.

        Returns:
            A populated :class:`PropertyStore`.
        """
        grouped: dict[DisplayMode, dict[str, Property]] = {}
        for name, entry in raw.items():
            if isinstance(entry, Mapping):
                target = DisplayMode(entry.get("target", DisplayMode.STRUCTURE))
                values = entry["values"]
            else:
                target = DisplayMode.STRUCTURE
                values = entry
            grouped.setdefault(target, {})[name] = Property.from_values(
                name, values,
            )
        return cls(properties=grouped, mode=DisplayMode(mode))

    @property
    def current(self) -> dict[str, Property]:
        """Properties of the active display mode."""
        return self.properties[self.mode]

    def get(self, name: str) -> Property:
        """Return the property called *name* in the active mode.

        Raises:
            ConfigurationError: If there is no such property.
        """
        try:
            return self.current[name]
        except KeyError:
            raise ConfigurationError(
                f"unknown property {name!r} requested in map"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self.current

    def __iter__(self) -> Iterator[str]:
        return iter(self.current)

    def names(self, *, categorical: bool | None = None) -> list[str]:
        """Property names in insertion order.

        Args:
            categorical: ``True`` for only categorical properties,
                ``False`` for only numeric ones, ``None`` for all.
        """
        return [
            name for name, prop in self.current.items()
            if categorical is None or prop.is_categorical == categorical
        ]

    @property
    def n_points(self) -> int:
        """Number of points in the active mode."""
        return len(next(iter(self.current.values())))

    @property
    def max_symbols(self) -> int:
        """Largest label count among categorical properties (0 if none)."""
        return max(
            (len(p.labels) for p in self.current.values() if p.labels),
            default=0,
        )
