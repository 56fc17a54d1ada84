from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from propmap.errors import ConfigurationError


class FilterOperator(StrEnum):
    """Comparison used by the opacity filter.

    Points satisfying ``value OP cutoff`` are drawn in the main trace;
    the rest go to the background trace.
    """

    GREATER = ">"
    LESS = "<"
    EQUAL = "="


@dataclass(frozen=True)
class Partition:
    """Split of point indices into main and background sets.

    Attributes:
        main: Ascending indices of emphasised points.
        background: Ascending indices of de-emphasised points.  Empty
            when no filter is active.
    """

    main: np.ndarray
    background: np.ndarray

    def __post_init__(self) -> None:
        for name in ("main", "background"):
            arr = np.asarray(getattr(self, name), dtype=int)
            if arr.ndim != 1:
                raise ValueError(
                    f"{name} indices must be one-dimensional, "
                    f"got shape {arr.shape}"
                )
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)

    @classmethod
    def trivial(cls, n_points: int) -> Partition:
        """Every point in the main set, nothing in the background."""
        return cls(
            main=np.arange(n_points, dtype=int),
            background=np.empty(0, dtype=int),
        )

    @property
    def n_points(self) -> int:
        """Total number of points covered."""
        return len(self.main) + len(self.background)

    @property
    def is_filtered(self) -> bool:
        """Whether any point is in the background."""
        return len(self.background) > 0


def compute_partition(
    values: np.ndarray,
    operator: FilterOperator | str,
    cutoff: float,
    *,
    enabled: bool = True,
) -> Partition:
    """Partition points by the predicate ``value OP cutoff``.

    The background set is the exact logical complement of the main set
    (``<=``, ``>=`` and ``!=`` respectively), so the two sets never
    overlap and together cover every index.

    Args:
        values: Per-point values of the filter property.
        operator: One of ``">"``, ``"<"`` or ``"="``.
        cutoff: Threshold compared against each value.
        enabled: When ``False`` the trivial partition is returned and
            *operator* is not inspected.

    Returns:
        The resulting :class:`Partition`.

    Raises:
        ConfigurationError: If *operator* is not supported.
    """
    values = np.asarray(values, dtype=float)
    if not enabled:
        return Partition.trivial(len(values))

    try:
        op = FilterOperator(operator)
    except ValueError:
        raise ConfigurationError(
            f"unsupported filter operator {operator!r}; expected one of "
            f"{[o.value for o in FilterOperator]}"
        ) from None

    if op is FilterOperator.GREATER:
        mask = values > cutoff
    elif op is FilterOperator.LESS:
        mask = values < cutoff
    else:
        mask = values == cutoff

    return Partition(main=np.flatnonzero(mask), background=np.flatnonzero(~mask))
