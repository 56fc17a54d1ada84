"""Exception and warning types raised by propmap."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """An engine or caller invariant was violated.

    Raised for unknown property names, unsupported filter operators,
    unknown or duplicate marker GUIDs, and selecting a point while no
    marker is active.  These are programming errors: the current
    operation is aborted and nothing is retried.
    """


class RenderSurfaceWarning(UserWarning):
    """A render surface rejected a plot, restyle or relayout call.

    The engine's own state is already updated when this is emitted;
    only the visual reflection may be stale until the next update.
    """
