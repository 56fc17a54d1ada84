"""Fire-and-forget calls into a render surface."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Sequence
from typing import Any

from propmap.errors import ConfigurationError, RenderSurfaceWarning
from propmap.rendering.surface import RenderSurface

logger = logging.getLogger(__name__)

#: Callback receiving ``(operation, exception)`` for a rejected call.
FailureHandler = Callable[[str, Exception], None]


def warn_on_failure(operation: str, exc: Exception) -> None:
    """Default failure handler: emit a :class:`RenderSurfaceWarning`."""
    warnings.warn(
        f"render surface rejected {operation}: {exc}",
        RenderSurfaceWarning,
        stacklevel=4,
    )


class RenderAdapter:
    """Owns every call the engine makes into a render surface.

    Surface failures never reach the caller: the engine has already
    updated its own state by the time it pushes an update, so a
    rejected call is logged and handed to *on_error* while the caller
    carries on.  Malformed updates (per-trace lists whose length does
    not match the trace list) are engine bugs and do raise.

    Args:
        surface: The render surface to drive.
        on_error: Failure handler; defaults to :func:`warn_on_failure`.
    """

    def __init__(
        self,
        surface: RenderSurface,
        on_error: FailureHandler | None = None,
    ) -> None:
        self.surface = surface
        self.on_error = on_error if on_error is not None else warn_on_failure
        self.failures = 0

    def create(self, traces: list[dict], layout: dict, config: dict) -> bool:
        """Create the plot.  Returns ``False`` if the surface rejected it."""
        return self._guard(
            "create_plot", lambda: self.surface.create_plot(traces, layout, config),
        )

    def restyle(self, update: dict[str, list], traces: Sequence[int]) -> bool:
        """Push per-trace attribute updates.

        Args:
            update: Attribute path to a list with one value per entry
                of *traces*.
            traces: Indices of the traces to update.

        Returns:
            ``False`` if the surface rejected the update.

        Raises:
            ConfigurationError: If a value list does not match *traces*.
        """
        traces = list(traces)
        for key, values in update.items():
            if not isinstance(values, list) or len(values) != len(traces):
                raise ConfigurationError(
                    f"restyle of {key!r} needs one value per trace "
                    f"({len(traces)}), got {values!r}"
                )
        return self._guard("restyle", lambda: self.surface.restyle(update, traces))

    def relayout(self, update: dict[str, Any]) -> bool:
        """Push layout updates.  Returns ``False`` if the surface rejected them."""
        return self._guard("relayout", lambda: self.surface.relayout(update))

    def _guard(self, operation: str, call: Callable[[], None]) -> bool:
        try:
            call()
        except Exception as exc:
            self.failures += 1
            logger.error("render surface %s failed: %s", operation, exc)
            self.on_error(operation, exc)
            return False
        return True
