"""Transitions between planar and volumetric maps."""

from __future__ import annotations

import logging
from enum import StrEnum

from propmap.model.options import MapOptions
from propmap.rendering.adapter import RenderAdapter
from propmap.rendering.attributes import (
    LEGEND_OFFSET,
    AttributeResolver,
    TraceRole,
)
from propmap.rendering.overlay import SelectionOverlay
from propmap.rendering.surface import TRACE_2D, TRACE_3D

logger = logging.getLogger(__name__)

_POINT_TRACES = [int(role) for role in TraceRole]


class Mode(StrEnum):
    MODE_2D = "2d"
    MODE_3D = "3d"


class ModeController:
    """Switch the map between 2D and 3D when the z channel changes.

    The only transitions are 2D -> 3D when a z property is selected and
    3D -> 2D when it is cleared; the initial mode follows the initial z
    option.  A transition swaps the trace type, the symbol set, the
    outline styling and the selection display, and resizes the colour
    bar, while leaving the colour scale, partition, markers and x/y
    axis settings untouched.  It is issued as several sequential
    partial updates, so observers of the surface may briefly see mixed
    state between them.

    Args:
        options: Map options; the z property decides the mode.
        resolver: Attribute resolver, told about mode changes.
        overlay: Selection overlay, told about mode changes.
        adapter: Render adapter used to push the updates.
    """

    def __init__(
        self,
        options: MapOptions,
        resolver: AttributeResolver,
        overlay: SelectionOverlay,
        adapter: RenderAdapter,
    ) -> None:
        self.options = options
        self.resolver = resolver
        self.overlay = overlay
        self.adapter = adapter
        self.mode = Mode.MODE_3D if options.is_3d() else Mode.MODE_2D
        self._propagate()
        if self.is_3d:
            options.z.enable()
        else:
            options.z.disable()

    @property
    def is_3d(self) -> bool:
        return self.mode is Mode.MODE_3D

    @property
    def trace_type(self) -> str:
        """Plotly trace type for the current mode."""
        return TRACE_3D if self.is_3d else TRACE_2D

    @property
    def n_traces(self) -> int:
        """Point traces plus one legend placeholder per possible symbol."""
        return LEGEND_OFFSET + self.resolver.store.max_symbols

    def sync(self) -> bool:
        """Transition if the z option no longer matches the mode.

        Returns:
            ``True`` if a transition happened.
        """
        if self.options.is_3d() and not self.is_3d:
            self.switch_3d()
            return True
        if not self.options.is_3d() and self.is_3d:
            self.switch_2d()
            return True
        return False

    def switch_3d(self) -> None:
        """Move from the planar to the volumetric map."""
        logger.debug("switching properties map to 3D")
        self.mode = Mode.MODE_3D
        self._propagate()
        self.options.z.enable()

        self._restyle_type()
        self.overlay.set_visible(False)
        self.overlay.update()
        self._restyle_markers()

        self.adapter.relayout({
            "coloraxis.colorbar.len": self.resolver.colorbar_len(),
            "scene.xaxis.type": self.options.x.scale.value,
            "scene.yaxis.type": self.options.y.scale.value,
            "scene.zaxis.type": self.options.z.scale.value,
        })

    def switch_2d(self) -> None:
        """Move from the volumetric back to the planar map."""
        logger.debug("switching properties map to 2D")
        self.mode = Mode.MODE_2D
        self._propagate()
        self.options.z.disable()

        # shown before the re-render so reprojection can hide the
        # markers that fall outside the view
        self.overlay.set_visible(True)
        self._restyle_type()
        self._restyle_markers()
        # the overlay draws the markers in 2D
        selected = TraceRole.SELECTED
        self.adapter.restyle(
            {
                "x": [self.resolver.coordinates(self.options.x, selected)],
                "y": [self.resolver.coordinates(self.options.y, selected)],
            },
            [selected],
        )

        self.adapter.relayout({
            "coloraxis.colorbar.len": self.resolver.colorbar_len(),
            "xaxis.type": self.options.x.scale.value,
            "yaxis.type": self.options.y.scale.value,
        })
        self.overlay.update()

    def _propagate(self) -> None:
        self.resolver.is_3d = self.is_3d
        self.overlay.is_3d = self.is_3d

    def _restyle_type(self) -> None:
        symbols = self.resolver.symbols().as_list() + self.resolver.legend_symbols()
        traces = list(range(self.n_traces))
        self.adapter.restyle(
            {
                "marker.symbol": symbols,
                "type": [self.trace_type] * len(traces),
            },
            traces,
        )

    def _restyle_markers(self) -> None:
        self.adapter.restyle(
            {
                "marker.line.color": self.resolver.line_colors().as_list(),
                "marker.line.width": self.resolver.line_widths().as_list(),
                "marker.size": self.resolver.sizes().as_list(),
                "marker.sizemode": ["area"] * len(_POINT_TRACES),
            },
            _POINT_TRACES,
        )
