from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from propmap.model.colour import Colour, normalise_colour, rgb_string


@dataclass
class MarkerOverlay:
    """Screen-space overlay element drawn for a marker in 2D mode.

    The position is expressed the way an absolutely positioned HTML
    element is placed: :attr:`right` is the distance from the right
    edge of the plot and :attr:`top` the distance from its top edge,
    both in pixels.

    Attributes:
        colour: CSS colour string of the marker.
        right: Distance from the right edge, or ``None`` before the
            first reprojection.
        top: Distance from the top edge, or ``None`` before the first
            reprojection.
        visible: Whether the element is currently shown.
        active: Whether the element is drawn in its emphasised style.
        removed: Set once the element has been destroyed.
        on_click: Callback fired by :meth:`click`.
    """

    colour: str
    right: float | None = None
    top: float | None = None
    visible: bool = True
    active: bool = False
    removed: bool = False
    on_click: Callable[[], None] | None = None

    def move(self, right: float, top: float) -> None:
        """Place the element and make it visible."""
        self.right = right
        self.top = top
        self.visible = True

    def click(self) -> None:
        """Simulate a user click on the element."""
        if self.removed:
            raise RuntimeError("cannot click a removed marker overlay")
        if self.on_click is not None:
            self.on_click()

    def destroy(self) -> None:
        self.visible = False
        self.removed = True
        self.on_click = None


@dataclass
class SelectionMarker:
    """A persistent selection tracking one point of the map.

    Attributes:
        guid: Globally unique identifier shared with the selection
            collaborator (e.g. the structure viewer showing this point).
        colour: Owning colour of the marker.
        current: Index of the point the marker tracks.
        active: Whether this is the active marker.
        visible: Whether the overlay element should be shown.  Hidden
            markers are still tracked and drawn in 3D mode.
        overlay: The screen-space element owned by this marker.
    """

    guid: str
    colour: Colour
    current: int
    active: bool = False
    visible: bool = True
    overlay: MarkerOverlay = field(init=False)

    def __post_init__(self) -> None:
        normalise_colour(self.colour)
        if self.current < 0:
            raise ValueError(
                f"point index must be non-negative, got {self.current}"
            )
        self.overlay = MarkerOverlay(colour=rgb_string(self.colour))

    def select(self, index: int) -> bool:
        """Track point *index*.

        Returns:
            ``False`` if the marker was already on *index*, ``True`` if
            it moved.
        """
        if index == self.current:
            return False
        self.current = index
        return True

    def activate(self) -> None:
        self.active = True
        self.overlay.active = True

    def deactivate(self) -> None:
        self.active = False
        self.overlay.active = False

    def toggle_visible(self, visible: bool | None = None) -> None:
        """Show or hide the overlay element, or flip it if *visible* is None."""
        if visible is None:
            visible = not self.visible
        self.visible = visible
        self.overlay.visible = visible

    def remove(self) -> None:
        """Destroy the overlay element."""
        self.visible = False
        self.overlay.destroy()
