from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

#: A colour specification accepted throughout propmap.
#:
#: Can be any of:
#:
#: - A CSS colour name or hex string (e.g. ``"red"``, ``"#ff0000"``).
#: - A single float for grey (``0.0`` = black, ``1.0`` = white).
#: - An RGB tuple or list with values in ``[0, 1]``
#:   (e.g. ``(1.0, 0.0, 0.0)``).
#:
#: See :func:`normalise_colour` for conversion to a normalised RGB tuple.
Colour = str | float | tuple[float, float, float] | list[float]

#: Palette names offered for the colour axis.  Each is a matplotlib
#: colourmap sampled into a plotly colour scale by :func:`colour_scale`.
PALETTES: tuple[str, ...] = (
    "inferno",
    "magma",
    "plasma",
    "viridis",
    "cividis",
    "seismic",
    "brg",
    "twilight",
    "hsv",
)

_COLOUR_SCALE_SAMPLES = 11


def normalise_colour(colour: Colour) -> tuple[float, float, float]:
    """Convert a colour specification to a normalised (r, g, b) tuple.

    Accepts CSS colour names (e.g. ``"red"``), hex strings
    (e.g. ``"#FF0000"``), grey floats (e.g. ``0.7``), or RGB tuples
    (e.g. ``(1.0, 0.3, 0.3)``).

    Args:
        colour: The colour to normalise.

    Returns:
        A tuple of three floats in [0, 1].

    Raises:
        ValueError: If the colour cannot be interpreted.
    """
    if isinstance(colour, (int, float)) and not isinstance(colour, bool):
        f = float(colour)
        if not 0.0 <= f <= 1.0:
            raise ValueError(f"Grey value must be in [0, 1], got {f}")
        return (f, f, f)

    if isinstance(colour, (tuple, list)):
        if len(colour) != 3:
            raise ValueError(
                f"RGB sequence must have 3 elements, got {len(colour)}"
            )
        r, g, b = (float(c) for c in colour)
        for name, val in [("r", r), ("g", g), ("b", b)]:
            if not 0.0 <= val <= 1.0:
                raise ValueError(
                    f"RGB component {name} must be in [0, 1], got {val}"
                )
        return (r, g, b)

    if isinstance(colour, str):
        from matplotlib.colors import to_rgb

        try:
            return to_rgb(colour)
        except ValueError:
            raise ValueError(f"Unrecognised colour name: {colour!r}")

    raise ValueError(f"Cannot interpret colour: {colour!r}")


def rgb_string(colour: Colour, alpha: float | None = None) -> str:
    """Convert a colour spec to a plotly ``rgb(...)``/``rgba(...)`` string."""
    r, g, b = normalise_colour(colour)
    channels = f"{round(r * 255)}, {round(g * 255)}, {round(b * 255)}"
    if alpha is None:
        return f"rgb({channels})"
    return f"rgba({channels}, {alpha})"


def _resolve_palette(palette: str) -> Callable[[float], Sequence[float]]:
    """Look up a palette name in the matplotlib colourmap registry.

    Raises:
        ValueError: If *palette* is not one of :data:`PALETTES`.
    """
    if palette not in PALETTES:
        raise ValueError(
            f"palette must be one of {list(PALETTES)}, got {palette!r}"
        )
    import matplotlib

    return matplotlib.colormaps[palette]


def colour_scale(
    palette: str, n_samples: int = _COLOUR_SCALE_SAMPLES,
) -> list[list[float | str]]:
    """Sample a palette into a plotly colour scale.

    Args:
        palette: One of :data:`PALETTES`.
        n_samples: Number of evenly spaced stops, at least 2.

    Returns:
        A list of ``[position, "rgb(r, g, b)"]`` pairs with positions
        running from 0 to 1, suitable for ``coloraxis.colorscale``.
    """
    if n_samples < 2:
        raise ValueError(f"n_samples must be at least 2, got {n_samples}")
    cmap = _resolve_palette(palette)
    scale: list[list[float | str]] = []
    for position in np.linspace(0.0, 1.0, n_samples):
        rgba = cmap(float(position))
        scale.append([float(position), rgb_string(tuple(rgba[:3]))])
    return scale
