"""Generate the interactive example maps for the documentation."""

from pathlib import Path

import numpy as np

from propmap import PlotlySurface, PropertiesMap

OUT = Path(__file__).resolve().parent / "maps"


def example_properties(n_points: int = 200, seed: int = 0) -> dict:
    """Random two-phase dataset with a categorical phase label."""
    rng = np.random.default_rng(seed)
    volume = rng.normal(15.0, 2.0, n_points)
    energy = -3.0 + 0.1 * (volume - 15.0) ** 2 + rng.normal(0.0, 0.05, n_points)
    phase = np.where(volume > 15.0, "expanded", "compressed")
    return {
        "volume": {"target": "structure", "values": volume.tolist()},
        "energy": {"target": "structure", "values": energy.tolist()},
        "pressure": {"target": "structure", "values": (15.0 - volume).tolist()},
        "phase": {"target": "structure", "values": phase.tolist()},
    }


def generate_docs_maps() -> None:
    OUT.mkdir(exist_ok=True)
    properties = example_properties()

    surface = PlotlySurface()
    pmap = PropertiesMap(surface, properties)
    pmap.apply_settings({
        "color": {"property": "energy"},
        "symbol": "phase",
        "size": {"mode": "linear", "property": "pressure"},
    })
    pmap.add_marker("first", "red", 0)
    surface.figure.write_html(OUT / "map_2d.html", config=surface.config)

    pmap.apply_settings({"z": {"property": "pressure"}})
    surface.figure.write_html(OUT / "map_3d.html", config=surface.config)

    pmap.apply_settings({
        "z": {"property": ""},
        "opacity": {
            "mode": "filter",
            "filter": {"property": "energy", "operator": "<", "cutoff": -2.8},
        },
    })
    surface.figure.write_html(OUT / "map_filtered.html", config=surface.config)


if __name__ == "__main__":
    generate_docs_maps()
