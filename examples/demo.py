"""Demo script: build a properties map, select points, save its settings."""

import logging
from pathlib import Path

import numpy as np

from propmap import PlotlySurface, PropertiesMap, load_settings, save_settings

OUTPUT = Path(__file__).resolve().parent / "map.html"
SETTINGS = Path(__file__).resolve().parent / "map_settings.json"


def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    rng = np.random.default_rng(42)
    n = 100
    properties = {
        "energy": rng.normal(0.0, 1.0, n).tolist(),
        "volume": rng.uniform(10.0, 20.0, n).tolist(),
        "density": rng.uniform(1.0, 5.0, n).tolist(),
        "element": rng.choice(["Si", "O", "Ti"], n).tolist(),
    }

    surface = PlotlySurface(width=900, height=600)
    settings = load_settings(SETTINGS) if SETTINGS.exists() else None
    pmap = PropertiesMap(surface, properties, settings=settings)
    pmap.on_select = lambda point: print(f"Selected point {point}")

    pmap.apply_settings({"color": {"property": "density"}, "symbol": "element"})
    pmap.add_marker("first", "red", 3)
    pmap.add_marker("second", "#1f77b4", 17)
    print(f"Active marker: {pmap.active}")

    surface.click(0, 5)
    print(f"Marker positions: {[m.current for m in pmap.markers]}")

    save_settings(SETTINGS, pmap.save_settings())
    surface.figure.write_html(OUTPUT, config=surface.config)
    print(f"Rendered to {OUTPUT}")


if __name__ == "__main__":
    main()
