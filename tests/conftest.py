"""Shared test fixtures for propmap."""

import copy

import pytest

from propmap import PropertiesMap, PropertyStore


def _set_path(target: dict, path: str, value) -> None:
    """Set a dotted attribute *path* inside nested dictionaries."""
    *parents, leaf = path.split(".")
    for key in parents:
        target = target.setdefault(key, {})
    target[leaf] = value


class RecordingSurface:
    """In-memory render surface recording every call it receives.

    Axis ranges are fixed per axis until a ``*axis.range`` relayout
    changes them, and pixels map linearly across the full plot size.
    Setting :attr:`fail` makes every update raise.
    """

    def __init__(self, width=600.0, height=400.0):
        self.width = width
        self.height = height
        self.ranges = {"x": (0.0, 10.0), "y": (0.0, 10.0), "z": (0.0, 10.0)}
        self.traces: list[dict] = []
        self.layout: dict = {}
        self.config: dict = {}
        self.calls: list[tuple[str, object]] = []
        self.handlers = {"click": [], "afterplot": []}
        self.fail = False

    def create_plot(self, traces, layout, config):
        self._check()
        self.traces = copy.deepcopy(traces)
        self.layout = copy.deepcopy(layout)
        self.config = copy.deepcopy(config)
        self.calls.append(("create_plot", None))
        self._emit()

    def restyle(self, update, traces):
        self._check()
        for position, index in enumerate(traces):
            for key, values in update.items():
                _set_path(self.traces[index], key, values[position])
        self.calls.append(("restyle", (dict(update), list(traces))))
        self._emit()

    def relayout(self, update):
        self._check()
        for key, value in update.items():
            _set_path(self.layout, key, value)
            if key.endswith("axis.range"):
                axis = key.split(".")[-2][0]
                self.ranges[axis] = (float(value[0]), float(value[1]))
        self.calls.append(("relayout", dict(update)))
        self._emit()

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def axis_range(self, axis):
        return self.ranges[axis]

    def to_pixel(self, axis, value):
        low, high = self.ranges[axis]
        fraction = (value - low) / (high - low)
        if axis == "x":
            return fraction * self.width
        return (1.0 - fraction) * self.height

    @property
    def plot_width(self):
        return self.width

    def click(self, trace, point, double=False):
        from propmap import ClickEvent

        for handler in list(self.handlers["click"]):
            handler(ClickEvent(trace=trace, point=point, double=double))

    def relayouts(self):
        return [update for name, update in self.calls if name == "relayout"]

    def restyles(self):
        return [update for name, update in self.calls if name == "restyle"]

    def _check(self):
        if self.fail:
            raise RuntimeError("surface unavailable")

    def _emit(self):
        for handler in list(self.handlers["afterplot"]):
            handler()


@pytest.fixture
def raw_properties():
    """Four points with two numeric and one categorical property."""
    return {
        "energy": {"target": "structure", "values": [1.0, 5.0, 9.0, 2.0]},
        "volume": {"target": "structure", "values": [2.0, 4.0, 6.0, 8.0]},
        "phase": {"target": "structure", "values": ["a", "b", "a", "c"]},
    }


@pytest.fixture
def store(raw_properties):
    return PropertyStore.from_raw(raw_properties)


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def pmap(surface, raw_properties):
    """A 2D properties map drawn on a recording surface."""
    return PropertiesMap(surface, raw_properties)
