"""Shared fakes: offline data clients and a hand-driven scheduler."""

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from worldripple.datacommons import Observation, SeriesResponse
from worldripple.layers import LayerConfig, SourceRef
from worldripple.surface import MapScene


class FakeSeriesClient:
    """Series keyed by (entity, variable); entries listed in `errors` raise instead."""

    def __init__(self, series: Optional[Dict[Tuple[str, str], Sequence[Tuple[str, float]]]] = None,
                 errors: Optional[Dict[Tuple[str, str], Exception]] = None):
        self.series = series or {}
        self.errors = errors or {}
        self.calls: List[Tuple[str, str]] = []

    def fetch_series(self, entity: str, variable: str) -> SeriesResponse:
        self.calls.append((entity, variable))
        if (entity, variable) in self.errors:
            raise self.errors[(entity, variable)]
        rows = self.series.get((entity, variable), ())
        return SeriesResponse(observations=tuple(Observation(d, v) for d, v in rows))


class FakeRegionalClient:
    def __init__(self, values: Optional[Dict[Tuple[str, str], Optional[float]]] = None,
                 errors: Optional[Dict[Tuple[str, str], Exception]] = None):
        self.values = values or {}
        self.errors = errors or {}
        self.calls: List[Tuple[str, str, int]] = []

    def fetch_value(self, region: str, variable: str, year: int) -> Optional[float]:
        self.calls.append((region, variable, year))
        if (region, variable) in self.errors:
            raise self.errors[(region, variable)]
        return self.values.get((region, variable))


class _ManualTimer:
    def __init__(self, due: float, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[_ManualTimer] = []

    def call_later(self, delay: float, callback) -> _ManualTimer:
        timer = _ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[_ManualTimer]:
        return [t for t in self.timers if not (t.cancelled or t.fired)]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


def src(entity: str, variable: str, name: Optional[str] = None) -> SourceRef:
    return SourceRef(entity, variable, name or f"{entity} {variable}")


@pytest.fixture
def scenario_configs() -> Dict[str, LayerConfig]:
    return {
        "disease": LayerConfig("disease", (
            src("country/USA", "Cases"),
            src("country/GBR", "Cases"),
            src("country/DEU", "Cases"),
        )),
        "housing": LayerConfig("housing", (
            src("census-California", "MEDIAN_HOME_VALUE"),
            src("census-Texas", "MEDIAN_HOME_VALUE"),
        )),
    }


@pytest.fixture
def scenario_series() -> FakeSeriesClient:
    return FakeSeriesClient({
        ("country/USA", "Cases"): [("2019", 90.0), ("2020", 100.0)],
        ("country/GBR", "Cases"): [("2020", 200.0)],
    })


@pytest.fixture
def scenario_regional() -> FakeRegionalClient:
    return FakeRegionalClient({
        ("California", "MEDIAN_HOME_VALUE"): 50.0,
        ("Texas", "MEDIAN_HOME_VALUE"): 50.0,
    })


@pytest.fixture
def scene() -> MapScene:
    return MapScene()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()
