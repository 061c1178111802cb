"""
state.py
Immutable application state and a small subscription store.

Every reducer returns a new AppState; nothing is mutated in place, so a
subscriber can compare the old and new values to decide what to refresh.
"""

import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .config import DEFAULT_YEAR, MAX_YEAR, MIN_YEAR


@dataclass(frozen=True)
class Subcategory:
    id: str
    name: str
    is_active: bool = False


@dataclass(frozen=True)
class ActiveLayerState:
    id: str
    name: str
    color: str
    is_active: bool = False
    intensity: float = 0.5
    description: str = ""
    subcategories: Tuple[Subcategory, ...] = ()
    is_expanded: bool = False

    def __post_init__(self):
        if not 0.0 <= self.intensity <= 1.0:
            raise ValueError(f"intensity must be within [0, 1], got {self.intensity!r}")


@dataclass(frozen=True)
class AppState:
    layers: Tuple[ActiveLayerState, ...] = ()
    year: int = DEFAULT_YEAR

    @property
    def active_layers(self) -> Tuple[ActiveLayerState, ...]:
        return tuple(layer for layer in self.layers if layer.is_active)

    @property
    def active_layer_ids(self) -> Tuple[str, ...]:
        return tuple(layer.id for layer in self.layers if layer.is_active)

    def layer(self, layer_id: str) -> Optional[ActiveLayerState]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None


def _subs(*pairs: Tuple[str, str]) -> Tuple[Subcategory, ...]:
    return tuple(Subcategory(sub_id, name) for sub_id, name in pairs)


DEFAULT_LAYERS: Tuple[ActiveLayerState, ...] = (
    ActiveLayerState(
        id="politics",
        name="Politics",
        color="#8B5CF6",
        intensity=0.5,
        description="Political trends and electoral changes",
        subcategories=_subs(
            ("wars-battles", "Wars & Battles"),
            ("treaties-peace", "Treaties & Peace Accords"),
            ("revolutions", "Revolutions / Uprisings"),
            ("govt-spending", "Government Spending / Debt"),
        ),
    ),
    ActiveLayerState(
        id="disease",
        name="Health",
        color="#EF4444",
        is_active=True,
        intensity=0.7,
        description="Tracking infectious disease patterns and outbreaks across regions",
        subcategories=_subs(
            ("mortality-rate", "Mortality Rate"),
            ("epidemics", "Epidemics & Pandemics"),
            ("vaccination", "Vaccination Rates"),
            ("life-expectancy", "Life Expectancy at Birth"),
        ),
    ),
    ActiveLayerState(
        id="housing",
        name="Housing",
        color="#EAB308",
        is_active=True,
        intensity=0.8,
        description="Housing affordability and availability trends",
        subcategories=_subs(
            ("housing-market", "Housing Market Index"),
            ("urban-rural", "Urban vs Rural Distribution"),
            ("household-size", "Household Size"),
            ("migration", "Migration & Immigration Flows"),
        ),
    ),
    ActiveLayerState(
        id="environment",
        name="Climate",
        color="#10B981",
        intensity=0.6,
        description="Environmental changes and climate-related events",
        subcategories=_subs(
            ("temp-anomalies", "Temperature Anomalies"),
            ("precipitation", "Precipitation Levels"),
            ("extreme-weather", "Extreme Weather Events"),
            ("greenhouse-gas", "Greenhouse Gas Concentrations"),
        ),
    ),
    ActiveLayerState(
        id="economy",
        name="Economics",
        color="#F59E0B",
        intensity=0.7,
        description="Economic indicators and market changes",
    ),
    ActiveLayerState(
        id="innovation",
        name="Innovation and Industry",
        color="#06B6D4",
        intensity=0.75,
        description="Technological innovation, industrial development, and manufacturing trends",
    ),
    ActiveLayerState(
        id="social",
        name="Social Movements",
        color="#EC4899",
        intensity=0.6,
        description="Social change movements and demographic shifts",
    ),
)


def initial_state(year: int = DEFAULT_YEAR) -> AppState:
    return AppState(layers=DEFAULT_LAYERS, year=clamp_year(year))


def clamp_year(year: int) -> int:
    return max(MIN_YEAR, min(MAX_YEAR, int(year)))


def _update_layer(state: AppState, layer_id: str, **changes) -> AppState:
    if state.layer(layer_id) is None:
        raise KeyError(f"Unknown layer: {layer_id}")
    layers = tuple(
        replace(layer, **changes) if layer.id == layer_id else layer
        for layer in state.layers
    )
    return replace(state, layers=layers)


# ----------------------------
# Reducers
# ----------------------------

def toggle_layer(state: AppState, layer_id: str) -> AppState:
    current = state.layer(layer_id)
    if current is None:
        raise KeyError(f"Unknown layer: {layer_id}")
    return _update_layer(state, layer_id, is_active=not current.is_active)


def set_layer_active(state: AppState, layer_id: str, active: bool) -> AppState:
    current = state.layer(layer_id)
    if current is None:
        raise KeyError(f"Unknown layer: {layer_id}")
    if current.is_active == bool(active):
        return state
    return _update_layer(state, layer_id, is_active=bool(active))


def set_intensity(state: AppState, layer_id: str, intensity: float) -> AppState:
    value = max(0.0, min(1.0, float(intensity)))
    return _update_layer(state, layer_id, intensity=value)


def set_color(state: AppState, layer_id: str, color: str) -> AppState:
    return _update_layer(state, layer_id, color=color)


def toggle_expansion(state: AppState, layer_id: str) -> AppState:
    current = state.layer(layer_id)
    if current is None:
        raise KeyError(f"Unknown layer: {layer_id}")
    return _update_layer(state, layer_id, is_expanded=not current.is_expanded)


def toggle_subcategory(state: AppState, layer_id: str, subcategory_id: str) -> AppState:
    current = state.layer(layer_id)
    if current is None:
        raise KeyError(f"Unknown layer: {layer_id}")
    if not any(sub.id == subcategory_id for sub in current.subcategories):
        raise KeyError(f"Unknown subcategory {subcategory_id!r} in layer {layer_id!r}")
    subs = tuple(
        replace(sub, is_active=not sub.is_active) if sub.id == subcategory_id else sub
        for sub in current.subcategories
    )
    return _update_layer(state, layer_id, subcategories=subs)


def set_year(state: AppState, year: int) -> AppState:
    return replace(state, year=clamp_year(year))


def advance_year(state: AppState, step: int = 1) -> AppState:
    """One timeline playback tick. Playback holds at MAX_YEAR."""
    if state.year >= MAX_YEAR:
        return state
    return set_year(state, state.year + step)


# ----------------------------
# Store
# ----------------------------

Listener = Callable[[AppState, AppState], None]


class AppStore:
    """Holds the current AppState and notifies subscribers on every change."""

    def __init__(self, state: Optional[AppState] = None):
        self._state = state if state is not None else initial_state()
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, reducer: Callable[..., AppState], *args) -> AppState:
        with self._lock:
            old = self._state
            new = reducer(old, *args)
            if new == old:
                return old
            self._state = new
            listeners = list(self._listeners)
        for listener in listeners:
            listener(old, new)
        return new
