"""
aggregator.py
Per-layer data fetch, nearest-year resolution and min-max normalisation.

fetch_all_data() walks the active layers in order and each layer's sources in
order, one request at a time. Per-source failures degrade to a missing value;
an error escaping the loop is reported on the result next to whatever was
gathered before it.

LayerDataAggregator adds request generations on top: only the most recently
started refresh may publish, and starting a new refresh asks the previous one
to stop at its next source.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .census import RegionalStatsClient
from .datacommons import Observation, SeriesClient, nearest_observation
from .layers import LAYER_CONFIGS, LayerConfig, SourceRef

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["layer_id", "id", "entity", "variable", "name", "current_value", "normalized_value"]


@dataclass(frozen=True)
class LayerDataPoint:
    id: str
    entity: str
    variable: str
    name: str
    description: str
    current_value: Optional[float]
    normalized_value: float = 0.0
    observations: Tuple[Observation, ...] = ()


@dataclass
class AggregationResult:
    data: Dict[str, List[LayerDataPoint]] = field(default_factory=dict)
    error: Optional[str] = None
    year: Optional[int] = None
    generation: int = 0
    cancelled: bool = False

    def has_real_data(self, layer_id: str) -> bool:
        return layer_id in self.data


ProgressCallback = Callable[[str, int, int], None]


def _clean(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def normalize_values(values: Sequence[Optional[float]]) -> List[float]:
    """
    Min-max normalise the non-null values of one layer.

    Null entries map to 0. When every non-null value is equal they all map
    to 0.5. Results are clamped to [0, 1].
    """
    present = [v for v in values if v is not None]
    if not present:
        return [0.0 for _ in values]
    lo, hi = min(present), max(present)
    out = []
    for v in values:
        if v is None:
            out.append(0.0)
        elif hi == lo:
            out.append(0.5)
        else:
            out.append(max(0.0, min(1.0, (v - lo) / (hi - lo))))
    return out


def _resolve_source(
    source: SourceRef,
    year: int,
    series_client: SeriesClient,
    regional_client: Optional[RegionalStatsClient],
) -> Tuple[Optional[float], Tuple[Observation, ...], str]:
    if source.is_regional:
        if regional_client is None:
            return None, (), f"Census data for {source.display_name}"
        value = _clean(regional_client.fetch_value(source.region, source.variable, year))
        observations = (Observation(date=str(year), value=value),) if value is not None else ()
        return value, observations, f"Census data for {source.display_name}"

    series = series_client.fetch_series(source.entity, source.variable)
    obs = nearest_observation(series.observations, year)
    value = _clean(obs.value) if obs is not None else None
    return value, series.observations, f"Data for {source.display_name}"


def _build_layer(
    layer: LayerConfig,
    year: int,
    series_client: SeriesClient,
    regional_client: Optional[RegionalStatsClient],
    cancel_event: Optional[threading.Event],
    progress_callback: Optional[ProgressCallback],
) -> Tuple[List[LayerDataPoint], bool]:
    """Returns the layer's points and whether the walk was cancelled midway."""
    raw: List[Tuple[int, SourceRef, Optional[float], Tuple[Observation, ...], str]] = []
    total = len(layer.sources)
    cancelled = False
    for idx, source in enumerate(layer.sources):
        if cancel_event is not None and cancel_event.is_set():
            cancelled = True
            break
        try:
            value, observations, description = _resolve_source(source, year, series_client, regional_client)
        except Exception as exc:
            logger.warning("Failed to fetch data for %s: %s", source.display_name, exc)
            value, observations, description = None, (), f"Data for {source.display_name}"
        raw.append((idx, source, value, observations, description))
        if progress_callback:
            progress_callback(layer.layer_id, idx + 1, total)

    normalized = normalize_values([entry[2] for entry in raw])
    points = [
        LayerDataPoint(
            id=f"{layer.layer_id}-{idx}",
            entity=source.entity,
            variable=source.variable,
            name=source.display_name,
            description=description,
            current_value=value,
            normalized_value=norm,
            observations=observations,
        )
        for (idx, source, value, observations, description), norm in zip(raw, normalized)
    ]
    return points, cancelled


def fetch_all_data(
    active_layer_ids: Iterable[str],
    year: int,
    series_client: SeriesClient,
    regional_client: Optional[RegionalStatsClient] = None,
    configs: Mapping[str, LayerConfig] = LAYER_CONFIGS,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> AggregationResult:
    """
    Fetch and normalise the data of every active layer for `year`.

    Layers without any resolved value are left out of the result, which is
    how callers tell "real data available" from "use the static weights".
    """
    layer_ids = tuple(active_layer_ids)
    result = AggregationResult(year=year)
    if not layer_ids:
        return result

    try:
        for layer_id in layer_ids:
            layer = configs.get(layer_id)
            if layer is None or not layer.sources:
                logger.warning("No configuration found for layer: %s", layer_id)
                continue

            points, cancelled = _build_layer(
                layer, year, series_client, regional_client, cancel_event, progress_callback
            )
            if any(p.current_value is not None for p in points):
                result.data[layer_id] = points
            if cancelled:
                result.cancelled = True
                logger.debug("Aggregation for %s cancelled during layer %s", year, layer_id)
                break
    except Exception as exc:
        logger.exception("Error while aggregating layer data")
        result.error = str(exc) or exc.__class__.__name__
    return result


def to_frame(data: Mapping[str, Sequence[LayerDataPoint]]) -> pd.DataFrame:
    """Flatten layer data points to one row per point."""
    rows = [
        {
            "layer_id": layer_id,
            "id": p.id,
            "entity": p.entity,
            "variable": p.variable,
            "name": p.name,
            "current_value": p.current_value,
            "normalized_value": p.normalized_value,
        }
        for layer_id, points in data.items()
        for p in points
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


class LayerDataAggregator:
    def __init__(
        self,
        series_client: SeriesClient,
        regional_client: Optional[RegionalStatsClient] = None,
        configs: Mapping[str, LayerConfig] = LAYER_CONFIGS,
    ):
        self.series_client = series_client
        self.regional_client = regional_client
        self.configs = configs
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel_event: Optional[threading.Event] = None
        self._latest = AggregationResult()
        self._running = 0

    @property
    def latest(self) -> AggregationResult:
        with self._lock:
            return self._latest

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._running > 0

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _begin(self) -> Tuple[int, threading.Event]:
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._generation += 1
            self._cancel_event = threading.Event()
            self._running += 1
            return self._generation, self._cancel_event

    def refresh(
        self,
        active_layer_ids: Iterable[str],
        year: int,
        on_result: Optional[Callable[[AggregationResult], None]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> AggregationResult:
        """
        Run one aggregation and publish it if no newer refresh started meanwhile.

        The result is always returned; `on_result` only fires for a published one.
        """
        generation, cancel_event = self._begin()
        try:
            result = fetch_all_data(
                active_layer_ids,
                year,
                self.series_client,
                self.regional_client,
                configs=self.configs,
                cancel_event=cancel_event,
                progress_callback=progress_callback,
            )
        finally:
            with self._lock:
                self._running -= 1
        result.generation = generation

        with self._lock:
            published = generation == self._generation
            if published:
                self._latest = result
        if not published:
            logger.debug("Discarding stale aggregation (generation %s)", generation)
            return result
        if on_result:
            on_result(result)
        return result

    def refresh_async(
        self,
        active_layer_ids: Iterable[str],
        year: int,
        on_result: Optional[Callable[[AggregationResult], None]] = None,
    ) -> threading.Thread:
        layer_ids = tuple(active_layer_ids)
        worker = threading.Thread(
            target=self.refresh,
            args=(layer_ids, year, on_result),
            name=f"worldripple-aggregate-{year}",
            daemon=True,
        )
        worker.start()
        return worker

    def cancel(self) -> None:
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
