"""
session.py
Wires the state store to the data aggregator and the map synchronizer.

Every state change re-syncs the overlays; data is only re-fetched when the
set of active layers or the year changed. With run_async the fetch happens on
a worker thread and the overlays are synced again once its result is
published.
"""

import logging
import threading
from typing import Callable, Optional

from .aggregator import AggregationResult, LayerDataAggregator
from .census import RegionalStatsClient
from .config import Settings, load_settings
from .datacommons import SeriesClient
from .datagov import DataGovClient
from .search import AnimationHandle, SearchMarkerController, SearchResult
from .state import AppState, AppStore, set_layer_active, set_year
from .surface import MapScene
from .synchronizer import MapLayerSynchronizer

logger = logging.getLogger(__name__)

# Result types that move the timeline to the result's year
YEAR_RESULT_TYPES = ("event", "person", "invention", "year")


class MapSession:
    def __init__(
        self,
        store: AppStore,
        aggregator: LayerDataAggregator,
        synchronizer: MapLayerSynchronizer,
        search_controller: Optional[SearchMarkerController] = None,
        run_async: bool = False,
    ):
        self.store = store
        self.aggregator = aggregator
        self.synchronizer = synchronizer
        self.search_controller = search_controller
        self.run_async = run_async
        self.pending_search_result: Optional[SearchResult] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._sync_lock = threading.RLock()
        self._chained_on_displayed = None

        if search_controller is not None:
            self._chained_on_displayed = search_controller.on_displayed
            search_controller.on_displayed = self._on_search_displayed

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self.started:
            return
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        state = self.store.state
        self._refresh(state)
        self._sync(state)
        logger.info("Map session started with layers %s (%s)", ", ".join(state.active_layer_ids), state.year)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.aggregator.cancel()
        if self.search_controller is not None:
            self.search_controller.clear()
        self.pending_search_result = None
        with self._sync_lock:
            self.synchronizer.teardown()
        logger.info("Map session closed")

    # ----------------------------
    # State -> data -> overlays
    # ----------------------------

    def _on_state_change(self, old: AppState, new: AppState) -> None:
        if old.active_layer_ids != new.active_layer_ids or old.year != new.year:
            self._refresh(new)
        self._sync(new)

    def _refresh(self, state: AppState) -> None:
        ids = state.active_layer_ids
        if self.run_async:
            self.aggregator.refresh_async(ids, state.year, on_result=self._on_result)
        else:
            self.aggregator.refresh(ids, state.year)

    def _on_result(self, result: AggregationResult) -> None:
        if not self.started:
            logger.debug("Dropping layer data for %s; session is closed", result.year)
            return
        if result.error:
            logger.warning("Layer data for %s incomplete: %s", result.year, result.error)
        self._sync(self.store.state)

    def _sync(self, state: AppState) -> None:
        with self._sync_lock:
            # a worker may deliver after close() tore the overlays down
            if not self.started:
                return
            self.synchronizer.sync(state, self.aggregator.latest.data)

    # ----------------------------
    # Search
    # ----------------------------

    def show_search_result(self, result: SearchResult) -> Optional[AnimationHandle]:
        if result.type in YEAR_RESULT_TYPES and result.year:
            self.store.dispatch(set_year, result.year)
        elif result.type == "layer" and result.layer_id:
            self.store.dispatch(set_layer_active, result.layer_id, True)

        if self.search_controller is None:
            return None
        self.pending_search_result = result
        handle = self.search_controller.show(result)
        if handle is None:
            self.pending_search_result = None
        return handle

    def _on_search_displayed(self, result: SearchResult) -> None:
        if self.pending_search_result is result:
            self.pending_search_result = None
        if self._chained_on_displayed is not None:
            self._chained_on_displayed(result)


def create_session(
    settings: Optional[Settings] = None,
    surface: Optional[MapScene] = None,
    store: Optional[AppStore] = None,
    run_async: bool = False,
) -> MapSession:
    """Build a session over live clients configured from the environment."""
    settings = settings or load_settings()
    surface = surface if surface is not None else MapScene()
    series_client = SeriesClient(api_key=settings.data_commons_api_key, timeout=settings.request_timeout)
    regional_client = RegionalStatsClient(DataGovClient(settings), api_key=settings.census_api_key)
    return MapSession(
        store if store is not None else AppStore(),
        LayerDataAggregator(series_client, regional_client),
        MapLayerSynchronizer(surface),
        SearchMarkerController(surface),
        run_async=run_async,
    )
