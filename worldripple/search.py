"""
search.py
Search-result markers and the camera sequence that presents them.

show() drops a marker and popup at the result, spins the globe once
(a linear full rotation at a low zoom), flies to the result and, once the
camera has settled, reports the result as displayed. Each sequence is an
AnimationHandle; starting a new one cancels the previous handle, and timer
callbacks from a superseded sequence do nothing.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .config import (
    DEFAULT_SEARCH_ZOOM,
    DISPLAY_SETTLE_DELAY,
    FLY_DURATION,
    SEARCH_ZOOM_LEVELS,
    SPIN_DURATION,
    SPIN_ZOOM,
)
from .history import HistoricalEvent, HistoricalPerson, Invention
from .popups import event_popup_html, invention_popup_html, location_popup_html, person_popup_html
from .surface import MapSurface, MapSurfaceError, Marker, Popup

logger = logging.getLogger(__name__)

LngLat = Tuple[float, float]

SEARCH_POPUP_OWNER = "search"

# Event location strings -> (lng, lat)
LOCATION_COORDINATES = {
    "Philadelphia, Pennsylvania": (-75.1652, 39.9526),
    "Charleston, South Carolina": (-79.9311, 32.7765),
    "Nationwide": (-98.5795, 39.8283),
    "New York City": (-74.0060, 40.7128),
    "Pearl Harbor, Hawaii": (-157.9403, 21.3629),
    "NASA Mission Control, Houston": (-95.3698, 29.7604),
    "New York City & Washington D.C.": (-77.0369, 38.9072),
    "London, England": (-0.1276, 51.5074),
    "Hastings, England": (0.5767, 50.8540),
    "London & Edinburgh": (-3.1883, 55.9533),
    "Southern England": (-1.2577, 51.4545),
    "United Kingdom": (-3.4359, 55.3781),
    "Wittenberg, Germany": (12.6475, 51.8661),
    "Versailles, France (German ceremony)": (2.1204, 48.8049),
    "Berlin, Germany": (13.4050, 52.5200),
    "Germany": (10.4515, 51.1657),
    "Coloma, California": (-120.8996, 38.7963),
    "San Francisco, California": (-122.4194, 37.7749),
    "Los Altos, California": (-122.1141, 37.3688),
    "California": (-119.4179, 36.7783),
    "Silicon Valley, California": (-122.0838, 37.3875),
    "Los Angeles, California": (-118.2437, 34.0522),
    "Detroit, Michigan": (-83.0458, 42.3314),
    "Manhattan, New York": (-73.9712, 40.7831),
    "New York Harbor": (-74.0431, 40.7069),
    "Wall Street, New York City": (-74.0088, 40.7074),
    "Lower Manhattan, New York City": (-74.0134, 40.7092),
}

_RIPPLE_KEYWORDS = (
    ("war", ("war", "battle")),
    ("pandemic", ("disease", "pandemic")),
    ("invention", ("invention", "innovation")),
    ("economic", ("economic", "market")),
    ("disaster", ("disaster", "earthquake")),
)


@dataclass(frozen=True)
class SearchResult:
    id: str
    title: str
    type: str  # location | event | person | invention | layer | year
    description: str = ""
    coordinates: Optional[LngLat] = None
    year: Optional[int] = None
    layer_id: Optional[str] = None
    event: Optional[HistoricalEvent] = None
    person: Optional[HistoricalPerson] = None
    invention: Optional[Invention] = None


def resolve_coordinates(result: SearchResult) -> Optional[LngLat]:
    if result.type == "event":
        if result.event is None:
            return None
        return LOCATION_COORDINATES.get(result.event.location) or result.coordinates
    if result.type == "person":
        return result.person.coordinates if result.person else None
    if result.type == "invention":
        return result.invention.coordinates if result.invention else None
    if result.type == "location":
        return result.coordinates
    return None


def popup_html_for(result: SearchResult) -> Optional[str]:
    if result.type == "event" and result.event:
        return event_popup_html(result.event)
    if result.type == "person" and result.person:
        return person_popup_html(result.person)
    if result.type == "invention" and result.invention:
        return invention_popup_html(result.invention)
    if result.type == "location" and result.coordinates:
        return location_popup_html(result.title, result.description)
    return None


def zoom_for(result_type: str) -> float:
    return SEARCH_ZOOM_LEVELS.get(result_type, DEFAULT_SEARCH_ZOOM)


def ripple_type(result: SearchResult) -> str:
    """Marker style: war, pandemic, invention, economic, disaster or social."""
    if result.type == "invention":
        return "invention"
    if result.type == "event":
        desc = (result.description or "").lower()
        for kind, words in _RIPPLE_KEYWORDS:
            if any(w in desc for w in words):
                return kind
    return "social"


class Scheduler:
    """Runs callbacks after a delay on threading.Timer threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AnimationHandle:
    def __init__(self, generation: int):
        self.generation = generation
        self.cancelled = False
        self.completed = False
        self._timers: List = []

    def track(self, timer) -> None:
        self._timers.append(timer)

    def cancel(self) -> None:
        self.cancelled = True
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.completed)


class SearchMarkerController:
    def __init__(
        self,
        surface: MapSurface,
        scheduler: Optional[Scheduler] = None,
        on_displayed: Optional[Callable[[SearchResult], None]] = None,
    ):
        self.surface = surface
        self.scheduler = scheduler or Scheduler()
        self.on_displayed = on_displayed
        self._lock = threading.Lock()
        self._generation = 0
        self._handle: Optional[AnimationHandle] = None
        self._marker: Optional[Marker] = None
        self._popups: List[Popup] = []

    @property
    def marker(self) -> Optional[Marker]:
        return self._marker

    @property
    def handle(self) -> Optional[AnimationHandle]:
        return self._handle

    def _is_live(self, handle: AnimationHandle) -> bool:
        with self._lock:
            return not handle.cancelled and handle.generation == self._generation

    def clear(self) -> None:
        """Cancel the running sequence and remove the marker and its popup."""
        with self._lock:
            handle, self._handle = self._handle, None
            marker, self._marker = self._marker, None
            popups, self._popups = self._popups, []
        if handle is not None:
            handle.cancel()
        try:
            if marker is not None:
                self.surface.remove_marker(marker)
            for popup in popups:
                self.surface.remove_popup(popup)
        except MapSurfaceError as exc:
            logger.warning("Failed to clear search marker: %s", exc)

    def show(self, result: SearchResult) -> Optional[AnimationHandle]:
        self.clear()

        coords = resolve_coordinates(result)
        html = popup_html_for(result)
        if coords is None or html is None:
            logger.info("Search result %s has no mappable location", result.id)
            return None

        with self._lock:
            self._generation += 1
            handle = AnimationHandle(self._generation)
            self._handle = handle

        try:
            self._marker = self.surface.add_marker(
                coords, popup_html=html, kind=ripple_type(result),
                properties={"resultId": result.id, "type": result.type},
            )
            self._popups = [self.surface.add_popup(coords, html, owner=SEARCH_POPUP_OWNER)]
            lng, lat = self.surface.get_center()
            self.surface.ease_to((lng + 360, lat), SPIN_ZOOM, SPIN_DURATION, easing="linear")
        except MapSurfaceError as exc:
            logger.error("Failed to show search result %s: %s", result.id, exc)
            self.clear()
            return None

        handle.track(self.scheduler.call_later(SPIN_DURATION, lambda: self._fly(handle, result, coords)))
        return handle

    def _fly(self, handle: AnimationHandle, result: SearchResult, coords: LngLat) -> None:
        # show() cannot start a new spin while a live fly-to is issued
        with self._lock:
            if handle.cancelled or handle.generation != self._generation:
                return
            try:
                self.surface.fly_to(coords, zoom_for(result.type), FLY_DURATION)
            except MapSurfaceError as exc:
                logger.warning("Fly-to for %s failed: %s", result.id, exc)
        if self.on_displayed is None:
            handle.completed = True
            return
        # settle delay counts from the start of the fly-to
        handle.track(self.scheduler.call_later(DISPLAY_SETTLE_DELAY, lambda: self._displayed(handle, result)))

    def _displayed(self, handle: AnimationHandle, result: SearchResult) -> None:
        if not self._is_live(handle):
            return
        handle.completed = True
        if self.on_displayed:
            self.on_displayed(result)
