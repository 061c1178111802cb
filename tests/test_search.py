"""Search-result markers and the spin / fly / settle camera sequence."""

import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from worldripple.history import HISTORICAL_EVENTS_BY_LOCATION, HISTORICAL_PEOPLE, INVENTIONS
from worldripple.search import (
    AnimationHandle,
    LOCATION_COORDINATES,
    SearchMarkerController,
    SearchResult,
    resolve_coordinates,
    ripple_type,
    zoom_for,
)
from worldripple.surface import MapScene

MOON_LANDING = HISTORICAL_EVENTS_BY_LOCATION["United States"][5]
LINCOLN = HISTORICAL_PEOPLE[0]
TELEPHONE = INVENTIONS[0]


def event_result(description="Apollo 11 landed on the Moon"):
    return SearchResult("e1", MOON_LANDING.title, "event", description,
                        coordinates=(0.0, 0.0), year=1969, event=MOON_LANDING)


def person_result():
    return SearchResult("p1", LINCOLN.name, "person", LINCOLN.description, year=1809, person=LINCOLN)


def invention_result():
    return SearchResult("i1", TELEPHONE.name, "invention", TELEPHONE.description,
                        year=1876, invention=TELEPHONE)


def location_result():
    return SearchResult("l1", "Paris", "location", "Capital of France", coordinates=(2.35, 48.86))


@pytest.fixture
def displayed():
    return []


@pytest.fixture
def controller(scene, scheduler, displayed):
    return SearchMarkerController(scene, scheduler=scheduler, on_displayed=displayed.append)


@pytest.mark.parametrize("result_type,zoom", [("event", 8), ("invention", 10), ("person", 7), ("location", 5)])
def test_zoom_levels(result_type, zoom):
    assert zoom_for(result_type) == zoom


class TestResolveCoordinates:
    def test_event_uses_location_table(self):
        assert resolve_coordinates(event_result()) == LOCATION_COORDINATES["NASA Mission Control, Houston"]

    def test_event_falls_back_to_result_coordinates(self):
        event = HISTORICAL_EVENTS_BY_LOCATION["Germany"][0]  # Wittenberg is in the table
        unknown = replace(event, location="Somewhere")
        result = SearchResult("e2", event.title, "event", coordinates=(1.0, 2.0), event=unknown)
        assert resolve_coordinates(result) == (1.0, 2.0)

    def test_person_and_invention_use_their_own(self):
        assert resolve_coordinates(person_result()) == LINCOLN.coordinates
        assert resolve_coordinates(invention_result()) == TELEPHONE.coordinates

    def test_location(self):
        assert resolve_coordinates(location_result()) == (2.35, 48.86)

    def test_missing(self):
        assert resolve_coordinates(SearchResult("x", "X", "event")) is None
        assert resolve_coordinates(SearchResult("y", "Y", "year", year=1950)) is None


@pytest.mark.parametrize("description,kind", [
    ("A decisive battle", "war"),
    ("The influenza pandemic", "pandemic"),
    ("An innovation in printing", "invention"),
    ("Market crash", "economic"),
    ("The earthquake leveled the city", "disaster"),
    ("A royal wedding", "social"),
])
def test_ripple_type_for_events(description, kind):
    assert ripple_type(event_result(description)) == kind


def test_ripple_type_for_other_results():
    assert ripple_type(invention_result()) == "invention"
    assert ripple_type(person_result()) == "social"


class TestSearchMarkerController:
    def test_full_sequence(self, scene, scheduler, controller, displayed):
        scene.center = (10.0, 20.0)
        result = event_result()
        handle = controller.show(result)

        target = LOCATION_COORDINATES["NASA Mission Control, Houston"]
        assert isinstance(handle, AnimationHandle)
        assert len(scene.markers) == 1
        assert scene.markers[0].lnglat == target
        assert scene.markers[0].kind == "social"
        assert "Moon Landing" in scene.popups[0].html
        assert scene.camera_moves == [
            ("ease", {"center": (370.0, 20.0), "zoom": 2, "duration": 3.0, "easing": "linear"}),
        ]

        scheduler.advance(2.9)
        assert len(scene.camera_moves) == 1

        scheduler.advance(0.2)
        assert scene.camera_moves[-1] == ("fly", {"center": target, "zoom": 8, "duration": 2.0})
        assert displayed == []

        scheduler.advance(2.5)
        assert displayed == [result]
        assert handle.completed
        assert not handle.active

    def test_new_show_cancels_previous(self, scene, scheduler, controller, displayed):
        first = controller.show(event_result())
        scheduler.advance(1.0)
        second = controller.show(person_result())

        assert first.cancelled
        assert len(scene.markers) == 1
        assert scene.markers[0].lnglat == LINCOLN.coordinates
        assert len(scene.popups) == 1

        scheduler.advance(10)
        flies = [move for move in scene.camera_moves if move[0] == "fly"]
        assert flies == [("fly", {"center": LINCOLN.coordinates, "zoom": 7, "duration": 2.0})]
        assert [r.id for r in displayed] == ["p1"]
        assert second.completed

    def test_stale_callback_is_ignored(self, scene, scheduler, controller, displayed):
        # a timer that fires despite cancellation must not act
        first = controller.show(location_result())
        stale_timer = scheduler.timers[0]
        controller.show(invention_result())
        stale_timer.callback()

        flies = [move for move in scene.camera_moves if move[0] == "fly"]
        assert flies == []
        assert first.cancelled

    def test_clear(self, scene, scheduler, controller, displayed):
        handle = controller.show(location_result())
        controller.clear()
        scheduler.advance(10)
        assert handle.cancelled
        assert scene.markers == []
        assert scene.popups == []
        assert displayed == []

    def test_unmappable_result_shows_nothing(self, scene, scheduler, controller):
        controller.show(location_result())
        assert controller.show(SearchResult("y", "1950", "year", year=1950)) is None
        assert scene.markers == []
        assert scheduler.pending == []

    def test_without_display_callback(self, scene, scheduler):
        controller = SearchMarkerController(scene, scheduler=scheduler)
        handle = controller.show(invention_result())
        scheduler.advance(3.0)
        assert handle.completed
        assert scene.camera_moves[-1][1]["zoom"] == 10

    def test_default_scheduler_uses_threading_timer(self):
        surface = MagicMock()
        surface.get_center.return_value = (0.0, 0.0)
        controller = SearchMarkerController(surface)
        handle = controller.show(location_result())
        controller.clear()
        assert handle.cancelled
        surface.remove_marker.assert_called_once()


class _HeldFlyScene(MapScene):
    """Scene whose fly_to blocks until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.flying = threading.Event()
        self.gate = threading.Event()

    def fly_to(self, center, zoom, duration):
        self.flying.set()
        self.gate.wait(5)
        super().fly_to(center, zoom, duration)


def test_show_waits_for_fly_in_progress(scheduler):
    scene = _HeldFlyScene()
    controller = SearchMarkerController(scene, scheduler=scheduler)
    controller.show(location_result())

    timer_thread = threading.Thread(target=scheduler.advance, args=(3.0,))
    timer_thread.start()
    assert scene.flying.wait(5)

    caller = threading.Thread(target=controller.show, args=(person_result(),))
    caller.start()
    caller.join(0.2)
    assert caller.is_alive()

    scene.gate.set()
    timer_thread.join(5)
    caller.join(5)

    assert [kind for kind, _ in scene.camera_moves] == ["ease", "fly", "ease"]
    assert scene.markers[0].lnglat == LINCOLN.coordinates


def test_cancelled_spins_do_not_accumulate_longitude(scene, scheduler, controller):
    scene.center = (10.0, 20.0)
    controller.show(location_result())
    scheduler.advance(1.0)
    controller.show(person_result())
    scheduler.advance(1.0)
    controller.clear()

    eases = [move[1]["center"] for move in scene.camera_moves if move[0] == "ease"]
    assert eases == [(370.0, 20.0), (370.0, 20.0)]
    assert scene.center == (10.0, 20.0)
