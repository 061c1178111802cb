"""MapScene bookkeeping rules."""

import pytest

from worldripple.boundaries import boundary_feature
from worldripple.surface import MapScene, MapSurfaceError, wrap_longitude

EMPTY = {"type": "FeatureCollection", "features": []}


def test_duplicate_source_rejected(scene):
    scene.add_source("s", EMPTY)
    with pytest.raises(MapSurfaceError):
        scene.add_source("s", EMPTY)


def test_layer_needs_its_source(scene):
    with pytest.raises(MapSurfaceError):
        scene.add_layer({"id": "l", "type": "fill", "source": "missing"})


def test_source_in_use_cannot_be_removed(scene):
    scene.add_source("s", EMPTY)
    scene.add_layer({"id": "l", "type": "fill", "source": "s"})
    with pytest.raises(MapSurfaceError):
        scene.remove_source("s")
    scene.remove_layer("l")
    scene.remove_source("s")
    assert scene.sources == {}


def test_removing_missing_things_raises(scene):
    with pytest.raises(MapSurfaceError):
        scene.remove_layer("nope")
    with pytest.raises(MapSurfaceError):
        scene.remove_source("nope")
    with pytest.raises(MapSurfaceError):
        scene.set_paint_property("nope", "fill-color", "#fff")


def test_off_unknown_handler_is_ignored(scene):
    scene.off("mouseenter", "l", lambda e: None)
    assert scene.handlers() == []


def test_hover_enter_and_leave():
    scene = MapScene()
    scene.add_source("s", {"type": "FeatureCollection", "features": [boundary_feature("Germany")]})
    scene.add_layer({"id": "l", "type": "fill", "source": "s"})
    events = []
    scene.on("mouseenter", "l", lambda e: events.append(("enter", e.features[0]["properties"]["name"])))
    scene.on("mouseleave", "l", lambda e: events.append(("leave", None)))

    scene.hover(10.0, 51.0)
    scene.hover(10.5, 51.5)
    scene.leave()

    assert events == [("enter", "Germany"), ("leave", None)]


def test_boundary_lookups_are_copies():
    feature = boundary_feature("Japan")
    feature["properties"]["name"] = "changed"
    assert boundary_feature("Japan")["properties"]["name"] == "Japan"
    assert boundary_feature("Atlantis") is None


@pytest.mark.parametrize("lng,expected", [(370.0, 10.0), (-190.0, 170.0), (180.0, 180.0), (-180.0, 180.0), (45.0, 45.0)])
def test_wrap_longitude(lng, expected):
    assert wrap_longitude(lng) == expected


def test_camera_center_is_wrapped(scene):
    scene.ease_to((400.0, 10.0), 2, 3.0)
    assert scene.camera_moves[-1][1]["center"] == (400.0, 10.0)
    assert scene.get_center() == (40.0, 10.0)
