"""Rendering a scene to a Leaflet page and writing the layer table."""

import os

import pandas as pd

from worldripple.aggregator import FRAME_COLUMNS, fetch_all_data
from worldripple.map_create import create_map
from worldripple.search import SearchMarkerController, SearchResult
from worldripple.state import initial_state
from worldripple.synchronizer import MapLayerSynchronizer


def test_create_map_writes_html(tmp_path, scene, scheduler):
    MapLayerSynchronizer(scene).sync(initial_state())
    SearchMarkerController(scene, scheduler=scheduler).show(
        SearchResult("l1", "Paris", "location", "Capital of France", coordinates=(2.35, 48.86))
    )

    out = create_map(scene, str(tmp_path), year=1969)

    assert out["data_table"] is None
    assert out["map_path"] == os.path.join(str(tmp_path), "output", "maps", "worldripple_map.html")
    with open(out["map_path"], encoding="utf-8") as f:
        page = f.read()
    assert "#EF4444" in page
    assert "#EAB308" in page
    assert "Capital of France" in page
    assert "1969" in page


def test_create_map_writes_layer_table(tmp_path, scene, scenario_configs, scenario_series, scenario_regional):
    result = fetch_all_data(["disease", "housing"], 2020, scenario_series, scenario_regional, configs=scenario_configs)

    out = create_map(scene, str(tmp_path), layer_data=result.data, filename="empty.html")

    assert os.path.exists(out["map_path"])
    frame = pd.read_csv(out["data_table"])
    assert list(frame.columns) == FRAME_COLUMNS
    assert len(frame) == 5
