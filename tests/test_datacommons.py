"""Series client: request shape, caching and failure handling (HTTP is mocked)."""

from unittest.mock import MagicMock

import pytest
import requests

from worldripple.datacommons import (
    EMPTY_SERIES,
    Observation,
    SeriesClient,
    SeriesResponse,
    nearest_observation,
)

OBS = (Observation("1990", 1.0), Observation("2000", 2.0), Observation("2010", 3.0))


def _response(payload=None, status_error=None, json_error=None):
    resp = MagicMock()
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = payload
    return resp


def _client(resp=None, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = resp
    return SeriesClient(api_key="secret", base_url="https://dc.example/v1/", session=session, timeout=3), session


class TestNearestObservation:
    def test_closest_later_year(self):
        assert nearest_observation(OBS, 2006).date == "2010"

    def test_tie_keeps_first_in_list(self):
        assert nearest_observation(OBS, 2005).date == "2000"

    def test_exact_date_wins(self):
        obs = (Observation("2019", 5.0), Observation("2020-06", 6.0), Observation("2020", 7.0))
        assert nearest_observation(obs, 2020).value == 7.0

    def test_month_dates_use_their_year(self):
        obs = (Observation("2018-03", 1.0), Observation("2021-11", 2.0))
        assert nearest_observation(obs, 2020).value == 2.0

    def test_empty(self):
        assert nearest_observation((), 2000) is None

    def test_unparsable_dates_are_ignored(self):
        obs = (Observation("n/a", 9.0), Observation("1999", 1.0))
        assert nearest_observation(obs, 2020).value == 1.0


class TestSeriesResponse:
    def test_from_json_skips_bad_items(self):
        payload = {
            "observations": [
                {"date": "2000", "value": 1.5},
                {"date": "2001", "value": "not a number"},
                "junk",
                {"date": "2002", "value": "4"},
            ],
            "facet": {"provenanceUrl": "https://example.org"},
        }
        series = SeriesResponse.from_json(payload)
        assert series.observations == (Observation("2000", 1.5), Observation("2002", 4.0))
        assert series.facet == {"provenanceUrl": "https://example.org"}

    def test_missing_observations_is_empty(self):
        assert SeriesResponse.from_json({}).observations == ()

    @pytest.mark.parametrize("payload", [[], "x", {"observations": {"a": 1}}])
    def test_bad_shape_raises(self, payload):
        with pytest.raises(ValueError):
            SeriesResponse.from_json(payload)


class TestSeriesClient:
    def test_request_shape(self):
        client, session = _client(_response({"observations": [{"date": "2020", "value": 3}]}))
        series = client.fetch_series("country/USA", "Count_Person")

        assert series.observations == (Observation("2020", 3.0),)
        args, kwargs = session.get.call_args
        assert args[0] == "https://dc.example/v1/observations/series/country%2FUSA/Count_Person"
        assert kwargs["params"] == {"key": "secret"}
        assert kwargs["timeout"] == 3
        assert "User-Agent" in kwargs["headers"]

    def test_success_is_cached(self):
        client, session = _client(_response({"observations": []}))
        first = client.fetch_series("Earth", "Mean_Temperature")
        second = client.fetch_series("Earth", "Mean_Temperature")
        assert first is second
        assert session.get.call_count == 1
        assert client.cache_size == 1

    def test_clear_cache_refetches(self):
        client, session = _client(_response({"observations": []}))
        client.fetch_series("Earth", "Mean_Temperature")
        client.clear_cache()
        client.fetch_series("Earth", "Mean_Temperature")
        assert session.get.call_count == 2

    def test_http_error_returns_empty_and_is_not_cached(self):
        client, session = _client(_response(status_error=requests.HTTPError("503 Server Error")))
        assert client.fetch_series("Earth", "X") is EMPTY_SERIES
        assert client.fetch_series("Earth", "X") is EMPTY_SERIES
        assert session.get.call_count == 2
        assert client.cache_size == 0

    def test_network_error_returns_empty(self):
        client, _ = _client(side_effect=requests.ConnectionError("unreachable"))
        assert client.fetch_series("Earth", "X") is EMPTY_SERIES

    def test_timeout_returns_empty(self):
        client, _ = _client(side_effect=requests.Timeout("slow"))
        assert client.fetch_series("Earth", "X") is EMPTY_SERIES

    def test_undecodable_body_returns_empty(self):
        client, _ = _client(_response(json_error=ValueError("Expecting value")))
        assert client.fetch_series("Earth", "X") is EMPTY_SERIES

    def test_no_key_sends_no_params(self):
        session = MagicMock()
        session.get.return_value = _response({"observations": []})
        SeriesClient(session=session).fetch_series("Earth", "X")
        assert session.get.call_args.kwargs["params"] is None
