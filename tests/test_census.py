"""Regional statistics through the proxy client, and the proxy client itself."""

from unittest.mock import MagicMock

import pytest
import requests

from worldripple.census import ACS_ENDPOINT, RegionalStatsClient, parse_census_value
from worldripple.config import Settings
from worldripple.datagov import DataGovClient

CONFIGURED = Settings(supabase_url="https://proj.supabase.co/", supabase_anon_key="anon", request_timeout=4)


@pytest.mark.parametrize("response,expected", [
    ([["B25077_001E", "state"], ["348000", "06"]], 348000.0),
    ([["B25077_001E", "us"], [12.5, "1"]], 12.5),
    ([["B25077_001E", "us"]], None),
    ([], None),
    ({"error": "x"}, None),
    ([["h"], ["null"]], None),
    ([["h"], []], None),
])
def test_parse_census_value(response, expected):
    assert parse_census_value(response) == expected


class TestRegionalStatsClient:
    def _client(self, payload, api_key=None):
        data_gov = MagicMock()
        data_gov.fetch.return_value = payload
        return RegionalStatsClient(data_gov, api_key=api_key), data_gov

    def test_state_request(self):
        client, data_gov = self._client([["B25077_001E", "state"], ["348000", "06"]], api_key="ck")
        assert client.fetch_value("California", "MEDIAN_HOME_VALUE", 2020) == 348000.0
        data_gov.fetch.assert_called_once_with(
            ACS_ENDPOINT, {"get": "B25077_001E", "for": "state:06", "year": "2020", "key": "ck"}
        )

    def test_national_request(self):
        client, data_gov = self._client([["B01003_001E", "us"], ["331000000", "1"]])
        assert client.fetch_value("us", "TOTAL_POPULATION", 2021) == 331000000.0
        assert data_gov.fetch.call_args[0][1]["for"] == "us:*"
        assert "key" not in data_gov.fetch.call_args[0][1]

    def test_unknown_state(self, caplog):
        client, data_gov = self._client([])
        assert client.fetch_value("Atlantis", "MEDIAN_RENT", 2020) is None
        data_gov.fetch.assert_not_called()
        assert "No FIPS code found for state: Atlantis" in caplog.text

    def test_unknown_variable(self):
        client, data_gov = self._client([])
        assert client.fetch_value("Texas", "SHOE_SIZE", 2020) is None
        data_gov.fetch.assert_not_called()

    def test_proxy_returning_nothing(self):
        client, _ = self._client([])
        assert client.fetch_value("Texas", "MEDIAN_RENT", 2020) is None

    def test_fetch_states_drops_missing(self):
        data_gov = MagicMock()
        data_gov.fetch.side_effect = [[["h"], ["10"]], [], [["h"], ["30"]]]
        client = RegionalStatsClient(data_gov)
        out = client.fetch_states(["Texas", "Ohio", "Florida"], "MEDIAN_RENT", 2020)
        assert out == {"Texas": 10.0, "Florida": 30.0}


class TestDataGovClient:
    def test_unconfigured_returns_empty_without_request(self):
        session = MagicMock()
        client = DataGovClient(Settings(), session=session)
        assert not client.configured
        assert client.fetch("census/acs/acs5", {"get": "x"}) == []
        session.post.assert_not_called()

    def test_placeholder_url_is_unconfigured(self):
        settings = Settings(supabase_url="https://placeholder.supabase.co", supabase_anon_key="anon")
        assert DataGovClient(settings, session=MagicMock()).configured is False

    def test_posts_endpoint_and_params(self):
        session = MagicMock()
        session.post.return_value.ok = True
        session.post.return_value.json.return_value = [["h"], ["1"]]
        client = DataGovClient(CONFIGURED, session=session)

        assert client.fetch("nps/parks", {"limit": 5}) == [["h"], ["1"]]
        args, kwargs = session.post.call_args
        assert args[0] == "https://proj.supabase.co/functions/v1/data-gov-proxy"
        assert kwargs["json"] == {"endpoint": "nps/parks", "params": {"limit": 5}}
        assert kwargs["headers"]["Authorization"] == "Bearer anon"
        assert kwargs["timeout"] == 4

    def test_error_status_returns_empty(self):
        session = MagicMock()
        session.post.return_value.ok = False
        session.post.return_value.status_code = 502
        session.post.return_value.text = "bad gateway"
        assert DataGovClient(CONFIGURED, session=session).fetch("x") == []

    def test_network_failure_returns_empty(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("down")
        assert DataGovClient(CONFIGURED, session=session).fetch("x") == []
