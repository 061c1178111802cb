"""Historical event selection for hover popups, and event search."""

from worldripple.history import (
    MAX_HOVER_EVENTS,
    MAX_SEARCH_RESULTS,
    closest_event,
    location_historical_events,
    search_events,
)


def _ids(events):
    return [e.id for e in events]


def test_exact_year_wins():
    assert _ids(location_historical_events("United States", 1969)) == ["us-1969"]


def test_nearest_within_window():
    # 2010: 2001 is 9 years away, 2020 is 10
    assert _ids(location_historical_events("United States", 2010)) == ["us-2001"]


def test_nearest_earlier_event():
    # 1890: 1886 is 4 years back, 1943 is 53 ahead
    assert _ids(location_historical_events("New York", 1890)) == ["ny-1886"]


def test_falls_back_to_unbounded_nearest():
    events = location_historical_events("California", 2024)
    assert _ids(events) == ["ca-1976", "ca-1906", "ca-1848"]
    assert len(events) <= MAX_HOVER_EVENTS


def test_unknown_location():
    assert location_historical_events("Atlantis", 2000) == ()


def test_closest_event_window():
    assert closest_event("Germany", 1960) is None
    assert closest_event("Germany", 1960, window=None).id == "de-1989"


def test_search_events_title_matches_first():
    hits = search_events("pandemic")
    assert hits[0].id == "us-2020"
    assert search_events("   ") == []


def test_search_is_capped():
    assert len(search_events("e")) <= MAX_SEARCH_RESULTS
