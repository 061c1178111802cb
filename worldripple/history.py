"""
history.py
Static historical content used by map hover popups and search results.

location_historical_events() picks what a hover popup shows for a region and
year: events of that exact year, else the closest event within
NEARBY_WINDOW years, else the closest events at any distance. At most
MAX_HOVER_EVENTS are returned.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

NEARBY_WINDOW = 20
MAX_HOVER_EVENTS = 3
MAX_SEARCH_RESULTS = 20


@dataclass(frozen=True)
class HistoricalEvent:
    id: str
    date: str
    year: int
    title: str
    description: str
    location: str
    category: str


@dataclass(frozen=True)
class HistoricalPerson:
    id: str
    name: str
    birth_year: int
    description: str
    significance: str
    category: str
    location: str
    coordinates: Optional[Tuple[float, float]] = None
    death_year: Optional[int] = None


@dataclass(frozen=True)
class Invention:
    id: str
    name: str
    year: int
    inventor: str
    description: str
    category: str
    location_name: str
    coordinates: Optional[Tuple[float, float]] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)


def _ev(id, date, year, title, description, location, category) -> HistoricalEvent:
    return HistoricalEvent(id, date, year, title, description, location, category)


HISTORICAL_EVENTS_BY_LOCATION: Dict[str, Tuple[HistoricalEvent, ...]] = {
    "United States": (
        _ev("us-1776", "July 4, 1776", 1776, "Declaration of Independence",
            "The Continental Congress adopted the Declaration of Independence in Philadelphia.",
            "Philadelphia, Pennsylvania", "political"),
        _ev("us-1861", "April 12, 1861", 1861, "Civil War Begins",
            "Confederate forces fired on Fort Sumter, opening the American Civil War.",
            "Charleston, South Carolina", "military"),
        _ev("us-1918", "October 1918", 1918, "Spanish Flu Peak",
            "The influenza pandemic reached its deadliest phase across the country.",
            "Nationwide", "social"),
        _ev("us-1929", "October 29, 1929", 1929, "Stock Market Crash",
            "Black Tuesday on Wall Street marked the start of the Great Depression.",
            "Wall Street, New York City", "economic"),
        _ev("us-1941", "December 7, 1941", 1941, "Attack on Pearl Harbor",
            "The attack on the Pacific Fleet brought the United States into World War II.",
            "Pearl Harbor, Hawaii", "military"),
        _ev("us-1969", "July 20, 1969", 1969, "Moon Landing",
            "Apollo 11 landed on the Moon, guided from mission control in Houston.",
            "NASA Mission Control, Houston", "scientific"),
        _ev("us-2001", "September 11, 2001", 2001, "September 11 Attacks",
            "Coordinated attacks struck New York City and Washington D.C.",
            "New York City & Washington D.C.", "political"),
        _ev("us-2020", "March 2020", 2020, "COVID-19 Pandemic",
            "A national emergency was declared as COVID-19 spread across the country.",
            "Nationwide", "social"),
    ),
    "United Kingdom": (
        _ev("uk-1066", "October 14, 1066", 1066, "Battle of Hastings",
            "William the Conqueror defeated Harold II, beginning Norman rule in England.",
            "Hastings, England", "military"),
        _ev("uk-1666", "September 2, 1666", 1666, "Great Fire of London",
            "A fire swept through the City of London for four days.",
            "London, England", "social"),
        _ev("uk-1707", "May 1, 1707", 1707, "Acts of Union",
            "England and Scotland united as the Kingdom of Great Britain.",
            "London & Edinburgh", "political"),
        _ev("uk-1940", "July 1940", 1940, "Battle of Britain",
            "The Royal Air Force defended the country against the Luftwaffe.",
            "Southern England", "military"),
        _ev("uk-2016", "June 23, 2016", 2016, "Brexit Referendum",
            "Voters chose to leave the European Union.",
            "United Kingdom", "political"),
    ),
    "Germany": (
        _ev("de-1517", "October 31, 1517", 1517, "Protestant Reformation Begins",
            "Martin Luther's 95 Theses sparked the Reformation.",
            "Wittenberg, Germany", "cultural"),
        _ev("de-1871", "January 18, 1871", 1871, "German Unification",
            "The German Empire was proclaimed under Wilhelm I.",
            "Versailles, France (German ceremony)", "political"),
        _ev("de-1989", "November 9, 1989", 1989, "Fall of the Berlin Wall",
            "The border between East and West Berlin opened.",
            "Berlin, Germany", "political"),
        _ev("de-1990", "October 3, 1990", 1990, "German Reunification",
            "East and West Germany were reunified.",
            "Germany", "political"),
    ),
    "California": (
        _ev("ca-1848", "January 24, 1848", 1848, "California Gold Rush Begins",
            "Gold found at Sutter's Mill triggered mass migration westward.",
            "Coloma, California", "economic"),
        _ev("ca-1906", "April 18, 1906", 1906, "San Francisco Earthquake",
            "An earthquake and the fires that followed destroyed much of San Francisco.",
            "San Francisco, California", "social"),
        _ev("ca-1976", "April 1, 1976", 1976, "Apple Founded",
            "Apple Computer was founded, an early milestone of Silicon Valley.",
            "Los Altos, California", "economic"),
    ),
    "New York": (
        _ev("ny-1624", "1624", 1624, "New Amsterdam Founded",
            "Dutch colonists established New Amsterdam on Manhattan Island.",
            "Manhattan, New York", "political"),
        _ev("ny-1886", "October 28, 1886", 1886, "Statue of Liberty Dedicated",
            "The Statue of Liberty was dedicated in New York Harbor.",
            "New York Harbor", "cultural"),
        _ev("ny-1943", "1942-1945", 1943, "World War II Home Front",
            "New York became a hub for wartime production and mobilization.",
            "New York City", "military"),
    ),
}

HISTORICAL_PEOPLE: Tuple[HistoricalPerson, ...] = (
    HistoricalPerson(
        "abraham-lincoln", "Abraham Lincoln", 1809,
        "16th President of the United States.",
        "Led the nation through the Civil War and abolished slavery.",
        "political", "Washington D.C.", (-77.0369, 38.9072), 1865,
    ),
    HistoricalPerson(
        "marie-curie", "Marie Curie", 1867,
        "Physicist and chemist, pioneer of research on radioactivity.",
        "First person to win Nobel Prizes in two sciences.",
        "scientific", "Paris, France", (2.3522, 48.8566), 1934,
    ),
)

INVENTIONS: Tuple[Invention, ...] = (
    Invention(
        "telephone", "Telephone", 1876, "Alexander Graham Bell",
        "A device that converts sound into electrical signals and back, allowing voice "
        "communication over wires.",
        "communication", "Boston, Massachusetts", (-71.0589, 42.3601), ("communication",),
    ),
    Invention(
        "printing-press", "Printing Press", 1440, "Johannes Gutenberg",
        "Movable-type printing that made books cheap to produce.",
        "communication", "Mainz, Germany", (8.2473, 49.9929), ("printing",),
    ),
)


def events_for_location(location: str) -> Tuple[HistoricalEvent, ...]:
    return HISTORICAL_EVENTS_BY_LOCATION.get(location, ())


def events_for_exact_year(location: str, year: int) -> List[HistoricalEvent]:
    return [e for e in events_for_location(location) if e.year == year]


def _by_distance(events, year: int) -> List[HistoricalEvent]:
    # sorted() is stable: equally distant events keep table order
    return sorted(events, key=lambda e: abs(e.year - year))


def closest_event(location: str, year: int, window: Optional[int] = NEARBY_WINDOW) -> Optional[HistoricalEvent]:
    events = events_for_location(location)
    if window is not None:
        events = [e for e in events if abs(e.year - year) <= window]
    ranked = _by_distance(events, year)
    return ranked[0] if ranked else None


@lru_cache(maxsize=512)
def location_historical_events(location: str, year: int) -> Tuple[HistoricalEvent, ...]:
    """Most relevant events for a hovered region in `year`."""
    relevant = events_for_exact_year(location, year)
    if not relevant:
        nearby = closest_event(location, year, NEARBY_WINDOW)
        if nearby is not None:
            relevant = [nearby]
    if not relevant:
        relevant = _by_distance(events_for_location(location), year)
    return tuple(relevant[:MAX_HOVER_EVENTS])


def search_events(query: str) -> List[HistoricalEvent]:
    """Case-insensitive search over every event; title matches first, then most recent."""
    term = (query or "").strip().lower()
    if not term:
        return []
    hits = []
    for location, events in HISTORICAL_EVENTS_BY_LOCATION.items():
        for e in events:
            haystack = (e.title, e.description, e.location, e.category, location, str(e.year))
            if any(term in part.lower() for part in haystack):
                hits.append(e)
    hits.sort(key=lambda e: (0 if term in e.title.lower() else 1, -e.year))
    return hits[:MAX_SEARCH_RESULTS]
