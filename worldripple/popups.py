"""
popups.py
HTML for hover popups (historical events per region) and search-result popups.
"""

import html
from typing import Any

from .history import HistoricalEvent, HistoricalPerson, Invention

HOVER_DESCRIPTION_CHARS = 150
INVENTION_DESCRIPTION_CHARS = 100

_CARD = (
    "background:white; color:black; padding:{pad}px; border-radius:8px; "
    "box-shadow:0 4px 16px rgba(0,0,0,0.3); max-width:{width}px; "
    "font-family:-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "border:{border};"
)
_KICKER = (
    "font-size:{size}px; color:{color}; text-transform:uppercase; letter-spacing:0.5px; "
    "margin-bottom:{margin}px; font-weight:{weight};"
)
_TITLE = "font-size:{size}px; font-weight:{weight}; color:#111827; margin-bottom:8px; line-height:1.3;"
_BODY = "font-size:13px; color:#374151; line-height:{line}; margin-bottom:{margin}px;"
_FOOTER = (
    "font-size:11px; color:{color}; border-top:1px solid {rule}; padding-top:8px; "
    "display:flex; justify-content:space-between; align-items:center;"
)
_NOTE = "font-size:12px; color:#6b7280; background:{bg}; padding:8px; border-radius:4px; margin-bottom:8px;"


def _esc(value: Any) -> str:
    """HTML-escape arbitrary data for popup output."""
    if value is None:
        return ""
    escaped = html.escape(str(value))
    # Prevent Jinja from treating brace sequences like {{ }} or {% %} as template tags
    return escaped.replace('{', '&#123;').replace('}', '&#125;')


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def time_context(event_year: int, current_year: int) -> str:
    diff = abs(event_year - current_year)
    if event_year == current_year:
        return "This year"
    if event_year < current_year:
        return f"{diff} years ago"
    return f"{diff} years in the future"


def hover_popup_html(event: HistoricalEvent, region_name: str, current_year: int) -> str:
    kicker = f"{time_context(event.year, current_year)} • {event.category}"
    return (
        f'<div style="{_CARD.format(pad=14, width=280, border="1px solid #e5e7eb")}">'
        f'<div style="{_KICKER.format(size=11, color="#6b7280", margin=6, weight=500)}">{_esc(kicker)}</div>'
        f'<div style="{_TITLE.format(size=15, weight=600)}">{_esc(event.title)}</div>'
        f'<div style="{_BODY.format(line=1.4, margin=8)}">'
        f'{_esc(_truncate(event.description, HOVER_DESCRIPTION_CHARS))}</div>'
        f'<div style="{_FOOTER.format(color="#9ca3af", rule="#f3f4f6")}">'
        f'<span>📍 {_esc(region_name)}</span>'
        f'<span style="font-weight:500;">{_esc(event.date)}</span>'
        f'</div></div>'
    )


def event_popup_html(event: HistoricalEvent) -> str:
    return (
        f'<div style="{_CARD.format(pad=16, width=320, border="2px solid #3b82f6")}">'
        f'<div style="{_KICKER.format(size=10, color="#3b82f6", margin=8, weight=600)}">'
        f'SEARCH RESULT • {_esc(event.category)}</div>'
        f'<div style="{_TITLE.format(size=16, weight=700)}">{_esc(event.title)}</div>'
        f'<div style="{_BODY.format(line=1.5, margin=10)}">{_esc(event.description)}</div>'
        f'<div style="{_FOOTER.format(color="#6b7280", rule="#e5e7eb")}">'
        f'<span>📍 {_esc(event.location)}</span>'
        f'<span style="font-weight:600;">{event.year}</span>'
        f'</div></div>'
    )


def person_popup_html(person: HistoricalPerson) -> str:
    years = f"{person.birth_year}"
    if person.death_year:
        years += f" - {person.death_year}"
    return (
        f'<div style="{_CARD.format(pad=16, width=320, border="2px solid #f97316")}">'
        f'<div style="{_KICKER.format(size=10, color="#f97316", margin=8, weight=600)}">'
        f'HISTORICAL FIGURE • {_esc(person.category)}</div>'
        f'<div style="{_TITLE.format(size=16, weight=700)}">{_esc(person.name)}</div>'
        f'<div style="{_BODY.format(line=1.5, margin=10)}">{_esc(person.description)}</div>'
        f'<div style="{_NOTE.format(bg="#f3f4f6")}">{_esc(person.significance)}</div>'
        f'<div style="{_FOOTER.format(color="#6b7280", rule="#e5e7eb")}">'
        f'<span>📍 {_esc(person.location)}</span>'
        f'<span style="font-weight:600;">{years}</span>'
        f'</div></div>'
    )


def invention_popup_html(invention: Invention) -> str:
    return (
        f'<div style="{_CARD.format(pad=16, width=320, border="2px solid #eab308")}">'
        f'<div style="{_KICKER.format(size=10, color="#eab308", margin=8, weight=600)}">'
        f'INVENTION • {_esc(invention.category)}</div>'
        f'<div style="{_TITLE.format(size=16, weight=700)}">{_esc(invention.name)}</div>'
        f'<div style="{_BODY.format(line=1.5, margin=10)}">'
        f'{_esc(_truncate(invention.description, INVENTION_DESCRIPTION_CHARS))}</div>'
        f'<div style="{_NOTE.format(bg="#fef3c7")}">👤 Inventor: {_esc(invention.inventor)}</div>'
        f'<div style="{_FOOTER.format(color="#6b7280", rule="#e5e7eb")}">'
        f'<span>📍 {_esc(invention.location_name)}</span>'
        f'<span style="font-weight:600;">{invention.year}</span>'
        f'</div></div>'
    )


def location_popup_html(title: str, description: str) -> str:
    return (
        f'<div style="{_CARD.format(pad=16, width=280, border="2px solid #10b981")}">'
        f'<div style="{_KICKER.format(size=10, color="#10b981", margin=8, weight=600)}">LOCATION</div>'
        f'<div style="font-size:18px; font-weight:700; color:#111827; margin-bottom:8px;">{_esc(title)}</div>'
        f'<div style="font-size:13px; color:#374151; line-height:1.4;">{_esc(description)}</div>'
        f'</div>'
    )
