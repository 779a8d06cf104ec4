"""
iCalendar export of a single event ("add to my calendar").
"""

import re
from datetime import UTC, datetime

from community_calendar.schemas import Event
from community_calendar.utils.text_processing import strip_html

PRODID = "-//triad.build//Event Calendar//EN"
UID_DOMAIN = "triad.build"
MAX_LINE_OCTETS = 75


def format_ics_datetime(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def escape_ics_text(text: str | None) -> str:
    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "")
    )


def fold_line(line: str) -> list[str]:
    """Split a content line into 75-octet chunks; continuation lines start with a space."""
    encoded = line.encode("utf-8")
    if len(encoded) <= MAX_LINE_OCTETS:
        return [line]

    parts: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = ""
            # Continuation lines lose one octet to the leading space
            limit = MAX_LINE_OCTETS - 1
        current += char
    parts.append(current)
    return [parts[0], *(f" {part}" for part in parts[1:])]


def ics_filename(event: Event) -> str:
    slug = re.sub(r"\s+", "-", re.sub(r"[^a-zA-Z0-9\s]", "", event.title or "").strip())
    return f"{slug or 'event'}.ics"


def generate_ics(event: Event, now: datetime | None = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{event.id}@{UID_DOMAIN}",
        f"DTSTAMP:{format_ics_datetime(now or datetime.now(UTC))}",
        f"DTSTART:{format_ics_datetime(event.start)}",
        f"DTEND:{format_ics_datetime(event.end)}",
        f"SUMMARY:{escape_ics_text(event.title or 'Untitled Event')}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{escape_ics_text(strip_html(event.description))}")
    if event.location:
        lines.append(f"LOCATION:{escape_ics_text(event.location)}")
    if event.url:
        lines.append(f"URL:{event.url}")
    lines.extend(["STATUS:CONFIRMED", "TRANSP:OPAQUE", "END:VEVENT", "END:VCALENDAR"])

    folded = [part for line in lines for part in fold_line(line)]
    return "\r\n".join(folded) + "\r\n"
