"""Best-effort regex metadata for documents without a dedicated agent."""

import re
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

_MONTHS = {
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "setiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}

_LONG_DATE_RE = re.compile(
    r"(\d{1,2})\s+de\s+(" + "|".join(_MONTHS) + r")\s+de(?:l)?\s+(\d{4})", re.IGNORECASE
)
_DAY_FIRST_RE = re.compile(r"\b(\d{1,2})[-/](\d{1,2})[-/](\d{4})\b")
_YEAR_FIRST_RE = re.compile(r"\b(\d{4})[-/](\d{1,2})[-/](\d{1,2})\b")

_PRESIDENT_RE = re.compile(r"presidente[:\s]+([^\n.]+)", re.IGNORECASE)
_ADMINISTRATOR_RE = re.compile(r"administrador[:\s]+([^\n.]+)", re.IGNORECASE)
_ATTENDEES_RE = re.compile(r"(\d+)\s*propietarios?\s*asistent", re.IGNORECASE)
_COMMUNITY_RE = re.compile(r"comunidad\s+de\s+propietarios\s+([^\n.]+)", re.IGNORECASE)


def extract_generic_metadata(
    text: str,
    filename: str,
    page_count: int | None = None,
    document_type: str | None = None,
) -> dict[str, Any]:
    """Collect what can be read without a model: title, size, first date.

    Meeting minutes additionally get president, administrator, attendee count,
    community name and meeting type when the wording is recognizable.
    """
    metadata: dict[str, Any] = {
        "title": PurePath(filename).stem or filename,
        "created_date": datetime.now(timezone.utc).date().isoformat(),
        "page_count": page_count,
        "language": "es",
        "text_length": len(text),
        "extraction_method": "generic",
    }

    document_date = find_first_date(text)
    if document_date is not None:
        metadata["document_date"] = document_date

    if document_type == "acta" or "acta" in filename.lower():
        metadata.update(_minutes_details(text))
    return metadata


def find_first_date(text: str) -> str | None:
    """Return the first recognizable date in ``text`` as ``YYYY-MM-DD``."""
    candidates: list[tuple[int, str]] = []

    match = _LONG_DATE_RE.search(text)
    if match:
        day, month_name, year = match.groups()
        iso = _iso(int(year), _MONTHS[month_name.lower()], int(day))
        if iso:
            candidates.append((match.start(), iso))

    match = _DAY_FIRST_RE.search(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        iso = _iso(year, month, day)
        if iso:
            candidates.append((match.start(), iso))

    match = _YEAR_FIRST_RE.search(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        iso = _iso(year, month, day)
        if iso:
            candidates.append((match.start(), iso))

    if not candidates:
        return None
    return min(candidates)[1]


def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return datetime(year, month, day).date().isoformat()
    except ValueError:
        return None


def _minutes_details(text: str) -> dict[str, Any]:
    details: dict[str, Any] = {}
    president = _PRESIDENT_RE.search(text)
    if president:
        details["president"] = president.group(1).strip()
    administrator = _ADMINISTRATOR_RE.search(text)
    if administrator:
        details["administrator"] = administrator.group(1).strip()
    attendees = _ATTENDEES_RE.search(text)
    if attendees:
        details["attendees_count"] = int(attendees.group(1))
    community = _COMMUNITY_RE.search(text)
    if community:
        details["community_name"] = community.group(1).strip()

    lowered = text.lower()
    if "extraordinaria" in lowered:
        details["meeting_type"] = "extraordinaria"
    elif "ordinaria" in lowered:
        details["meeting_type"] = "ordinaria"
    return details
