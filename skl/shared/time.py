from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone

logger = logging.getLogger("skl.certificates")

ID_MONTHS = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)

_DMY_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_date(value: date | datetime | str | None) -> date | None:
    """Parse ISO (``2024-05-04``) or day-first (``4/5/2024``) dates."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = value.strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    match = _DMY_RE.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def fmt_long_date(value: date | datetime | str | None) -> str:
    """Render a date as ``4 Mei 2024``.

    Strings that cannot be parsed are returned unchanged, so values that are
    already formatted (``05 Mei 2025``) pass straight through.
    """
    if value is None:
        return ""
    parsed = parse_date(value)
    if parsed is None:
        if isinstance(value, str) and value.strip():
            logger.debug("[CERT] unparsed date kept verbatim: %r", value)
        return value if isinstance(value, str) else str(value)
    return f"{parsed.day} {ID_MONTHS[parsed.month - 1]} {parsed.year}"
