"""Field-level helpers shared by the connectors' canonical mapping."""

import hashlib
import html
import re
from datetime import datetime, timezone
from typing import Any

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def clean_text(value: Any) -> str:
    """Strip HTML tags and entities, collapse runs of whitespace."""
    if not value:
        return ""
    text = str(value).replace("<br>", "\n").replace("<br/>", "\n").replace("<br />", "\n")
    text = html.unescape(_TAG_RE.sub(" ", text))
    text = _WHITESPACE_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None for anything unparsable.
    """
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def make_external_id(source: str, raw_id: Any, *fallback: Any) -> str:
    """Prefix a provider id with its source.

    Postings without a provider id get a stable digest of the fallback fields
    so repeated calls yield the same id.
    """
    if raw_id not in (None, ""):
        return f"{source}-{raw_id}"
    digest = hashlib.sha1(
        "|".join(str(part or "") for part in fallback).encode()
    ).hexdigest()[:16]
    return f"{source}-{digest}"


def to_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return None


def format_salary_range(
    minimum: float | None,
    maximum: float | None,
    period: str = "",
) -> str | None:
    """Compose '$60,000 - $90,000 Per Year' from a numeric range."""
    parts = [f"${v:,.0f}" for v in (minimum, maximum) if v]
    if not parts:
        return None
    if len(parts) == 2 and minimum == maximum:
        parts = parts[:1]
    text = " - ".join(parts)
    return f"{text} {period}".strip() if period else text


def normalize_job_type(value: Any) -> str | None:
    """'Full Time', 'full_time' and 'FULL-TIME' all become 'full-time'."""
    if not value:
        return None
    text = re.sub(r"[\s_]+", "-", str(value).strip().lower())
    return text or None
