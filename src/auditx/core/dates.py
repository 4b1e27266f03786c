"""Due and SLA date derivation from an audit's generation timestamp."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

DUE_DATE_OFFSET_DAYS = 30
SLA_DATE_OFFSET_DAYS = 45
NOT_AVAILABLE = "N/A"


class AuditDates(NamedTuple):
    last_reviewed: str
    due_date: str
    sla_date: str


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None when it is unusable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # Offsets can push dates at either end of the range out of bounds
        return None
    return parsed


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.date().isoformat()


def derive_dates(generated_at: Optional[str]) -> AuditDates:
    """Derive review, due and SLA dates relative to the generation time.

    Dates are computed from the record's own timestamp, never from the
    current time, so the same record always yields the same dates.
    """
    generated = parse_timestamp(generated_at)
    if generated is None:
        return AuditDates(NOT_AVAILABLE, NOT_AVAILABLE, NOT_AVAILABLE)
    try:
        due = generated + timedelta(days=DUE_DATE_OFFSET_DAYS)
        sla = generated + timedelta(days=SLA_DATE_OFFSET_DAYS)
    except OverflowError:
        return AuditDates(format_date(generated), NOT_AVAILABLE, NOT_AVAILABLE)
    return AuditDates(format_date(generated), format_date(due), format_date(sla))
