from __future__ import annotations

from datetime import date, datetime, time

from .exceptions import ClientValidationError, ValidationIssue


def _as_date(value: date | str | None, field: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ClientValidationError([ValidationIssue(field=field, reason="is required", code="REQUIRED")])
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as exc:
        raise ClientValidationError(
            [ValidationIssue(field=field, reason="must be an ISO date (YYYY-MM-DD)", code="INVALID")]
        ) from exc


def validate_report_range(from_date: date | str | None, to_date: date | str | None) -> tuple[datetime, datetime]:
    """Return the inclusive [start-of-day, end-of-day] window for a report query."""
    start = _as_date(from_date, "from")
    end = _as_date(to_date, "to")
    if start > end:
        raise ClientValidationError(
            [ValidationIssue(field="from", reason="'from' date cannot be after 'to' date", code="INVALID_RANGE")]
        )
    return datetime.combine(start, time.min), datetime.combine(end, time(23, 59, 59))
