"""Timestamp and job-status conversions shared by the stores.

Timestamps are stored as naive UTC values truncated to millisecond precision.
Job status is never stored: it is derived from END_TIME and ERROR, both in
Python (``derive_status``) and in SQL (``status_clauses``).
"""

from datetime import datetime, timezone

from sqlalchemy import ColumnElement

from jobstore.db.models.job import JobRow
from jobstore.models.enums import JobStatus


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def normalize_timestamp(value: datetime) -> datetime:
    """Aware UTC at millisecond precision; naive inputs are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return truncate_to_millis(value)


def to_db_timestamp(value: datetime) -> datetime:
    """Convert a domain timestamp to the naive UTC millisecond value stored in the database.

    Naive inputs are taken to be UTC already.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return truncate_to_millis(value)


def from_db_timestamp(value: datetime | None) -> datetime | None:
    """Convert a stored timestamp back to an aware UTC datetime."""
    if value is None:
        return None
    return truncate_to_millis(value).replace(tzinfo=timezone.utc)


def derive_status(end_time: datetime | None, error: object | None) -> JobStatus:
    if error is not None:
        return JobStatus.ERROR
    if end_time is None:
        return JobStatus.RUNNING
    return JobStatus.FINISHED


def status_clauses(status: JobStatus | str | None) -> list[ColumnElement[bool]]:
    """WHERE clauses selecting JOBS rows whose derived status is ``status``.

    ``None`` selects every row.
    """
    if status is None:
        return []
    status = JobStatus(status)
    if status is JobStatus.RUNNING:
        return [JobRow.end_time.is_(None), JobRow.error.is_(None)]
    if status is JobStatus.ERROR:
        return [JobRow.error.is_not(None)]
    return [JobRow.end_time.is_not(None), JobRow.error.is_(None)]
