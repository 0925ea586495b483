"""Translate complaint filters into SQLAlchemy predicates.

Every predicate returned here is ANDed by the caller. A filter field that is
absent contributes nothing, so an empty filter matches every complaint.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Union

from sqlalchemy.sql.elements import ColumnElement

from .models import Complaint, TimeRange, utcnow
from .schemas import ComplaintFilter, SummaryFilter

TIME_RANGE_WINDOWS = {
    TimeRange.week: timedelta(days=7),
    TimeRange.month: timedelta(days=30),
}


def time_range_cutoff(time_range: Optional[TimeRange], now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound for `created_at`, or None when the range is unbounded."""
    if time_range is None:
        return None
    window = TIME_RANGE_WINDOWS.get(TimeRange(time_range))
    if window is None:
        return None
    return (now or utcnow()) - window


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_conditions(
    filters: Union[SummaryFilter, ComplaintFilter], now: Optional[datetime] = None
) -> List[ColumnElement]:
    conditions: List[ColumnElement] = []

    # Summaries are never narrowed by issue type.
    if isinstance(filters, ComplaintFilter) and filters.issue_type:
        conditions.append(Complaint.issue_type == filters.issue_type)

    if filters.location:
        pattern = f"%{_escape_like(filters.location)}%"
        conditions.append(Complaint.location.ilike(pattern, escape="\\"))

    cutoff = time_range_cutoff(filters.time_range, now)
    if cutoff is not None:
        conditions.append(Complaint.created_at >= cutoff)

    return conditions


__all__ = ["TIME_RANGE_WINDOWS", "build_conditions", "time_range_cutoff"]
