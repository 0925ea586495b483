"""
Complaint data-access layer.

`ComplaintStore` wraps one `AsyncSession` and is the only component that
writes to the `complaints` table. Each public method completes as a single
statement (plus commit); counters are updated with SQL arithmetic so
concurrent requests never lose updates or push `upvotes` below zero.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Union
import logging

from sqlalchemy import case, func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from .errors import NotFound, ValidationError
from .models import Complaint, VoteType
from .query import build_conditions
from .schemas import ComplaintDigest, ComplaintFilter, HeatmapPoint, NewComplaint, SummaryFilter

logger = logging.getLogger("civic_api.store")

DEFAULT_SUMMARY_LIMIT = 10


class ComplaintStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, complaint: Union[NewComplaint, Mapping[str, Any]]) -> Complaint:
        """Insert a complaint; the store fills id, counters, status and created_at."""
        if not isinstance(complaint, NewComplaint):
            complaint = NewComplaint.parse(complaint)

        record = Complaint(**complaint.model_dump())
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        logger.info("Created complaint %s (%s)", record.id, record.issue_type)
        return record

    async def get(self, complaint_id: int) -> Complaint:
        # populate_existing: counters change through bulk UPDATEs the identity map never sees.
        statement = select(Complaint).where(Complaint.id == complaint_id).execution_options(populate_existing=True)
        result = await self.session.exec(statement)
        complaint = result.first()
        if complaint is None:
            raise NotFound(f"complaint {complaint_id} does not exist")
        return complaint

    async def list(self, filters: Optional[ComplaintFilter] = None, now: Optional[datetime] = None) -> List[Complaint]:
        filters = filters or ComplaintFilter()
        statement = select(Complaint)
        conditions = build_conditions(filters, now)
        if conditions:
            statement = statement.where(*conditions)

        # Newest first; id breaks ties between rows sharing a timestamp.
        statement = (
            statement.order_by(Complaint.created_at.desc(), Complaint.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self.session.exec(statement)
        return list(result.all())

    async def count(self, filters: Optional[ComplaintFilter] = None, now: Optional[datetime] = None) -> int:
        filters = filters or ComplaintFilter()
        statement = select(func.count(Complaint.id))
        conditions = build_conditions(filters, now)
        if conditions:
            statement = statement.where(*conditions)
        result = await self.session.exec(statement)
        return int(result.one())

    async def increment_views(self, complaint_id: int) -> None:
        await self._apply_update(complaint_id, views=Complaint.views + 1)

    async def vote(self, complaint_id: int, direction: Union[VoteType, str]) -> None:
        try:
            direction = VoteType(direction)
        except ValueError as exc:
            raise ValidationError(f"unknown vote type {direction!r}", public_message="Invalid vote type") from exc
        if direction is VoteType.up:
            new_value = Complaint.upvotes + 1
        else:
            # Evaluated by the database so concurrent down-votes floor at zero.
            new_value = case((Complaint.upvotes > 0, Complaint.upvotes - 1), else_=0)
        await self._apply_update(complaint_id, upvotes=new_value)
        logger.debug("Recorded %s vote on complaint %s", direction.value, complaint_id)

    async def aggregate_for_heatmap(self) -> List[HeatmapPoint]:
        """Count complaints per exact (latitude, longitude) pair."""
        statement = select(
            Complaint.latitude,
            Complaint.longitude,
            func.count(Complaint.id).label("count"),
        ).group_by(Complaint.latitude, Complaint.longitude)
        result = await self.session.exec(statement)
        return [
            HeatmapPoint(latitude=lat, longitude=lng, count=count)
            for lat, lng, count in result.all()
        ]

    async def top_by_upvotes(
        self,
        filters: Optional[SummaryFilter] = None,
        limit: int = DEFAULT_SUMMARY_LIMIT,
        now: Optional[datetime] = None,
    ) -> List[ComplaintDigest]:
        filters = filters or SummaryFilter()
        statement = select(
            Complaint.issue_type,
            Complaint.title,
            Complaint.description,
            Complaint.upvotes,
        )
        conditions = build_conditions(filters, now)
        if conditions:
            statement = statement.where(*conditions)
        statement = statement.order_by(Complaint.upvotes.desc(), Complaint.id.desc()).limit(limit)
        result = await self.session.exec(statement)
        return [
            ComplaintDigest(issue_type=issue_type, title=title, description=description, upvotes=upvotes)
            for issue_type, title, description, upvotes in result.all()
        ]

    async def _apply_update(self, complaint_id: int, **values: Any) -> None:
        statement = (
            update(Complaint)
            .where(Complaint.id == complaint_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFound(f"complaint {complaint_id} does not exist")
        await self.session.commit()


__all__ = ["ComplaintStore", "DEFAULT_SUMMARY_LIMIT"]
