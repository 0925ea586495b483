"""Aggregated views over complaints: heatmap, AI summary and category legend."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..config import Settings
from ..dependencies import get_app_settings, get_store, get_summary_generator
from ..models import ISSUE_TYPE_COLORS
from ..schemas import HeatmapPoint, IssueTypeRead, SummaryFilter, SummaryResponse
from ..store import ComplaintStore
from ..summary import SummaryGenerator

router = APIRouter(prefix="/api", tags=["Insights"])


@router.get("/heatmap", response_model=List[HeatmapPoint])
async def heatmap(store: ComplaintStore = Depends(get_store)):
    return await store.aggregate_for_heatmap()


@router.get("/ai-summary", response_model=SummaryResponse)
async def ai_summary(
    location: Optional[str] = Query(None),
    time_range: Optional[str] = Query(None, alias="timeRange"),
    store: ComplaintStore = Depends(get_store),
    generator: SummaryGenerator = Depends(get_summary_generator),
    settings: Settings = Depends(get_app_settings),
):
    filters = SummaryFilter.from_query(location=location, time_range=time_range)
    rows = await store.top_by_upvotes(filters, limit=settings.summary_limit)
    summary = await generator.generate(rows, filters.location, filters.time_range)
    return SummaryResponse(summary=summary)


@router.get("/issue-types", response_model=List[IssueTypeRead])
def issue_types():
    return [IssueTypeRead(name=issue.value, color=color) for issue, color in ISSUE_TYPE_COLORS.items()]
