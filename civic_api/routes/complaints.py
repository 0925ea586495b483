"""Complaint submission, browsing and voting routes."""

from __future__ import annotations

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from ..config import Settings
from ..dependencies import get_app_settings, get_image_storage, get_store
from ..errors import StorageError
from ..image_storage import ImageStorage, validate_image
from ..observability import complaint_votes_total, complaints_created_total, upstream_failures_total
from ..schemas import ComplaintFilter, ComplaintRead, NewComplaint, VoteRequest, VoteResponse
from ..store import ComplaintStore

logger = logging.getLogger("civic_api.routes.complaints")

router = APIRouter(prefix="/api", tags=["Complaints"])


@router.post("/complaints", response_model=ComplaintRead, status_code=status.HTTP_201_CREATED)
async def create_complaint(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    issue_type: Optional[str] = Form(None, alias="issueType"),
    location: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ComplaintStore = Depends(get_store),
    image_storage: ImageStorage = Depends(get_image_storage),
    settings: Settings = Depends(get_app_settings),
):
    # Validate the text fields before touching object storage so a bad form
    # never leaves an orphaned upload behind.
    complaint = NewComplaint.parse(
        {
            "title": title,
            "description": description,
            "issue_type": issue_type,
            "location": location,
            "latitude": latitude,
            "longitude": longitude,
        }
    )

    if image is not None and image.filename:
        # Never buffer more than one byte past the limit.
        data = await image.read(settings.max_image_bytes + 1)
        validate_image(data, image.filename, image.content_type, settings.max_image_bytes)
        try:
            image_url = await run_in_threadpool(
                image_storage.upload, data, image.filename, image.content_type
            )
        except StorageError:
            upstream_failures_total.labels(service="storage").inc()
            raise
        complaint = complaint.model_copy(update={"image_url": image_url})

    try:
        record = await store.create(complaint)
    except Exception:
        if complaint.image_url:
            await _discard_image(image_storage, complaint.image_url)
        raise
    complaints_created_total.labels(with_image=str(record.image_url is not None).lower()).inc()
    return ComplaintRead.model_validate(record)


async def _discard_image(image_storage: ImageStorage, image_url: str) -> None:
    try:
        await run_in_threadpool(image_storage.delete, image_url)
    except StorageError as exc:
        logger.error("Orphaned complaint image %s left in storage: %s", image_url, exc)
    else:
        logger.warning("Removed image %s after the complaint insert failed", image_url)


@router.get("/complaints", response_model=List[ComplaintRead])
async def list_complaints(
    response: Response,
    issue_type: Optional[str] = Query(None, alias="issueType"),
    location: Optional[str] = Query(None),
    time_range: Optional[str] = Query(None, alias="timeRange"),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    store: ComplaintStore = Depends(get_store),
):
    params = {"issue_type": issue_type, "location": location, "time_range": time_range}
    if limit is not None:
        params["limit"] = limit
    if offset is not None:
        params["offset"] = offset
    filters = ComplaintFilter.from_query(**params)

    complaints = await store.list(filters)
    response.headers["X-Total-Count"] = str(await store.count(filters))
    return [ComplaintRead.model_validate(c) for c in complaints]


@router.get("/complaints/{complaint_id}", response_model=ComplaintRead)
async def get_complaint(complaint_id: int, store: ComplaintStore = Depends(get_store)):
    complaint = await store.get(complaint_id)
    # The response shows the record as it was before this view.
    await store.increment_views(complaint_id)
    return ComplaintRead.model_validate(complaint)


@router.post("/complaints/{complaint_id}/vote", response_model=VoteResponse)
async def vote_on_complaint(
    complaint_id: int,
    payload: VoteRequest,
    store: ComplaintStore = Depends(get_store),
):
    direction = payload.as_vote_type()
    await store.vote(complaint_id, direction)
    complaint_votes_total.labels(direction=direction.value).inc()
    return VoteResponse(success=True)
