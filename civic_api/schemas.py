"""Request/response schemas and the filter objects accepted by the store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional
import math

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .models import TimeRange, VoteType

# Wire sentinel the UI sends for "any issue type".
ALL_SENTINEL = "all"
MAX_PAGE_SIZE = 100


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid input"
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class NewComplaint(CamelModel):
    """Caller-supplied fields for a new complaint."""

    latitude: float
    longitude: float
    location: str
    issue_type: str
    title: str
    description: str
    image_url: Optional[str] = None

    @field_validator("latitude", "longitude")
    @classmethod
    def coordinates_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("must be a finite number")
        return v

    @field_validator("location", "issue_type", "title", "description")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "NewComplaint":
        """Validate loosely-typed input, raising the API's ValidationError."""
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc


class ComplaintRead(CamelModel):
    id: int
    latitude: float
    longitude: float
    location: str
    issue_type: str
    title: str
    description: str
    image_url: Optional[str] = None
    upvotes: int
    views: int
    status: str
    created_at: datetime

    @field_validator("created_at", mode="after")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite drops the offset on read; stored values are always UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SummaryFilter(CamelModel):
    location: Optional[str] = None
    time_range: Optional[TimeRange] = None

    @field_validator("location", mode="before")
    @classmethod
    def normalize_location(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("time_range", mode="before")
    @classmethod
    def normalize_time_range(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @classmethod
    def from_query(cls, **params: Any) -> "SummaryFilter":
        try:
            return cls.model_validate(params)
        except PydanticValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc


class ComplaintFilter(SummaryFilter):
    """Optional, conjunctive filter for complaint listings.

    Absent fields mean "no constraint". The wire-level "all" sentinel for the
    issue type is folded into absence here so the store never sees it.
    """

    issue_type: Optional[str] = None
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)

    @field_validator("issue_type", mode="before")
    @classmethod
    def normalize_issue_type(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if isinstance(v, str):
            v = v.strip()
            if v.lower() == ALL_SENTINEL:
                return None
        return v

    @field_validator("limit", mode="after")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        return min(v, MAX_PAGE_SIZE)


class ComplaintDigest(CamelModel):
    """Reduced complaint view fed to the summary generator."""

    issue_type: str
    title: str
    description: str
    upvotes: int


class HeatmapPoint(CamelModel):
    latitude: float
    longitude: float
    count: int


class VoteRequest(CamelModel):
    vote_type: Optional[str] = None

    def as_vote_type(self) -> VoteType:
        try:
            return VoteType(self.vote_type)
        except ValueError as exc:
            raise ValidationError(f"unknown vote type {self.vote_type!r}", public_message="Invalid vote type") from exc


class VoteResponse(BaseModel):
    success: bool = True


class SummaryResponse(BaseModel):
    summary: str


class GeocodeResponse(BaseModel):
    address: str


class IssueTypeRead(BaseModel):
    name: str
    color: str


__all__ = [
    "ALL_SENTINEL",
    "ComplaintDigest",
    "ComplaintFilter",
    "ComplaintRead",
    "GeocodeResponse",
    "HeatmapPoint",
    "MAX_PAGE_SIZE",
    "IssueTypeRead",
    "NewComplaint",
    "SummaryFilter",
    "SummaryResponse",
    "VoteRequest",
    "VoteResponse",
]
