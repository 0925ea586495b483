from datetime import datetime, timezone
from typing import Optional
import enum

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IssueType(str, enum.Enum):
    """Advisory complaint categories offered by the reporting form.

    The store accepts any non-empty issue type; these values only drive the
    form options and the map legend.
    """

    road_damage = "Road Damage"
    garbage_collection = "Garbage Collection"
    water_supply = "Water Supply"
    sewerage = "Sewerage"
    traffic_issues = "Traffic Issues"
    electricity = "Electricity"
    crime = "Crime"


# Map legend colours per category.
ISSUE_TYPE_COLORS = {
    IssueType.road_damage: "#d73027",
    IssueType.garbage_collection: "#1a9850",
    IssueType.water_supply: "#4575b4",
    IssueType.sewerage: "#FF69B4",
    IssueType.traffic_issues: "#B8860B",
    IssueType.electricity: "#fee08b",
    IssueType.crime: "#36454F",
}


class VoteType(str, enum.Enum):
    up = "up"
    down = "down"


class TimeRange(str, enum.Enum):
    week = "week"
    month = "month"
    all = "all"


class Complaint(SQLModel, table=True):
    __tablename__ = "complaints"
    __table_args__ = (CheckConstraint("upvotes >= 0", name="ck_complaints_upvotes_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    latitude: float
    longitude: float
    location: str
    issue_type: str
    title: str
    description: str
    # Only set when an attached image reached object storage.
    image_url: Optional[str] = None
    upvotes: int = Field(default=0)
    views: int = Field(default=0)
    # Reserved for a future resolution workflow; nothing mutates it yet.
    status: str = Field(default="open")
    created_at: Optional[datetime] = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


__all__ = [
    "Complaint",
    "IssueType",
    "ISSUE_TYPE_COLORS",
    "TimeRange",
    "VoteType",
    "utcnow",
]
