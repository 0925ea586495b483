import dataclasses
from datetime import datetime, timezone
from typing import Awaitable, Callable

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from civic_api.config import Settings, get_settings
from civic_api.database import Database
from civic_api.main import create_app
from civic_api.models import Complaint
from civic_api.store import ComplaintStore


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@pytest.fixture
def settings(tmp_path) -> Settings:
    return dataclasses.replace(
        get_settings(),
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_provider="local",
        local_storage_path=tmp_path / "storage",
        openrouter_api_key="test-openrouter-key",
        allowed_origins=("*",),
        allowed_hosts=("*",),
        sentry_dsn=None,
    )


@pytest_asyncio.fixture
async def db(settings):
    database = Database(settings.database_url)
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def store(db):
    async with db.session() as session:
        yield ComplaintStore(session)


@pytest.fixture
def complaint_payload() -> dict:
    return {
        "latitude": 31.5204,
        "longitude": 74.3587,
        "location": "Main Boulevard, Gulberg III, Lahore",
        "issue_type": "Road Damage",
        "title": "Pothole near the roundabout",
        "description": "Deep pothole causing traffic to swerve into the next lane.",
    }


@pytest.fixture
def make_complaint(db, complaint_payload) -> Callable[..., Awaitable[Complaint]]:
    """Insert a row directly, allowing fields the API never accepts (created_at, upvotes)."""

    async def _create(**overrides) -> Complaint:
        async with db.session() as session:
            complaint = Complaint(**{**complaint_payload, **overrides})
            session.add(complaint)
            await session.commit()
            await session.refresh(complaint)
            return complaint

    return _create


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
