"""Common FastAPI dependencies.

Everything here reads from `app.state`, which the application lifespan
populates, so tests can swap any collaborator through
`app.dependency_overrides`.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from .config import Settings
from .geocoding import NominatimGeocoder
from .image_storage import ImageStorage
from .store import ComplaintStore
from .summary import SummaryGenerator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.db.session() as session:
        yield session


def get_store(session: AsyncSession = Depends(get_session)) -> ComplaintStore:
    return ComplaintStore(session)


def get_image_storage(request: Request) -> ImageStorage:
    return request.app.state.image_storage


def get_geocoder(request: Request) -> NominatimGeocoder:
    return request.app.state.geocoder


def get_summary_generator(request: Request) -> SummaryGenerator:
    return request.app.state.summary_generator


__all__ = [
    "get_app_settings",
    "get_geocoder",
    "get_image_storage",
    "get_session",
    "get_store",
    "get_summary_generator",
]
