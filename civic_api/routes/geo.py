"""Proxies to the geocoding provider so the browser never calls it directly."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_geocoder
from ..errors import ValidationError
from ..geocoding import NominatimGeocoder
from ..schemas import GeocodeResponse

router = APIRouter(prefix="/api", tags=["Geocoding"])


@router.get("/geocode", response_model=GeocodeResponse)
async def reverse_geocode(
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
):
    if lat is None or lng is None:
        raise ValidationError(
            "geocode called without coordinates",
            public_message="Latitude and longitude are required",
        )
    return GeocodeResponse(address=await geocoder.reverse(lat, lng))


@router.get("/search-location", response_model=List[Dict[str, Any]])
async def search_location(
    q: Optional[str] = Query(None),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
):
    if not q or not q.strip():
        raise ValidationError("search-location called without a query", public_message="Missing query")
    return await geocoder.search(q.strip())
