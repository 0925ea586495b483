"""OpenStreetMap Nominatim lookups used by the reporting form."""

from __future__ import annotations

from typing import Any, Dict, List
import logging

import httpx

from .config import Settings
from .errors import UpstreamUnavailable
from .observability import upstream_failures_total

logger = logging.getLogger("civic_api.geocoding")


def fallback_address(lat: float, lng: float) -> str:
    return f"{lat}, {lng}"


class NominatimGeocoder:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._base_url = settings.nominatim_url.rstrip("/")
        self._headers = {"User-Agent": settings.nominatim_user_agent}
        self._country_codes = settings.geocode_country_codes

    async def reverse(self, lat: float, lng: float) -> str:
        """Human-readable address for a point; falls back to "lat, lng"."""
        params = {
            "format": "json",
            "lat": lat,
            "lon": lng,
            "zoom": 18,
            "addressdetails": 1,
        }
        try:
            resp = await self._client.get(f"{self._base_url}/reverse", params=params, headers=self._headers)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            upstream_failures_total.labels(service="geocode").inc()
            logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lng, exc)
            return fallback_address(lat, lng)

        address = data.get("display_name") if isinstance(data, dict) else None
        return address or fallback_address(lat, lng)

    async def search(self, query: str) -> List[Dict[str, Any]]:
        params = {
            "format": "json",
            "addressdetails": 1,
            "limit": 5,
            "accept-language": "en",
            "q": query,
        }
        if self._country_codes:
            params["countrycodes"] = self._country_codes
        try:
            resp = await self._client.get(f"{self._base_url}/search", params=params, headers=self._headers)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            upstream_failures_total.labels(service="search").inc()
            logger.error("Location search failed for %r: %s", query, exc)
            raise UpstreamUnavailable(f"Nominatim search failed: {exc}") from exc

        if not isinstance(data, list):
            return []
        return data


__all__ = ["NominatimGeocoder", "fallback_address"]
