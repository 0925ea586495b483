import dataclasses

import httpx
import pytest
import respx
from httpx import Response

from civic_api.errors import UpstreamUnavailable
from civic_api.geocoding import NominatimGeocoder

NOMINATIM = "http://test-nominatim"


@pytest.fixture
def geocoder(settings):
    settings = dataclasses.replace(settings, nominatim_url=NOMINATIM)
    return NominatimGeocoder(httpx.AsyncClient(), settings)


@pytest.mark.asyncio
async def test_reverse_returns_display_name(geocoder, settings):
    async with respx.mock(base_url=NOMINATIM) as respx_mock:
        route = respx_mock.get("/reverse").mock(
            return_value=Response(200, json={"display_name": "Mall Road, Lahore, Pakistan"})
        )

        address = await geocoder.reverse(31.5, 74.3)

        assert address == "Mall Road, Lahore, Pakistan"
        request = route.calls.last.request
        assert request.url.params["lat"] == "31.5"
        assert request.url.params["lon"] == "74.3"
        assert request.url.params["format"] == "json"
        assert request.headers["User-Agent"] == settings.nominatim_user_agent


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        Response(500, text="boom"),
        Response(200, json={"error": "Unable to geocode"}),
        Response(200, text="<html>not json</html>"),
    ],
)
async def test_reverse_falls_back_to_coordinates(geocoder, response):
    async with respx.mock(base_url=NOMINATIM) as respx_mock:
        respx_mock.get("/reverse").mock(return_value=response)

        assert await geocoder.reverse(31.5, 74.3) == "31.5, 74.3"


@pytest.mark.asyncio
async def test_reverse_falls_back_on_connection_error(geocoder):
    async with respx.mock(base_url=NOMINATIM) as respx_mock:
        respx_mock.get("/reverse").mock(side_effect=httpx.ConnectError)

        assert await geocoder.reverse(24.86, 67.0) == "24.86, 67.0"


@pytest.mark.asyncio
async def test_search_passes_country_codes(geocoder, settings):
    results = [{"display_name": "Liberty Market, Lahore", "lat": "31.51", "lon": "74.34"}]
    async with respx.mock(base_url=NOMINATIM) as respx_mock:
        route = respx_mock.get("/search").mock(return_value=Response(200, json=results))

        assert await geocoder.search("liberty") == results
        params = route.calls.last.request.url.params
        assert params["q"] == "liberty"
        assert params["countrycodes"] == settings.geocode_country_codes
        assert params["limit"] == "5"


@pytest.mark.asyncio
async def test_search_failure_raises_upstream_unavailable(geocoder):
    async with respx.mock(base_url=NOMINATIM) as respx_mock:
        respx_mock.get("/search").mock(return_value=Response(503))

        with pytest.raises(UpstreamUnavailable):
            await geocoder.search("liberty")
