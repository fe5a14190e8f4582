from __future__ import annotations

import asyncio

import httpx
import pytest

from gps_locater.errors import GeocodingError
from gps_locater.geocoder import NominatimGeocoder, placemark_from_address

DAMRAK = {
    "place_id": 1,
    "display_name": "Damrak, Amsterdam, North Holland, Netherlands",
    "address": {
        "road": "Damrak",
        "city": "Amsterdam",
        "state": "North Holland",
        "country": "Netherlands",
    },
}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_geocoder(handler):
    calls = []

    def counting(request):
        calls.append(request)
        return handler(request)

    sleep = RecordingSleep()
    geocoder = NominatimGeocoder(
        base_url="https://nominatim.test/",
        transport=httpx.MockTransport(counting),
        sleep=sleep,
    )
    return geocoder, calls, sleep


def test_reverse_geocode_returns_placemark():
    geocoder, calls, _ = make_geocoder(lambda request: httpx.Response(200, json=DAMRAK))

    placemarks = asyncio.run(geocoder.reverse_geocode(52.3731, 4.8922))

    assert len(placemarks) == 1
    assert placemarks[0].street == "Damrak"
    assert placemarks[0].place == "Amsterdam, North Holland"
    request = calls[0]
    assert request.url.path == "/reverse"
    assert request.url.params["lat"] == "52.3731"
    assert request.url.params["format"] == "jsonv2"
    assert request.headers["User-Agent"] == "gps-locater/1.0"


def test_no_address_means_no_candidates():
    geocoder, _, _ = make_geocoder(lambda request: httpx.Response(200, json={"place_id": 2}))

    assert asyncio.run(geocoder.reverse_geocode(0.0, -30.0)) == []


def test_error_payload_raises():
    geocoder, _, _ = make_geocoder(lambda request: httpx.Response(200, json={"error": "Unable to geocode"}))

    with pytest.raises(GeocodingError, match="Unable to geocode"):
        asyncio.run(geocoder.reverse_geocode(0.0, -30.0))


def test_client_error_is_not_retried():
    geocoder, calls, _ = make_geocoder(lambda request: httpx.Response(403))

    with pytest.raises(GeocodingError):
        asyncio.run(geocoder.reverse_geocode(52.0, 4.0))
    assert len(calls) == 1


def test_rate_limited_response_is_retried():
    responses = [httpx.Response(429), httpx.Response(200, json=DAMRAK)]
    geocoder, calls, sleep = make_geocoder(lambda request: responses.pop(0))

    placemarks = asyncio.run(geocoder.reverse_geocode(52.3731, 4.8922))

    assert placemarks[0].street == "Damrak"
    assert len(calls) == 2
    assert 2.0 in sleep.delays


def test_gives_up_after_three_attempts():
    geocoder, calls, sleep = make_geocoder(lambda request: httpx.Response(503))

    with pytest.raises(GeocodingError):
        asyncio.run(geocoder.reverse_geocode(52.0, 4.0))
    assert len(calls) == 3
    assert 2.0 in sleep.delays
    assert 4.0 in sleep.delays


def test_connection_errors_are_wrapped():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    geocoder, calls, _ = make_geocoder(handler)

    with pytest.raises(GeocodingError):
        asyncio.run(geocoder.reverse_geocode(52.0, 4.0))
    assert len(calls) == 3


def test_invalid_json_raises():
    geocoder, _, _ = make_geocoder(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(GeocodingError):
        asyncio.run(geocoder.reverse_geocode(52.0, 4.0))


def test_back_to_back_requests_are_spaced():
    geocoder, _, sleep = make_geocoder(lambda request: httpx.Response(200, json=DAMRAK))

    async def scenario():
        await geocoder.reverse_geocode(52.0, 4.0)
        await geocoder.reverse_geocode(52.0, 4.0)

    asyncio.run(scenario())
    assert len(sleep.delays) >= 1
    assert 0 < sleep.delays[-1] <= 1.0


@pytest.mark.parametrize(
    "address, street, place",
    [
        ({"pedestrian": "Kalverstraat", "town": "Haarlem", "county": "Kennemerland"},
         "Kalverstraat", "Haarlem, Kennemerland"),
        ({"village": "Giethoorn"}, None, "Giethoorn"),
        ({"road": "A1"}, "A1", None),
        ({"country": "Antarctica"}, None, None),
    ],
)
def test_placemark_from_address(address, street, place):
    placemark = placemark_from_address(address)
    assert placemark.street == street
    assert placemark.place == place
