import asyncio

import httpx
import pytest

from geo.types import GeoPoint
from planning.directions import DirectionsError, MapboxDirectionsClient, parse_directions
from planning.timing import compare_times, estimated_driving_minutes

ORIGIN = GeoPoint(lat=12.9716, lng=77.5946)
DEST = GeoPoint(lat=13.1986, lng=77.7066)


def _client(handler) -> MapboxDirectionsClient:
    return MapboxDirectionsClient(
        access_token="pk.test",
        base_url="https://directions.test/driving",
        transport=httpx.MockTransport(handler),
    )


def test_client_requests_geojson_route_and_parses_it():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "code": "Ok",
                "routes": [
                    {
                        "duration": 2400.0,
                        "geometry": {
                            "type": "LineString",
                            "coordinates": [[77.5946, 12.9716], [77.65, 13.05], [77.7066, 13.1986]],
                        },
                    }
                ],
            },
        )

    result = asyncio.run(_client(handler).directions(ORIGIN, DEST))

    assert seen["path"] == "/driving/77.5946,12.9716;77.7066,13.1986"
    assert seen["params"] == {"geometries": "geojson", "access_token": "pk.test"}
    assert result.duration_s == 2400.0
    assert result.path[0] == ORIGIN
    assert result.coords()[-1] == (77.7066, 13.1986)


def test_client_http_error_propagates_as_httpx_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Not Authorized"})

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_client(handler).directions(ORIGIN, DEST))


def test_client_non_json_body_is_a_directions_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(DirectionsError):
        asyncio.run(_client(handler).directions(ORIGIN, DEST))


def test_parse_rejects_empty_routes():
    with pytest.raises(DirectionsError, match="NoRoute"):
        parse_directions({"code": "NoRoute", "routes": []})


def test_parse_rejects_missing_duration():
    with pytest.raises(DirectionsError):
        parse_directions({"routes": [{"geometry": {"coordinates": [[0, 0], [1, 1]]}}]})


def test_parse_rejects_malformed_coordinates():
    with pytest.raises(DirectionsError):
        parse_directions(
            {"routes": [{"duration": 10, "geometry": {"coordinates": [[0, 0], ["x", 1]]}}]}
        )


def test_parse_tolerates_missing_geometry():
    result = parse_directions({"routes": [{"duration": 60}]})
    assert result.duration_s == 60.0
    assert result.path == []


@pytest.mark.parametrize(
    "payload",
    [
        {"routes": [{"duration": "n/a", "geometry": {"coordinates": []}}]},
        {"routes": [{"duration": float("nan")}]},
        {"routes": ["not-a-route"]},
        {"routes": [{"duration": 60, "geometry": "broken"}]},
        {"routes": [{"duration": 60, "geometry": {"coordinates": 5}}]},
        {"routes": {"duration": 60}},
        ["not", "an", "object"],
    ],
)
def test_parse_wraps_every_malformed_payload(payload):
    with pytest.raises(DirectionsError):
        parse_directions(payload)


def test_malformed_success_response_falls_back_to_estimate():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"routes": [{"duration": "n/a", "geometry": {"coordinates": []}}]}
        )

    times = asyncio.run(compare_times(ORIGIN, DEST, _client(handler)))

    assert times.driving_source == "estimate"
    assert times.driving_minutes == estimated_driving_minutes(ORIGIN, DEST)
