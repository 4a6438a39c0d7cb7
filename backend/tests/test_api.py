import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _stats(client):
    return client.get("/session/plot").json()["layout"]["meta"]


def test_recent_routes_are_seeded_with_demo_hops(client):
    res = client.get("/routes/recent")
    assert res.status_code == 200
    routes = res.json()["routes"]
    assert len(routes) == 4
    assert {"fromLabel", "toLabel", "minutesSaved", "durationMinutes"} <= set(routes[0])


def test_leaderboard_orders_by_popularity(client):
    routes = client.get("/routes/leaderboard").json()["routes"]
    assert [r["id"] for r in routes] == ["demo-blr-airport", "demo-bom-pune"]


def test_plan_publishes_and_activates_the_route(client):
    res = client.post(
        "/plan",
        json={
            "from": {"name": "Bangalore", "lat": 12.9716, "lng": 77.5946},
            "to": {"name": "Mumbai", "lat": 19.0760, "lng": 72.8777},
        },
    )
    assert res.status_code == 200
    body = res.json()
    assert 200 <= body["times"]["flyingMinutes"] <= 205
    assert body["times"]["drivingSource"] == "estimate"
    assert len(body["path"]) == 101
    assert body["drivingPath"] is None

    meta = _stats(client)
    assert meta["session"]["activeRoute"]["id"] == body["route"]["id"]
    assert meta["stats"]["markers"] == 1

    recent = client.get("/routes/recent").json()["routes"]
    assert recent[0]["id"] == body["route"]["id"]


def test_plan_rejects_out_of_range_coordinates(client):
    res = client.post(
        "/plan",
        json={"from": {"lat": 95.0, "lng": 0.0}, "to": {"lat": 0.0, "lng": 0.0}},
    )
    assert res.status_code == 422


def test_select_bumps_popularity_and_activates(client):
    res = client.post("/routes/demo-bom-pune/select")
    assert res.status_code == 200
    body = res.json()
    assert body["activeRoute"]["id"] == "demo-bom-pune"
    assert body["activeRoute"]["popularity"] == 2

    assert client.post("/routes/nope/select").status_code == 404


def test_set_and_clear_active_route(client):
    res = client.post("/session/active", json={"routeId": "demo-del-gurgaon"})
    assert res.status_code == 200
    active = res.json()
    # 3 other demo routes stay public, the active one is drawn once
    assert active["overlays"] == 4

    cleared = client.delete("/session/active").json()
    assert cleared["activeRoute"] is None
    assert cleared["overlays"] == 4
    assert _stats(client)["stats"]["markers"] == 0

    assert client.post("/session/active", json={"routeId": "nope"}).status_code == 404


def test_refresh_and_zoom(client):
    res = client.post("/session/refresh").json()
    assert res["ok"] is True
    assert res["error"] is None

    assert client.post("/session/zoom", json={"zoom": 2}).json() == {"zoom": 2.0}
    assert _stats(client)["stats"]["layers"] > 0


def test_stream_without_active_route(client):
    res = client.get("/session/stream")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    assert "no_active_route" in res.text


def test_stream_with_active_route_sends_poses(client):
    client.post("/session/active", json={"routeId": "demo-blr-airport"})
    res = client.get("/session/stream", params={"frames": 2})
    assert res.text.count("event: pose") == 2
    assert "max_frames" in res.text
