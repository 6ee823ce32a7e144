import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from app.api.deps import PlayerRegistry, get_road_router, set_registry
from app.main import app
from app.api.routes.routes import stream
from app.models.playback import Coordinate
from app.services.route_player import RoutePlayer, build_snapshot


class StubRouter:
    def __init__(self, legs=None):
        self.legs = legs
        self.calls = 0

    async def fetch_legs(self, waypoints):
        self.calls += 1
        if self.legs is not None:
            return self.legs
        return [None] * (len(waypoints) - 1)


WAYPOINTS = [
    {"latitude": 52.5200, "longitude": 13.4050, "timestamp": "2024-05-01T08:00:00Z"},
    {"latitude": 52.5210, "longitude": 13.4070, "timestamp": "2024-05-01T08:00:10Z"},
    {"latitude": 52.5230, "longitude": 13.4100, "timestamp": "2024-05-01T08:00:30Z"},
]


@pytest.fixture
def stub_router():
    return StubRouter(
        legs=[
            [Coordinate(52.5200, 13.4050), Coordinate(52.5205, 13.4061), Coordinate(52.5210, 13.4070)],
            None,
        ]
    )


@pytest.fixture
def client(stub_router):
    set_registry(PlayerRegistry())
    app.dependency_overrides[get_road_router] = lambda: stub_router
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create(client, waypoints=WAYPOINTS, snap=True):
    r = client.post("/routes", json={"waypoints": waypoints, "snap_to_roads": snap})
    assert r.status_code == 200, r.text
    return r.json()


def test_create_route_summary(client, stub_router):
    body = create(client)
    assert stub_router.calls == 1
    assert body["animatable"] is True
    assert body["total_duration_s"] == 30.0
    assert body["stop_count"] == 3
    assert [leg["snapped"] for leg in body["legs"]] == [True, False]
    assert [leg["duration_s"] for leg in body["legs"]] == [10.0, 20.0]
    assert body["point_count"] == 5 == len(body["planned_path"])
    assert body["bbox_wgs84"]["min_lat"] == 52.52
    assert body["route_version"].startswith("sha256:")

    again = client.get(f"/routes/{body['route_id']}")
    assert again.json()["route_version"] == body["route_version"]


def test_straight_lines_skip_router(client, stub_router):
    body = create(client, snap=False)
    assert stub_router.calls == 0
    assert body["point_count"] == 4


def test_pose_at_scenario(client):
    rid = create(client, snap=False)["route_id"]
    r = client.get(f"/routes/{rid}/pose", params={"elapsed": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["pose"]["leg_index"] == 0
    assert body["pose"]["leg_fraction"] == pytest.approx(0.5)
    assert body["pose"]["coordinate"]["lat"] == pytest.approx(52.5205)
    assert body["stop_number"] == 1
    assert len(body["traveled_path"]) == 2


def test_commands(client):
    rid = create(client)["route_id"]
    r = client.post(f"/routes/{rid}/speed", json={"multiplier": 4})
    assert r.json()["speed"] == 4.0
    assert client.post(f"/routes/{rid}/speed", json={"multiplier": 50}).status_code == 422

    r = client.post(f"/routes/{rid}/play")
    assert r.status_code == 200 and r.json()["playing"] is True
    r = client.post(f"/routes/{rid}/pause")
    assert r.json()["playing"] is False

    r = client.post(f"/routes/{rid}/seek", json={"elapsed_s": 20})
    frame = r.json()
    assert frame["elapsed_s"] == 20.0
    assert frame["stop_number"] == 2
    assert frame["progress"]["stop_count"] == 3

    r = client.post(f"/routes/{rid}/seek", json={"index": 4})
    assert r.json()["elapsed_s"] == pytest.approx(30.0)
    assert r.json()["finished"] is True

    r = client.post(f"/routes/{rid}/reset")
    frame = r.json()
    assert frame["elapsed_s"] == 0.0
    assert frame["stop_number"] == 1
    assert frame["traveled_path"] == []
    assert client.get(f"/routes/{rid}/state").json()["playing"] is False


def test_reload_mid_playback_swaps_route(client, stub_router):
    body = create(client)
    rid = body["route_id"]
    client.post(f"/routes/{rid}/speed", json={"multiplier": 2})
    client.post(f"/routes/{rid}/play")
    client.post(f"/routes/{rid}/seek", json={"elapsed_s": 15})

    longer = WAYPOINTS + [{"latitude": 52.5250, "longitude": 13.4150, "timestamp": "2024-05-01T08:01:30Z"}]
    r = client.put(f"/routes/{rid}", json={"waypoints": longer, "snap_to_roads": False})
    assert r.status_code == 200, r.text
    reloaded = r.json()
    assert reloaded["route_id"] == rid
    assert reloaded["route_version"] != body["route_version"]
    assert reloaded["total_duration_s"] == 90.0
    assert reloaded["stop_count"] == 4

    state = client.get(f"/routes/{rid}/state").json()
    assert state["elapsed_s"] == 0.0
    assert state["playing"] is False
    assert state["speed"] == 2.0
    assert state["route_version"] == reloaded["route_version"]
    assert state["stop_number"] == 1


def test_reload_unknown_route(client):
    assert client.put("/routes/nope", json={"waypoints": WAYPOINTS}).status_code == 404


def test_seek_requires_one_target(client):
    rid = create(client)["route_id"]
    assert client.post(f"/routes/{rid}/seek", json={}).status_code == 422
    assert client.post(f"/routes/{rid}/seek", json={"elapsed_s": 1, "index": 1}).status_code == 422


def test_not_animatable_route(client):
    body = create(client, waypoints=WAYPOINTS[:1])
    assert body["animatable"] is False
    assert body["legs"] == []
    rid = body["route_id"]
    assert client.post(f"/routes/{rid}/play").status_code == 409
    assert client.get(f"/routes/{rid}/state").status_code == 409
    assert client.get(f"/routes/{rid}/pose", params={"elapsed": 0}).status_code == 409


def test_unknown_route(client):
    assert client.get("/routes/nope/state").status_code == 404
    assert client.post("/routes/nope/play").status_code == 404


def test_out_of_order_timestamps_are_clamped(client):
    wps = [dict(w) for w in WAYPOINTS]
    wps[1]["timestamp"] = "2024-05-01T08:00:40Z"
    body = create(client, waypoints=wps, snap=False)
    assert [leg["duration_s"] for leg in body["legs"]] == [40.0, 0.0]
    assert body["total_duration_s"] == 40.0


def test_invalid_coordinates_rejected(client):
    bad = [{"latitude": 95.0, "longitude": 0.0, "timestamp": "2024-05-01T08:00:00Z"}]
    assert client.post("/routes", json={"waypoints": bad}).status_code == 422


class DisconnectingSocket:
    """WebSocket double whose client goes away after a short while."""

    def __init__(self, after=0.1):
        self.after = after
        self.sent = []
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, data):
        self.sent.append(json.loads(data))

    async def receive(self):
        await asyncio.sleep(self.after)
        return {"type": "websocket.disconnect", "code": 1000}

    async def close(self):
        pass


def test_stream_unsubscribes_when_paused_client_leaves(three_stops):
    registry = PlayerRegistry()
    set_registry(registry)
    player = RoutePlayer(build_snapshot(three_stops))
    player.seek(12.0)
    registry.add("r1", player)
    ws = DisconnectingSocket()

    async def scenario():
        task = asyncio.ensure_future(stream(ws, "r1"))
        await asyncio.sleep(0.05)
        assert len(player._sinks) == 1
        await asyncio.wait_for(task, timeout=2.0)

    asyncio.run(scenario())
    assert player._sinks == []
    assert [m["type"] for m in ws.sent] == ["frame"]
    assert ws.sent[0]["frame"]["elapsed_s"] == 12.0


def test_stream_sends_stop_changes_then_frames(three_stops):
    registry = PlayerRegistry()
    set_registry(registry)
    player = RoutePlayer(build_snapshot(three_stops))
    registry.add("r2", player)
    ws = DisconnectingSocket(after=0.3)

    async def scenario():
        task = asyncio.ensure_future(stream(ws, "r2"))
        await asyncio.sleep(0.05)
        player.seek(20.0)
        await asyncio.wait_for(task, timeout=2.0)

    asyncio.run(scenario())
    types = [m["type"] for m in ws.sent]
    assert types == ["frame", "stop_change", "frame"]
    assert ws.sent[1]["stop"]["stop_number"] == 2
