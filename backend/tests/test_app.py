from fastapi.concurrency import run_in_threadpool

from floodwatch.websocket import wards as ward_ws


def test_root(client):
    body = client.get("/").json()
    assert body["success"] is True
    assert "/api/wards" in body["endpoints"]


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_path_id_must_be_integer(client):
    response = client.get("/api/wards/abc")
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_websocket_streams_nearby_wards(client, make_ward, session_factory, monkeypatch):
    make_ward()
    monkeypatch.setattr(ward_ws, "SessionLocal", session_factory)

    with client.websocket_connect("/ws/wards") as websocket:
        websocket.send_json({"latitude": 21.01, "longitude": 105.81, "radius_km": 2})
        reply = websocket.receive_json()
        assert [w["ward_name"] for w in reply["wards"]] == ["Phuc Xa"]
        assert reply["wards"][0]["risk_level"] == "High"

        websocket.send_json({"longitude": 105.81})
        assert "error" in websocket.receive_json()


def test_websocket_runs_lookup_in_threadpool(client, make_ward, session_factory, monkeypatch):
    make_ward()
    monkeypatch.setattr(ward_ws, "SessionLocal", session_factory)
    offloaded = []

    async def recording_threadpool(func, *args):
        offloaded.append(func)
        return await run_in_threadpool(func, *args)

    monkeypatch.setattr(ward_ws, "run_in_threadpool", recording_threadpool)

    with client.websocket_connect("/ws/wards") as websocket:
        websocket.send_json({"latitude": 21.01, "longitude": 105.81})
        assert len(websocket.receive_json()["wards"]) == 1

    assert offloaded == [ward_ws.get_wards_nearby]
