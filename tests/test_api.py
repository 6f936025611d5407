import pytest
from fastapi.testclient import TestClient

import utils.push_id as push_id_module
from main import app
from utils.push_id import PushIDCodec


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _cookie_header(response):
    return "; ".join(h.split(";", 1)[0] for h in response.headers.get_list("set-cookie"))


# --- Session ---

def test_session_round_trip(client):
    client.cookies.clear()
    first = client.get("/api/session")
    assert first.status_code == 200
    body = first.json()
    assert body["seqID"] == "1-1"
    assert body["changes"] == {"isNewClient": True, "isNewSession": True}
    assert len(first.headers.get_list("set-cookie")) == 8

    client.cookies.clear()
    second = client.post("/api/session", headers={"cookie": _cookie_header(first)})
    assert second.status_code == 200
    data = second.json()
    assert data["cID"] == body["cID"]
    assert data["seqID"] == "1-2"
    assert data["oldState"]["eID"] == body["eID"]


def test_session_clear(client):
    response = client.delete("/api/session")
    assert response.status_code == 200
    assert response.json() == {"cleared": ["cID", "sID", "eID", "seqID"]}
    headers = response.headers.get_list("set-cookie")
    assert len(headers) == 8
    assert all("01 Jan 1970" in h for h in headers)


# --- Push IDs ---

def test_new_id_legacy_and_tagged(client):
    legacy = client.post("/api/ids", json={"time": 1000})
    assert legacy.status_code == 200
    data = legacy.json()
    assert data["timestamp"] == 1000
    assert data["stub"] is None
    assert len(data["id"]) == 20
    assert data["date"].startswith("1970-01-01T00:00:01")

    tagged = client.post("/api/ids", json={"time": 1000, "stub": "order", "length": 16})
    data = tagged.json()
    assert data["stub"] == "order"
    assert len(data["randomness"]) == 16
    assert data["id"] == f"{data['encoded_time']}-order-{data['randomness']}"


def test_new_id_accepts_iso_dates(client):
    response = client.post("/api/ids", json={"time": "1970-01-01T00:00:01Z"})
    assert response.status_code == 200
    assert response.json()["timestamp"] == 1000


def test_new_id_with_data_is_deterministic(client):
    first = client.post("/api/ids", json={"time": 5, "data": {"a": 1, "b": 2}}).json()
    second = client.post("/api/ids", json={"time": 5, "data": {"b": 2, "a": 1}}).json()
    assert first["id"] == second["id"]

    null_first = client.post("/api/ids", json={"time": 5, "data": None}).json()
    null_second = client.post("/api/ids", json={"time": 5, "data": None}).json()
    assert null_first["id"] == null_second["id"]


def test_new_id_rejects_out_of_range_time(client):
    assert client.post("/api/ids", json={"time": -1}).status_code == 422


def test_new_id_rejects_delimiter_in_randomness(client):
    response = client.post("/api/ids", json={"time": 1000, "randomness": "ab-cd-ef"})
    assert response.status_code == 422


def test_length_below_minimum_is_clamped(client):
    data = client.post("/api/ids", json={"time": 1000, "length": 0}).json()
    assert len(data["randomness"]) == 12
    hashed = client.post("/api/ids/hash", json={"data": "x", "length": 0})
    assert hashed.status_code == 200
    assert hashed.json()["length"] == 12


def test_previous_id(client, monkeypatch):
    monkeypatch.setattr(push_id_module, "_codec", PushIDCodec())
    assert client.get("/api/ids/previous").status_code == 404

    created = client.post("/api/ids", json={"stub": "x"}).json()
    previous = client.get("/api/ids/previous")
    assert previous.status_code == 200
    assert previous.json()["id"] == created["id"]


def test_decode_id(client):
    created = client.post("/api/ids", json={"time": 1234, "stub": "cID"}).json()
    response = client.get(f"/api/ids/{created['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["timestamp"] == 1234
    assert data["stub"] == "cID"
    assert data["randomness"] == created["randomness"]


def test_decode_rejects_garbage(client):
    assert client.get("/api/ids/abc").status_code == 422
    assert client.get("/api/ids/!!!!!!!!abcdefghijkl").status_code == 422


def test_hash_endpoint(client):
    first = client.post("/api/ids/hash", json={"data": {"a": 1, "b": 2}, "length": 5})
    second = client.post("/api/ids/hash", json={"data": {"b": 2, "a": 1}})
    assert first.status_code == 200
    assert first.json()["length"] == 12
    assert first.json()["hash"] == second.json()["hash"]


# --- Internal ---

def test_health(client):
    data = client.get("/api/health").json()
    assert data["status"] == "healthy"
    assert data["session_timeout_ms"] == 30 * 60 * 1000
    assert data["randomness_length"] >= 12


def test_metrics(client):
    client.get("/api/session")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "# TYPE pushsession_events_total counter" in response.text
    assert "pushsession_ids_generated_total" in response.text
    assert "pushsession_uptime_seconds" in response.text


def test_root(client):
    assert client.get("/").json()["service"] == "PushSession"


def test_cors_allows_any_origin_without_credentials(client):
    client.cookies.clear()
    response = client.get("/", headers={"origin": "https://tracked.example"})
    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers
