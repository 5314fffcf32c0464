import pytest
from fastapi.testclient import TestClient

from zoneWalk.api.server import app
from zoneWalk.api.utils.state import state_dep
from zoneWalk.config import ZoneWalkConfig
from zoneWalk.resolver.rdap import RDAP_BOOTSTRAP_URL
from zoneWalk.resolver.state import ResolverState


@pytest.fixture
def client(state):
    app.dependency_overrides[state_dep] = lambda: state
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json() == {"status": "ok", "service": "zonewalk-api"}


def test_zone_tree(client):
    resp = client.get("/zones/staging.example.com")
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"]
    body = resp.json()
    assert body["status"] == "ok"
    tree = body["data"]
    assert tree["zone_name"] == "."
    assert tree["children"][0]["children"][0]["children"][0]["is_delegated"] is True


def test_zone_tree_flat(client):
    body = client.get("/zones/mail.google.com", params={"flat": "true"}).json()
    assert [(n["zone_name"], n["parent"]) for n in body["data"]] == [
        (".", None), ("com", "."), ("google.com", "com"),
    ]
    assert body["data"][2]["domains"] == ["google.com", "mail.google.com"]


def test_zone_apex(client):
    body = client.get("/zones/mail.google.com/apex").json()
    assert body["data"] == {"domain": "mail.google.com", "zone_apex": "google.com"}


def test_not_found_maps_to_404(client):
    resp = client.get("/zones/thisdoesnotexist.invalid")
    assert resp.status_code == 404
    assert resp.json() == {"status": "error", "detail": "Domain thisdoesnotexist.invalid does not exist"}


def test_transport_error_maps_to_502(client):
    resp = client.get("/zones/unrouted.example")
    assert resp.status_code == 502
    assert resp.json()["status"] == "error"


def test_rate_limit_maps_to_429(session, suffixes):
    config = ZoneWalkConfig(rate_limit={"max_queries": 1})
    limited = ResolverState.create(config, session=session, public_suffixes=suffixes)
    app.dependency_overrides[state_dep] = lambda: limited
    try:
        resp = TestClient(app).get("/zones/example.com")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"


def test_records(client):
    body = client.get("/records/example.com", params={"zone_apex": "example.com"}).json()
    assert body["data"]["soa"]["parsed"]["serial"] == 2024110101
    assert "a" not in body["data"]


def test_registration_error_envelope(client, doh_routes):
    doh_routes[RDAP_BOOTSTRAP_URL] = {"services": []}
    body = client.get("/registration/example.com").json()
    assert body == {"status": "error", "detail": "RDAP server not found for this TLD"}


def test_registration(client, doh_routes):
    doh_routes[RDAP_BOOTSTRAP_URL] = {"services": [[["com"], ["https://rdap.test/"]]]}
    doh_routes["https://rdap.test/domain/google.com"] = {"ldhName": "google.com", "status": ["active"]}
    body = client.get("/registration/mail.google.com").json()
    assert body["status"] == "ok"
    assert body["data"]["domain"] == "google.com"


def test_resolvers(client):
    body = client.get("/resolvers").json()
    assert body["data"]["default"] == "cloudflare"
    assert {r["id"] for r in body["data"]["resolvers"]} == {"cloudflare", "google"}


def test_health(client):
    client.get("/zones/example.com")
    data = client.get("/health").json()["data"]
    assert data["status"] == "healthy"
    assert data["rate_limit"]["remaining"] < 100
    assert data["rdap_cached_tlds"] == 0


def test_registration_with_malformed_rdap_body(client, doh_routes):
    doh_routes[RDAP_BOOTSTRAP_URL] = {"services": [[["com"], ["https://rdap.test/"]]]}
    doh_routes["https://rdap.test/domain/example.com"] = {
        "entities": [{"roles": ["registrar"], "vcardArray": {"a": 1, "b": 2}}],
        "events": [{"eventAction": "registration", "eventDate": 946684800}],
    }
    resp = client.get("/registration/example.com")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["registrar"] is None
    assert data["registration_date"] is None
