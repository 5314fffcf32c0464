import pytest

from conftest import FakeResponse, FakeSession
from zoneWalk.resolver import RateLimiter
from zoneWalk.resolver import rdap as rdap_module
from zoneWalk.resolver.models import RdapError, RegistrationInfo
from zoneWalk.resolver.rdap import (
    FETCH_FAILED,
    RDAP_BOOTSTRAP_URL,
    SERVER_NOT_FOUND,
    RdapResolver,
    RdapServerCache,
    parse_registration,
)
from zoneWalk.resolver.transport import DohTransport

BOOTSTRAP = {
    "services": [
        [["com", "net"], ["https://rdap.verisign.com/com/v1/", "https://rdap.backup.example/"]],
        [["UK"], ["https://rdap.nominet.uk/uk/"]],
    ]
}

EXAMPLE_COM = {
    "ldhName": "EXAMPLE.COM",
    "status": ["client transfer prohibited", "active"],
    "entities": [
        {"roles": ["technical"], "vcardArray": ["vcard", [["fn", {}, "text", "Someone Else"]]]},
        {
            "roles": ["registrar"],
            "vcardArray": ["vcard", [["version", {}, "text", "4.0"], ["fn", {}, "text", "Example Registrar Inc."]]],
        },
    ],
    "events": [
        {"eventAction": "registration", "eventDate": "2000-01-01T00:00:00Z"},
        {"eventAction": "last changed", "eventDate": "2024-08-14T07:01:44Z"},
        {"eventAction": "expiration", "eventDate": "2025-01-01T00:00:00Z"},
    ],
    "nameservers": [{"ldhName": "ns1.example.com"}, {"ldhName": "ns2.example.com"}],
}


@pytest.fixture
def rdap_session():
    return FakeSession({
        RDAP_BOOTSTRAP_URL: BOOTSTRAP,
        "https://rdap.verisign.com/com/v1/domain/example.com": EXAMPLE_COM,
        "https://rdap.nominet.uk/uk/domain/example.co.uk": FakeResponse(status=404, reason="Not Found"),
    })


@pytest.fixture
def cache():
    return RdapServerCache()


@pytest.fixture
def rdap(rdap_session, cache):
    return RdapResolver(DohTransport(RateLimiter(), session=rdap_session), cache)


async def test_query_registration(rdap):
    info = await rdap.query_registration("example.com")
    assert isinstance(info, RegistrationInfo)
    assert info.domain == "EXAMPLE.COM"
    assert info.registrar == "Example Registrar Inc."
    assert info.registration_date == "2000-01-01T00:00:00Z"
    assert info.expiration_date == "2025-01-01T00:00:00Z"
    assert "active" in info.status
    assert info.nameservers == ["ns1.example.com", "ns2.example.com"]


async def test_unknown_tld_is_not_an_exception(rdap, cache):
    result = await rdap.query_registration("site.zzz")
    assert result == RdapError(error=SERVER_NOT_FOUND)
    assert cache.get("zzz") is None


async def test_http_error_is_reported(rdap):
    result = await rdap.query_registration("example.co.uk")
    assert result == RdapError(error="RDAP query failed: 404")


async def test_connection_failure_is_reported(rdap):
    result = await rdap.query_registration("other.com")
    assert result == RdapError(error=FETCH_FAILED)


async def test_bootstrap_fetched_once_per_tld(rdap, rdap_session, cache):
    await rdap.query_registration("example.com")
    await rdap.query_registration("example.com")
    assert rdap_session.count(RDAP_BOOTSTRAP_URL) == 1
    assert cache.get("COM") == ["https://rdap.verisign.com/com/v1/", "https://rdap.backup.example/"]


async def test_tld_match_ignores_case(rdap):
    assert await rdap.get_rdap_server("uk") == "https://rdap.nominet.uk/uk/"


async def test_bootstrap_failure_means_no_server(cache):
    session = FakeSession({RDAP_BOOTSTRAP_URL: FakeResponse(status=500, reason="Server Error")})
    rdap = RdapResolver(DohTransport(RateLimiter(), session=session), cache)
    assert await rdap.query_registration("example.com") == RdapError(error=SERVER_NOT_FOUND)
    assert len(cache) == 0


async def test_rate_limit_is_reported(rdap_session, cache):
    rdap = RdapResolver(DohTransport(RateLimiter(max_queries=1), session=rdap_session), cache)
    result = await rdap.query_registration("example.com")
    assert isinstance(result, RdapError)
    assert result.error.startswith("Rate limit exceeded")


def test_parse_registration_tolerates_missing_pieces():
    info = parse_registration("bare.com", {"entities": [{"roles": ["registrar"]}], "events": "junk"})
    assert info.domain == "bare.com"
    assert info.registrar is None
    assert info.registration_date is None
    assert info.status == []
    assert info.nameservers == []


async def test_empty_server_list_is_not_cached(cache):
    session = FakeSession({RDAP_BOOTSTRAP_URL: {"services": [[["empty"], []]]}})
    rdap = RdapResolver(DohTransport(RateLimiter(), session=session), cache)
    assert await rdap.query_registration("x.empty") == RdapError(error=SERVER_NOT_FOUND)
    assert cache.get("empty") is None
    await rdap.query_registration("x.empty")
    assert session.count(RDAP_BOOTSTRAP_URL) == 2


async def test_mistyped_fields_do_not_raise(rdap_session, rdap):
    rdap_session.routes["https://rdap.verisign.com/com/v1/domain/odd.com"] = {
        "ldhName": 42,
        "status": "active",
        "entities": [{"roles": ["registrar"], "vcardArray": {"a": 1, "b": 2}}],
        "events": [
            {"eventAction": "registration", "eventDate": 946684800},
            {"eventAction": "expiration", "eventDate": "2030-01-01T00:00:00Z"},
        ],
        "nameservers": [{"ldhName": None}, {"ldhName": "ns1.odd.com"}, "ns2.odd.com"],
    }
    info = await rdap.query_registration("odd.com")
    assert isinstance(info, RegistrationInfo)
    assert info.domain == "odd.com"
    assert info.registrar is None
    assert info.registration_date is None
    assert info.expiration_date == "2030-01-01T00:00:00Z"
    assert info.status == []
    assert info.nameservers == ["ns1.odd.com"]


def test_registrar_name_must_be_text():
    data = {"entities": [{"roles": ["registrar"], "vcardArray": ["vcard", [["fn", {}, "text", ["x"]]]]}]}
    assert parse_registration("example.com", data).registrar is None


async def test_unparseable_registration_is_reported(rdap, monkeypatch):
    def reject(domain, data):
        return RegistrationInfo(domain=domain, status=data)

    monkeypatch.setattr(rdap_module, "parse_registration", reject)
    assert await rdap.query_registration("example.com") == RdapError(error=FETCH_FAILED)
