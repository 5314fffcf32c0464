import aiohttp
import pytest

from conftest import timeout_response
from zoneWalk.resolver.records import gather_best, parse_soa


def soa_with_ttl(ttl):
    return {
        "Status": 0,
        "Answer": [
            {"name": "example.com", "type": 6, "TTL": ttl,
             "data": "ns1.example-dns.com. admin.example.com. 2024110101 7200 900 1209600 86400"},
        ],
    }


def answers(name, code, *values, ttl=300):
    return {"Status": 0, "Answer": [{"name": name, "type": code, "TTL": ttl, "data": v} for v in values]}


@pytest.fixture
def records(state):
    return state.records


async def test_keeps_highest_ttl_response(records, endpoint, doh_routes, session):
    doh_routes["example.com:SOA"] = [soa_with_ttl(58), soa_with_ttl(60), soa_with_ttl(59)]
    result = await records.fetch_detailed_records("example.com", endpoint, zone_apex="example.com")
    assert result.soa.ttl == 60
    assert session.count("example.com:SOA") == 3


async def test_soa_is_parsed(records, endpoint):
    result = await records.fetch_detailed_records("example.com", endpoint, zone_apex="example.com")
    parsed = result.soa.parsed
    assert parsed.mname == "ns1.example-dns.com."
    assert parsed.rname == "admin.example.com."
    assert parsed.serial == 2024110101
    assert parsed.refresh == 7200
    assert parsed.retry == 900
    assert parsed.expire == 1209600
    assert parsed.minimum == 86400


async def test_record_types_use_apex_or_domain(records, endpoint, doh_routes, session):
    doh_routes["mail.google.com:A"] = answers("mail.google.com", 1, "142.250.1.17")
    doh_routes["mail.google.com:MX"] = answers("mail.google.com", 15, "10 smtp.google.com.")
    result = await records.fetch_detailed_records("mail.google.com", endpoint)

    assert result.soa.name == "google.com"
    assert [ns.data for ns in result.ns] == [f"ns{i}.google.com." for i in (1, 2, 3, 4)]
    assert [a.data for a in result.a] == ["142.250.1.17"]
    assert result.mx[0].data == "10 smtp.google.com."
    assert result.cname == []
    assert "google.com:SOA" in session.calls
    assert "mail.google.com:NS" not in session.calls


async def test_missing_types_are_absent(records, endpoint):
    result = await records.fetch_detailed_records("example.com", endpoint, zone_apex="example.com")
    assert result.a is None
    assert result.aaaa is None
    assert result.txt is None
    assert result.ns is not None


async def test_one_failed_copy_is_tolerated(records, endpoint, doh_routes):
    doh_routes["example.com:TXT"] = [
        timeout_response(),
        answers("example.com", 16, '"v=spf1 -all"', ttl=120),
        aiohttp.ClientConnectionError("reset"),
    ]
    result = await records.fetch_detailed_records("example.com", endpoint, zone_apex="example.com")
    assert result.txt[0].data == '"v=spf1 -all"'
    assert result.txt[0].ttl == 120


async def test_answer_filters_other_types(records, endpoint, doh_routes):
    doh_routes["www.example.com:A"] = {
        "Status": 0,
        "Answer": [
            {"name": "www.example.com", "type": 5, "TTL": 300, "data": "example.com."},
            {"name": "example.com", "type": 1, "TTL": 300, "data": "93.184.216.34"},
        ],
    }
    result = await records.fetch_detailed_records("www.example.com", endpoint, zone_apex="example.com")
    assert [a.data for a in result.a] == ["93.184.216.34"]


async def test_malformed_soa_keeps_raw_answer(records, endpoint, doh_routes):
    doh_routes["example.com:SOA"] = {
        "Status": 0,
        "Answer": [{"name": "example.com", "type": 6, "TTL": 60, "data": "ns1.example-dns.com. admin"}],
    }
    result = await records.fetch_detailed_records("example.com", endpoint, zone_apex="example.com")
    assert result.soa.data == "ns1.example-dns.com. admin"
    assert result.soa.parsed is None


async def test_apex_failure_yields_empty_set(records, endpoint):
    result = await records.fetch_detailed_records("unknown.example", endpoint)
    assert result.model_dump(exclude_none=True) == {}


async def test_gather_best_raises_last_error_when_all_fail():
    async def fail():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await gather_best(fail, 3, len)


async def test_gather_best_prefers_first_on_tie():
    values = iter(["ab", "cd", "e"])

    async def next_value():
        return next(values)

    assert await gather_best(next_value, 3, len) == "ab"


def test_parse_soa():
    assert parse_soa("a. b. 1 2 3 4 5").serial == 1
    assert parse_soa("a. b. 1 2 3") is None
    assert parse_soa("a. b. one 2 3 4 5") is None


async def test_url_style_input_is_normalized(records, endpoint, doh_routes, session):
    doh_routes["example.com:A"] = answers("example.com", 1, "93.184.216.34")
    result = await records.fetch_detailed_records("https://Example.com/", endpoint, zone_apex="example.com")
    assert [a.data for a in result.a] == ["93.184.216.34"]
    assert "https://Example.com/:A" not in session.calls
