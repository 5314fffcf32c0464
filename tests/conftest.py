"""Shared fakes: an in-memory stand-in for aiohttp.ClientSession."""
import asyncio
import copy
import os
from collections import defaultdict, deque

os.environ.setdefault("ZONEWALK_LOG_FILE", "")

import aiohttp
import pytest

from doh_responses import DOH_RESPONSES
from zoneWalk.config import ZoneWalkConfig
from zoneWalk.resolver import RateLimiter
from zoneWalk.resolver.public_suffix import PublicSuffixTable
from zoneWalk.resolver.state import ResolverState
from zoneWalk.resolver.transport import DohTransport

ENDPOINT = "https://doh.test/dns-query"


class FakeResponse:
    def __init__(self, status=200, payload=None, reason="OK", exc=None):
        self.status = status
        self.reason = reason
        self._payload = payload
        self._exc = exc

    async def __aenter__(self):
        if self._exc is not None:
            raise self._exc
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return copy.deepcopy(self._payload)


class FakeSession:
    """
    Routes GETs to canned bodies.

    DoH queries are keyed "name:TYPE" from their params, everything else by
    URL. A value may be a dict (200 with that body), a FakeResponse, an
    exception to raise, or a list of those served in turn.
    """

    def __init__(self, routes=None):
        self.routes = routes if routes is not None else {}
        self.calls = []
        self.closed = False
        self._served = defaultdict(int)

    @staticmethod
    def key_for(url, params=None):
        if params and "name" in params:
            return f"{params['name']}:{params['type']}"
        return url

    def count(self, key):
        return sum(1 for call in self.calls if call == key)

    def get(self, url, params=None, headers=None, timeout=None):
        key = self.key_for(url, params)
        self.calls.append(key)
        if key not in self.routes:
            return FakeResponse(exc=aiohttp.ClientConnectionError(f"no route for {key}"))
        route = self.routes[key]
        if isinstance(route, list):
            index = self._served[key]
            self._served[key] += 1
            route = route[min(index, len(route) - 1)]
        if isinstance(route, FakeResponse):
            return route
        if isinstance(route, BaseException):
            return FakeResponse(exc=route)
        return FakeResponse(payload=route)

    async def close(self):
        self.closed = True


def timeout_response():
    return FakeResponse(exc=asyncio.TimeoutError())


@pytest.fixture
def doh_routes():
    return copy.deepcopy(DOH_RESPONSES)


@pytest.fixture
def session(doh_routes):
    return FakeSession(doh_routes)


@pytest.fixture
def suffixes():
    return PublicSuffixTable(["co.uk", "org.uk", "ac.uk"])


@pytest.fixture
def state(session, suffixes):
    return ResolverState.create(ZoneWalkConfig(), session=session, public_suffixes=suffixes)


@pytest.fixture
def transport(session):
    return DohTransport(RateLimiter(max_queries=1000), session=session)


@pytest.fixture
def endpoint():
    return ENDPOINT
