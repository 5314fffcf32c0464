"""RDAP registration lookups via the IANA bootstrap registry."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from zoneWalk.logging_config import get_logger
from zoneWalk.resolver.errors import RateLimited, ZoneWalkError
from zoneWalk.resolver.models import RdapError, RegistrationInfo
from zoneWalk.resolver.transport import DohTransport

logger = get_logger("rdap")

RDAP_BOOTSTRAP_URL = "https://data.iana.org/rdap/dns.json"
SERVER_NOT_FOUND = "RDAP server not found for this TLD"
FETCH_FAILED = "Failed to fetch RDAP data"


class RdapServerCache:
    """
    TLD -> RDAP base URLs, populated on first lookup per TLD.

    Entries are never invalidated; negative results are never stored.
    """

    def __init__(self) -> None:
        self._servers: Dict[str, List[str]] = {}

    def get(self, tld: str) -> Optional[List[str]]:
        return self._servers.get(tld.lower())

    def set(self, tld: str, servers: List[str]) -> None:
        self._servers[tld.lower()] = list(servers)

    def clear(self) -> None:
        """Clear all cached servers (primarily for testing)."""
        self._servers.clear()

    def __len__(self) -> int:
        return len(self._servers)


def _tld(domain: str) -> str:
    return domain.rstrip(".").rsplit(".", 1)[-1].lower()


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _registrar_name(data: Dict[str, Any]) -> Optional[str]:
    """Formatted name ("fn") from the vCard of the entity with role registrar."""
    entities = data.get("entities")
    for entity in entities if isinstance(entities, list) else []:
        if not isinstance(entity, dict) or not isinstance(entity.get("roles"), list):
            continue
        if "registrar" not in entity["roles"]:
            continue
        vcard = entity.get("vcardArray")
        if not isinstance(vcard, list) or len(vcard) < 2 or not isinstance(vcard[1], list):
            return None
        for item in vcard[1]:
            if isinstance(item, list) and len(item) >= 4 and item[0] == "fn":
                return _str_or_none(item[3])
        return None
    return None


def _event_date(data: Dict[str, Any], action: str) -> Optional[str]:
    events = data.get("events")
    for event in events if isinstance(events, list) else []:
        if isinstance(event, dict) and event.get("eventAction") == action:
            return _str_or_none(event.get("eventDate"))
    return None


def parse_registration(domain: str, data: Dict[str, Any]) -> RegistrationInfo:
    """Normalize an RDAP domain object; missing or mistyped pieces come back as None/empty."""
    nameservers = data.get("nameservers")
    status = data.get("status")
    return RegistrationInfo(
        domain=_str_or_none(data.get("ldhName")) or domain,
        registrar=_registrar_name(data),
        registration_date=_event_date(data, "registration"),
        expiration_date=_event_date(data, "expiration"),
        status=[s for s in status if isinstance(s, str)] if isinstance(status, list) else [],
        nameservers=[
            ns["ldhName"]
            for ns in (nameservers if isinstance(nameservers, list) else [])
            if isinstance(ns, dict) and isinstance(ns.get("ldhName"), str)
        ],
    )


class RdapResolver:
    """Looks up registration metadata, keyed by the registrable zone apex."""

    def __init__(
        self,
        transport: DohTransport,
        cache: RdapServerCache,
        bootstrap_url: str = RDAP_BOOTSTRAP_URL,
        timeout_seconds: Optional[float] = None,
    ):
        self.transport = transport
        self.cache = cache
        self.bootstrap_url = bootstrap_url
        self.timeout_seconds = timeout_seconds

    async def get_rdap_server(self, tld: str) -> Optional[str]:
        """First RDAP base URL for `tld`, consulting the bootstrap on a cache miss."""
        cached = self.cache.get(tld)
        if cached is not None:
            logger.debug(f"RDAP server cache hit for {tld}", extra={"tld": tld, "outcome": "cache_hit"})
            return cached[0] if cached else None

        try:
            data = await self.transport.fetch_json(self.bootstrap_url, label=f"RDAP bootstrap ({tld})",
                                                  timeout_seconds=self.timeout_seconds)
        except RateLimited:
            raise
        except ZoneWalkError as exc:
            logger.warning(
                f"RDAP bootstrap fetch failed: {exc}",
                extra={"tld": tld, "url": self.bootstrap_url, "outcome": "error", "error_type": type(exc).__name__}
            )
            return None
        if not isinstance(data, dict):
            return None

        # {"services": [[["tld1", "tld2"], ["server1", "server2"]], ...]}
        for service in data.get("services") or []:
            if not isinstance(service, list) or len(service) != 2:
                continue
            tlds, servers = service
            if not isinstance(tlds, list) or not isinstance(servers, list):
                continue
            if tld.lower() in [str(t).lower() for t in tlds]:
                servers = [s for s in servers if isinstance(s, str)]
                if not servers:
                    return None
                self.cache.set(tld, servers)
                return servers[0]
        return None

    async def query_registration(self, domain: str) -> Union[RegistrationInfo, RdapError]:
        """Registration info for `domain`, or an RdapError; never raises."""
        tld = _tld(domain)
        try:
            server = await self.get_rdap_server(tld)
        except RateLimited as exc:
            return RdapError(error=exc.message)
        if not server:
            logger.info(
                f"No RDAP server for TLD {tld}",
                extra={"domain": domain, "tld": tld, "outcome": "not_found"}
            )
            return RdapError(error=SERVER_NOT_FOUND)

        url = f"{server.rstrip('/')}/domain/{domain}"
        start_time = time.time()
        try:
            data = await self.transport.fetch_json(url, label=domain, timeout_seconds=self.timeout_seconds)
        except RateLimited as exc:
            return RdapError(error=exc.message)
        except ZoneWalkError as exc:
            status = getattr(exc, "status", None)
            logger.warning(
                f"RDAP query for {domain} failed: {exc}",
                extra={"domain": domain, "server": server, "status_code": status, "outcome": "error",
                       "error_type": type(exc).__name__}
            )
            if status is not None:
                return RdapError(error=f"RDAP query failed: {status}")
            return RdapError(error=FETCH_FAILED)

        if not isinstance(data, dict):
            return RdapError(error=FETCH_FAILED)

        try:
            info = parse_registration(domain, data)
        except ValidationError as exc:
            logger.warning(
                f"Unusable RDAP data for {domain}: {exc}",
                extra={"domain": domain, "server": server, "outcome": "malformed", "error_type": type(exc).__name__}
            )
            return RdapError(error=FETCH_FAILED)
        logger.info(
            f"Fetched RDAP data for {domain}",
            extra={
                "domain": domain,
                "server": server,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            }
        )
        return info
