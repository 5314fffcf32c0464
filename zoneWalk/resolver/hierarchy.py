"""Zone hierarchy resolution: walk a domain's labels and find its zone cuts."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

import dns.rcode

from zoneWalk.logging_config import get_logger
from zoneWalk.resolver.errors import (
    DomainNotFound,
    NotAZone,
    QueryTimeout,
    TransportError,
    ZoneWalkError,
)
from zoneWalk.resolver.models import RecordType, ZoneNode
from zoneWalk.resolver.public_suffix import PublicSuffixTable, default_table
from zoneWalk.resolver.transport import DohTransport

logger = get_logger("hierarchy")

ROOT = "."
DEFAULT_MAX_CONSECUTIVE_FAILURES = 3

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_domain(domain: str) -> str:
    """
    Lowercase and trim a user-supplied name, dropping any URL scheme, path,
    query or port around it. An explicit trailing dot is preserved.
    """
    cleaned = domain.strip().lower()
    cleaned = _SCHEME_RE.sub("", cleaned)
    cleaned = re.split(r"[/?#]", cleaned, maxsplit=1)[0]
    cleaned = cleaned.rsplit("@", 1)[-1]
    cleaned = cleaned.split(":", 1)[0]
    if not cleaned:
        raise ValueError(f"Invalid domain name: {domain!r}")
    return cleaned


def strip_dot(name: str) -> str:
    """Lowercase and drop one trailing dot ("." itself stays the root)."""
    name = name.lower()
    if name == ROOT:
        return name
    return name[:-1] if name.endswith(".") else name


def _is_delegated(parent_ns: List[str], child_ns: List[str]) -> bool:
    return bool(parent_ns) and bool(child_ns) and not set(parent_ns) & set(child_ns)


@dataclass
class ZoneInfo:
    zone_name: str
    nameservers: List[str]


@dataclass
class _ZoneRecord:
    """Mutable accumulator for one zone while the walk is in progress."""
    zone_name: str
    nameservers: List[str]
    depth: int
    parent: Optional[int]
    domains: List[str] = field(default_factory=list)
    is_delegated: bool = False
    is_cname: bool = False
    cname_target: Optional[str] = None

    def fold(self, name: str) -> None:
        if name not in self.domains:
            self.domains.append(name)


def _assemble(records: List[_ZoneRecord]) -> ZoneNode:
    """Link the flat walk result into an immutable tree.

    A record always comes after its parent in `records`, so building in
    reverse order finishes every child before the node that holds it.
    """
    children: List[List[ZoneNode]] = [[] for _ in records]
    built: List[Optional[ZoneNode]] = [None] * len(records)
    for index in reversed(range(len(records))):
        rec = records[index]
        built[index] = ZoneNode(
            zone_name=rec.zone_name,
            domains=list(rec.domains),
            nameservers=list(rec.nameservers),
            depth=rec.depth,
            is_delegated=rec.is_delegated,
            is_cname=rec.is_cname,
            cname_target=rec.cname_target,
            children=children[index],
        )
        if rec.parent is not None:
            children[rec.parent].insert(0, built[index])
    return built[0]


class ZoneHierarchyResolver:
    """
    Builds the ZoneNode tree for a domain from DoH answers alone.

    The walk is sequential: whether a candidate is a delegated zone depends
    on the nameservers of the zone found just above it.
    """

    def __init__(
        self,
        transport: DohTransport,
        public_suffixes: Optional[PublicSuffixTable] = None,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
    ):
        self.transport = transport
        self.public_suffixes = public_suffixes or default_table()
        self.max_consecutive_failures = max_consecutive_failures

    async def get_nameservers(self, domain: str, endpoint: str) -> List[str]:
        """Sorted, lowercased NS targets for `domain` (empty when none)."""
        response = await self.transport.query(domain, RecordType.NS, endpoint)
        return sorted(
            record.data.lower()
            for record in response.answer or []
            if record.type == RecordType.NS.code
        )

    async def get_cname_target(self, domain: str, endpoint: str) -> Optional[str]:
        """Lowercased CNAME target at `domain`, trailing dot preserved, or None."""
        response = await self.transport.query(domain, RecordType.CNAME, endpoint)
        record = response.first_of(RecordType.CNAME)
        return record.data.lower() if record else None

    async def get_zone_info(self, domain: str, endpoint: str, lenient: bool = False) -> ZoneInfo:
        """
        Decide whether `domain` is a zone apex and fetch its nameservers.

        Raises DomainNotFound on NXDOMAIN and NotAZone when no SOA owned by
        `domain` shows up in either the Answer or the Authority section.
        With `lenient` (used for TLDs) a response with no SOA anywhere still
        counts as a zone.
        """
        response = await self.transport.query(domain, RecordType.SOA, endpoint)
        if response.status == dns.rcode.NXDOMAIN:
            raise DomainNotFound(domain)
        if response.status == dns.rcode.SERVFAIL and not response.answer and not response.authority:
            raise NotAZone(domain, reason="returned a server failure")

        clean = strip_dot(domain)
        soa = response.first_of(RecordType.SOA) or response.first_of(RecordType.SOA, "authority")
        if soa is not None:
            owner = strip_dot(soa.name)
            if owner != clean:
                raise NotAZone(domain, owner=owner)
            zone_name = owner
        elif lenient:
            zone_name = clean
        else:
            raise NotAZone(domain)

        nameservers = await self.get_nameservers(zone_name, endpoint)
        return ZoneInfo(zone_name=zone_name, nameservers=nameservers)

    async def resolve_hierarchy(self, domain: str, endpoint: str) -> ZoneNode:
        """
        Resolve the delegation tree for `domain`, rooted at ".".

        Raises DomainNotFound when the domain itself is NXDOMAIN. Failures
        below the last confirmed zone are absorbed: the affected names are
        folded into the deepest zone reached.
        """
        queried = normalize_domain(domain)
        log = get_logger("hierarchy", {"domain": queried, "endpoint": endpoint})

        probe = await self.transport.query(queried, RecordType.SOA, endpoint)
        if probe.status == dns.rcode.NXDOMAIN:
            log.info(f"Domain {queried} does not exist", extra={"outcome": "nxdomain"})
            raise DomainNotFound(queried)

        root = _ZoneRecord(
            zone_name=ROOT,
            nameservers=await self.get_nameservers(ROOT, endpoint),
            depth=0,
            parent=None,
            domains=[ROOT],
        )
        records = [root]
        if queried == ROOT:
            return _assemble(records)

        clean = strip_dot(queried)
        labels = clean.split(".")
        tld = labels[-1]
        suffix_pair = ".".join(labels[-2:])
        has_public_suffix = len(labels) >= 2 and self.public_suffixes.is_public_suffix(suffix_pair)

        tld_zone = await self._tld_zone(tld, endpoint, log)
        tld_record = _ZoneRecord(
            zone_name=tld_zone.zone_name,
            nameservers=tld_zone.nameservers,
            depth=1,
            parent=0,
            domains=[tld, suffix_pair] if has_public_suffix else [tld],
            is_delegated=True,
        )
        records.append(tld_record)

        start = len(labels) - (3 if has_public_suffix else 2)
        candidates = [".".join(labels[i:]) for i in range(start, -1, -1)]
        await self._walk(candidates, clean, records, endpoint, log)

        log.info(
            f"Resolved zone hierarchy for {queried}",
            extra={"zone": records[-1].zone_name, "depth": max(r.depth for r in records), "outcome": "success"}
        )
        return _assemble(records)

    async def _tld_zone(self, tld: str, endpoint: str, log) -> ZoneInfo:
        try:
            return await self.get_zone_info(tld, endpoint, lenient=True)
        except (DomainNotFound, NotAZone, QueryTimeout, TransportError) as exc:
            log.warning(
                f"Could not confirm TLD zone {tld}: {exc}",
                extra={"tld": tld, "outcome": "degraded", "error_type": type(exc).__name__}
            )
        try:
            nameservers = await self.get_nameservers(tld, endpoint)
        except (QueryTimeout, TransportError):
            nameservers = []
        return ZoneInfo(zone_name=tld, nameservers=nameservers)

    async def _walk(
        self,
        candidates: List[str],
        queried: str,
        records: List[_ZoneRecord],
        endpoint: str,
        log,
    ) -> None:
        parent_index = len(records) - 1
        failures = 0

        for idx, candidate in enumerate(candidates):
            parent = records[parent_index]

            if candidate == queried:
                target = await self._cname_or_none(candidate, endpoint, log)
                if target is not None:
                    parent.fold(candidate)
                    parent.is_cname = True
                    parent.cname_target = target
                    log.debug(
                        f"{candidate} is a CNAME to {target}, folded into {parent.zone_name}",
                        extra={"candidate": candidate, "zone": parent.zone_name, "outcome": "cname"}
                    )
                    continue

            try:
                info = await self.get_zone_info(candidate, endpoint)
            except DomainNotFound:
                log.warning(
                    f"Walk candidate {candidate} does not exist, stopping walk",
                    extra={"candidate": candidate, "zone": parent.zone_name, "outcome": "nxdomain"}
                )
                parent.fold(candidate)
                parent.fold(queried)
                return
            except NotAZone as exc:
                log.debug(str(exc), extra={"candidate": candidate, "zone": parent.zone_name, "outcome": "folded"})
                parent.fold(candidate)
                failures = 0
                continue
            except (QueryTimeout, TransportError) as exc:
                failures += 1
                log.warning(
                    f"Zone lookup for {candidate} failed: {exc}",
                    extra={"candidate": candidate, "failures": failures, "outcome": "error",
                           "error_type": type(exc).__name__}
                )
                if failures >= self.max_consecutive_failures:
                    raise
                parent.fold(candidate)
                continue

            failures = 0
            delegated = _is_delegated(parent.nameservers, info.nameservers)
            if idx == 0 or delegated:
                records.append(_ZoneRecord(
                    zone_name=info.zone_name,
                    nameservers=info.nameservers,
                    depth=parent.depth + 1,
                    parent=parent_index,
                    domains=[info.zone_name],
                    is_delegated=idx > 0 and delegated,
                ))
                parent_index = len(records) - 1
                log.debug(
                    f"Zone cut at {info.zone_name}",
                    extra={"candidate": candidate, "zone": info.zone_name, "depth": parent.depth + 1,
                           "outcome": "delegated" if delegated else "zone"}
                )
            else:
                parent.fold(candidate)

    async def _cname_or_none(self, domain: str, endpoint: str, log) -> Optional[str]:
        try:
            return await self.get_cname_target(domain, endpoint)
        except (QueryTimeout, TransportError) as exc:
            log.debug(
                f"CNAME lookup for {domain} failed: {exc}",
                extra={"candidate": domain, "outcome": "error", "error_type": type(exc).__name__}
            )
            return None

    async def find_zone_apex(self, domain: str, endpoint: str) -> str:
        """
        Zone name of the deepest node on the first-child chain of the tree.
        Falls back to `domain` unchanged when resolution fails.
        """
        try:
            node = await self.resolve_hierarchy(domain, endpoint)
        except (ZoneWalkError, ValueError) as exc:
            logger.warning(
                f"Failed to find zone apex for {domain}, using domain as-is: {exc}",
                extra={"domain": domain, "outcome": "fallback", "error_type": type(exc).__name__}
            )
            return domain
        while node.children:
            node = node.children[0]
        return node.zone_name
