"""Detailed record sets with TTL-maximizing redundant queries.

DoH resolvers report the *remaining* cache life of a record rather than its
authoritative TTL. Issuing the same query several times concurrently raises
the chance that one of them lands on a freshly repopulated cache entry, so
the response with the highest Answer TTL is kept.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from zoneWalk.logging_config import get_logger
from zoneWalk.resolver.hierarchy import ZoneHierarchyResolver, normalize_domain
from zoneWalk.resolver.models import (
    Answer,
    DetailedRecordSet,
    DohResponse,
    RecordType,
    SoaAnswer,
    SoaFields,
)
from zoneWalk.resolver.transport import DohTransport

logger = get_logger("records")

T = TypeVar("T")

DEFAULT_REDUNDANT_QUERIES = 3


async def gather_best(
    factory: Callable[[], Awaitable[T]],
    copies: int,
    metric: Callable[[T], float],
) -> T:
    """
    Run `copies` independent calls of `factory` concurrently and return the
    successful result with the strictly highest `metric` (earliest wins ties).

    A failing call does not cancel its siblings. If every call fails, the
    last error is raised.
    """
    results = await asyncio.gather(*(factory() for _ in range(copies)), return_exceptions=True)
    best: Optional[T] = None
    best_score = 0.0
    last_error: Optional[BaseException] = None
    for result in results:
        if isinstance(result, BaseException):
            last_error = result
            continue
        score = metric(result)
        if best is None or score > best_score:
            best, best_score = result, score
    if best is None:
        raise last_error if last_error is not None else RuntimeError("no queries issued")
    return best


def parse_soa(data: str) -> Optional[SoaFields]:
    """Split SOA RDATA into its seven fields; None if malformed."""
    parts = data.split()
    if len(parts) < 7:
        return None
    try:
        return SoaFields(
            mname=parts[0],
            rname=parts[1],
            serial=int(parts[2]),
            refresh=int(parts[3]),
            retry=int(parts[4]),
            expire=int(parts[5]),
            minimum=int(parts[6]),
        )
    except ValueError:
        return None


def _of_type(response: DohResponse, rtype: RecordType) -> Optional[List[Answer]]:
    if response.answer is None:
        return None
    return [record for record in response.answer if record.type == rtype.code]


class RecordAggregator:
    """Fetches SOA/NS at the zone apex and A/AAAA/CNAME/MX/TXT at the domain."""

    def __init__(
        self,
        transport: DohTransport,
        hierarchy: ZoneHierarchyResolver,
        redundant_queries: int = DEFAULT_REDUNDANT_QUERIES,
    ):
        self.transport = transport
        self.hierarchy = hierarchy
        self.redundant_queries = redundant_queries

    async def query_max_ttl(self, domain: str, rtype: RecordType, endpoint: str) -> DohResponse:
        """Issue redundant concurrent queries and keep the highest-TTL response."""
        return await gather_best(
            lambda: self.transport.query(domain, rtype, endpoint),
            self.redundant_queries,
            DohResponse.max_ttl,
        )

    async def fetch_detailed_records(
        self,
        domain: str,
        endpoint: str,
        zone_apex: Optional[str] = None,
    ) -> DetailedRecordSet:
        """
        Fetch every record type for `domain`. A type whose queries all fail
        is left absent; nothing is raised for partial failure.
        """
        domain = normalize_domain(domain)
        start_time = time.time()
        # find_zone_apex falls back to `domain` itself rather than raising
        apex = zone_apex or await self.hierarchy.find_zone_apex(domain, endpoint)

        plan = [
            (apex, RecordType.SOA),
            (apex, RecordType.NS),
            (domain, RecordType.A),
            (domain, RecordType.AAAA),
            (domain, RecordType.CNAME),
            (domain, RecordType.MX),
            (domain, RecordType.TXT),
        ]
        results = await asyncio.gather(
            *(self.query_max_ttl(name, rtype, endpoint) for name, rtype in plan),
            return_exceptions=True,
        )

        fields = {}
        failed = []
        for (name, rtype), result in zip(plan, results):
            if isinstance(result, BaseException):
                failed.append(rtype.value)
                logger.debug(
                    f"All {rtype.value} queries for {name} failed: {result}",
                    extra={"domain": name, "record_type": rtype.value, "outcome": "error",
                           "error_type": type(result).__name__}
                )
                continue
            if rtype is RecordType.SOA:
                soa = result.first_of(RecordType.SOA)
                if soa is not None:
                    fields["soa"] = SoaAnswer(**soa.model_dump(), parsed=parse_soa(soa.data))
                continue
            answers = _of_type(result, rtype)
            if answers is not None:
                fields[rtype.value.lower()] = answers

        logger.info(
            f"Fetched detailed records for {domain}",
            extra={
                "domain": domain,
                "zone": apex,
                "copies": self.redundant_queries,
                "failures": failed,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "partial" if failed else "success",
            }
        )
        return DetailedRecordSet(**fields)
