"""Process-wide resolver state, built once and handed to every component."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import aiohttp

from zoneWalk.config import ZoneWalkConfig
from zoneWalk.logging_config import get_logger
from zoneWalk.resolver import RateLimiter
from zoneWalk.resolver.hierarchy import ZoneHierarchyResolver
from zoneWalk.resolver.public_suffix import PublicSuffixTable
from zoneWalk.resolver.rdap import RdapResolver, RdapServerCache
from zoneWalk.resolver.records import RecordAggregator
from zoneWalk.resolver.transport import DohTransport

logger = get_logger("resolver")


@dataclass
class ResolverState:
    """
    The shared query budget, RDAP server cache and the components wired
    around them. Construct once at process start; close() on shutdown.
    """
    config: ZoneWalkConfig
    rate_limiter: RateLimiter
    rdap_cache: RdapServerCache
    transport: DohTransport
    hierarchy: ZoneHierarchyResolver
    records: RecordAggregator
    rdap: RdapResolver

    @classmethod
    def create(
        cls,
        config: Optional[ZoneWalkConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        public_suffixes: Optional[PublicSuffixTable] = None,
    ) -> "ResolverState":
        config = config or ZoneWalkConfig()
        rate_limiter = RateLimiter(
            max_queries=config.rate_limit.max_queries,
            window_ms=config.rate_limit.window_ms,
        )
        rdap_cache = RdapServerCache()
        transport = DohTransport(rate_limiter, timeout_seconds=config.dns_timeout_seconds, session=session)
        hierarchy = ZoneHierarchyResolver(
            transport,
            public_suffixes=public_suffixes,
            max_consecutive_failures=config.walk.max_consecutive_failures,
        )
        logger.debug(
            "Resolver state created",
            extra={"state": "created", "component": "resolver"}
        )
        return cls(
            config=config,
            rate_limiter=rate_limiter,
            rdap_cache=rdap_cache,
            transport=transport,
            hierarchy=hierarchy,
            records=RecordAggregator(transport, hierarchy, redundant_queries=config.records.redundant_queries),
            rdap=RdapResolver(
                transport,
                rdap_cache,
                bootstrap_url=config.rdap.bootstrap_url,
                timeout_seconds=config.rdap.timeout_seconds,
            ),
        )

    async def close(self) -> None:
        await self.transport.close()
