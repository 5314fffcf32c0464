"""DNS-over-HTTPS (JSON) transport with per-query timeout and shared rate limit."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Optional, Union

import aiohttp
from pydantic import ValidationError

from zoneWalk.logging_config import get_logger
from zoneWalk.resolver import RateLimiter
from zoneWalk.resolver.errors import QueryTimeout, RateLimited, TransportError
from zoneWalk.resolver.models import DohResponse, RecordType

logger = get_logger("transport")

DEFAULT_TIMEOUT_SECONDS = 10.0
DOH_ACCEPT = "application/dns-json"


class DohTransport:
    """
    Issues single HTTP GETs against DoH resolvers and other JSON services.

    Performs no retries and no caching; every call spends one unit of the
    shared RateLimiter budget. A timeout cancels only the request it is
    attached to.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.rate_limiter = rate_limiter
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _admit(self, domain: str) -> None:
        if not self.rate_limiter.admit():
            delay = self.rate_limiter.reset_delay_ms()
            logger.warning(
                f"Rate limit exceeded, rejecting query for {domain}",
                extra={"domain": domain, "reset_delay_ms": delay, "outcome": "rate_limited"}
            )
            raise RateLimited(delay, domain=domain)
        self.rate_limiter.record()

    async def fetch_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        label: Optional[str] = None,
        record_type: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Any:
        """
        GET `url` and decode its JSON body.

        Raises RateLimited, QueryTimeout, or TransportError. `label` names the
        subject of the request in error messages (defaults to the URL).
        """
        subject = label or url
        self._admit(subject)

        session = await self._get_session()
        limit = timeout_seconds or self.timeout_seconds
        timeout = aiohttp.ClientTimeout(total=limit)
        start_time = time.time()
        try:
            async with session.get(url, params=params, headers=headers, timeout=timeout) as resp:
                if resp.status < 200 or resp.status >= 300:
                    logger.debug(
                        f"HTTP {resp.status} from {url} for {subject}",
                        extra={"url": url, "domain": subject, "status_code": resp.status, "outcome": "http_error"}
                    )
                    raise TransportError(subject, status=resp.status, reason=resp.reason)
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            logger.debug(
                f"Query for {subject} timed out after {limit}s",
                extra={"url": url, "domain": subject, "record_type": record_type, "outcome": "timeout"}
            )
            raise QueryTimeout(subject, record_type) from exc
        except (aiohttp.ClientError, ValueError) as exc:
            logger.debug(
                f"Query for {subject} failed: {exc}",
                extra={"url": url, "domain": subject, "outcome": "error", "error_type": type(exc).__name__}
            )
            raise TransportError(subject, reason=str(exc) or type(exc).__name__) from exc

        logger.debug(
            f"Fetched {url} for {subject}",
            extra={
                "url": url,
                "domain": subject,
                "record_type": record_type,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            }
        )
        return data

    async def query(
        self,
        domain: str,
        record_type: Union[RecordType, str],
        endpoint: str,
    ) -> DohResponse:
        """Issue one DoH JSON query: GET {endpoint}?name={domain}&type={TYPE}."""
        rtype = RecordType(record_type).value
        data = await self.fetch_json(
            endpoint,
            params={"name": domain, "type": rtype},
            headers={"Accept": DOH_ACCEPT},
            label=domain,
            record_type=rtype,
        )
        try:
            return DohResponse.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                f"Malformed DoH response for {domain} {rtype}",
                extra={"domain": domain, "record_type": rtype, "endpoint": endpoint, "outcome": "malformed"}
            )
            raise TransportError(domain, reason="malformed DoH response") from exc

    async def close(self) -> None:
        """Close the aiohttp session if this transport created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "DohTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
