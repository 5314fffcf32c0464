"""Error taxonomy for the resolution engine.

Every error carries a short message naming the offending domain and the
reason, suitable for showing to a user as-is.
"""
from __future__ import annotations

import math
from typing import Optional


class ZoneWalkError(Exception):
    """Base class for all resolution engine errors."""

    def __init__(self, message: str, domain: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.domain = domain


class DomainNotFound(ZoneWalkError):
    """The queried name answered NXDOMAIN."""

    def __init__(self, domain: str):
        super().__init__(f"Domain {domain} does not exist", domain=domain)


class RateLimited(ZoneWalkError):
    """The shared query budget is exhausted."""

    def __init__(self, reset_delay_ms: int, domain: Optional[str] = None):
        self.reset_delay_ms = reset_delay_ms
        seconds = math.ceil(reset_delay_ms / 1000)
        super().__init__(f"Rate limit exceeded. Please wait {seconds} seconds.", domain=domain)

    @property
    def retry_after(self) -> int:
        """Whole seconds until a query will be admitted again."""
        return math.ceil(self.reset_delay_ms / 1000)


class QueryTimeout(ZoneWalkError):
    """A single query did not complete within the transport timeout."""

    def __init__(self, domain: str, record_type: Optional[str] = None):
        self.record_type = record_type
        label = f"{domain} ({record_type})" if record_type else domain
        super().__init__(f"DNS query for {label} timed out", domain=domain)


class TransportError(ZoneWalkError):
    """Non-success HTTP status, or a connection-level failure (status None)."""

    def __init__(self, domain: str, status: Optional[int] = None, reason: Optional[str] = None):
        self.status = status
        self.reason = reason
        if status is not None:
            detail = f"HTTP {status}"
        else:
            detail = reason or "connection error"
        super().__init__(f"DNS query for {domain} failed: {detail}", domain=domain)


class NotAZone(ZoneWalkError):
    """Internal: the name exists but is not its own zone apex."""

    def __init__(self, domain: str, owner: Optional[str] = None, reason: Optional[str] = None):
        self.owner = owner
        if owner:
            message = f"Domain {domain} is not a zone, belongs to {owner}"
        else:
            message = f"Domain {domain} {reason or 'does not have SOA record'}"
        super().__init__(message, domain=domain)
