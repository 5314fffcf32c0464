"""API-scoped resolver state.

One ResolverState (rate-limit window, RDAP server cache, HTTP session) is
created at startup and shared by every request.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status

from zoneWalk.config import ZoneWalkConfig
from zoneWalk.logging_config import get_logger
from zoneWalk.resolver.state import ResolverState

logger = get_logger("api")

_state: Optional[ResolverState] = None


async def init_resources(config: Optional[ZoneWalkConfig] = None) -> ResolverState:
    """Create the shared resolver state if it does not exist yet."""
    global _state
    if _state is None:
        try:
            config = config or ZoneWalkConfig.from_env()
        except (FileNotFoundError, ValueError) as exc:
            logger.error(
                f"Invalid configuration, falling back to defaults: {exc}",
                extra={"outcome": "error", "error_type": type(exc).__name__}
            )
            config = ZoneWalkConfig()
        _state = ResolverState.create(config)
        logger.info(
            "Resolver state initialized",
            extra={"state": "ready", "endpoint": config.endpoint_for()}
        )
    return _state


async def close_resources() -> None:
    """Close the shared HTTP session."""
    global _state
    if _state is not None:
        await _state.close()
        _state = None


async def state_dep() -> ResolverState:
    if _state is None:
        await init_resources()
    if _state is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Resolver unavailable")
    return _state
