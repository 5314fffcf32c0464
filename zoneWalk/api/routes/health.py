"""Health, query budget and resolver listing endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from zoneWalk.api.models import ok
from zoneWalk.api.utils.state import state_dep
from zoneWalk.resolver.state import ResolverState

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(state: ResolverState = Depends(state_dep)):
    """Remaining query budget and RDAP cache size."""
    budget = state.rate_limiter.get_stats()
    return ok(
        {
            "status": "healthy" if budget["remaining"] > 0 else "rate_limited",
            "rate_limit": budget,
            "rdap_cached_tlds": len(state.rdap_cache),
        }
    )


@router.get("/resolvers")
async def resolvers(state: ResolverState = Depends(state_dep)):
    return ok(
        {
            "default": state.config.default_resolver,
            "resolvers": [r.model_dump() for r in state.config.resolvers],
        }
    )
