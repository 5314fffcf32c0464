"""Zone hierarchy endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from zoneWalk.api.models import flatten_tree, ok
from zoneWalk.api.utils.state import state_dep
from zoneWalk.resolver.state import ResolverState

router = APIRouter(prefix="/zones", tags=["zones"])


@router.get("/{domain}")
async def zone_tree(
    domain: str,
    resolver: Optional[str] = Query(None, description="Resolver id or DoH endpoint URL"),
    flat: bool = Query(False, description="Return a flat node list instead of a tree"),
    state: ResolverState = Depends(state_dep),
):
    """Delegation tree for `domain`, rooted at "."."""
    endpoint = state.config.endpoint_for(resolver)
    tree = await state.hierarchy.resolve_hierarchy(domain, endpoint)
    if flat:
        return ok([item.model_dump() for item in flatten_tree(tree)])
    return ok(tree.model_dump())


@router.get("/{domain}/apex")
async def zone_apex(
    domain: str,
    resolver: Optional[str] = Query(None, description="Resolver id or DoH endpoint URL"),
    state: ResolverState = Depends(state_dep),
):
    endpoint = state.config.endpoint_for(resolver)
    apex = await state.hierarchy.find_zone_apex(domain, endpoint)
    return ok({"domain": domain, "zone_apex": apex})
