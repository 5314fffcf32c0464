"""RDAP registration endpoint."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from zoneWalk.api.models import err, ok
from zoneWalk.api.utils.state import state_dep
from zoneWalk.resolver.models import RdapError
from zoneWalk.resolver.state import ResolverState

router = APIRouter(prefix="/registration", tags=["registration"])


@router.get("/{domain}")
async def registration(
    domain: str,
    resolver: Optional[str] = Query(None, description="Resolver used to find the zone apex"),
    zone_apex: Optional[str] = Query(None, description="Skip apex detection and use this zone"),
    state: ResolverState = Depends(state_dep),
):
    """RDAP registration summary for the zone apex of `domain`.

    Lookup failures come back as an error envelope with HTTP 200.
    """
    apex = zone_apex or await state.hierarchy.find_zone_apex(domain, state.config.endpoint_for(resolver))
    result = await state.rdap.query_registration(apex)
    if isinstance(result, RdapError):
        return err(result.error)
    return ok(result.model_dump())
