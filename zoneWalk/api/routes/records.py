"""Detailed record set endpoint."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from zoneWalk.api.models import ok
from zoneWalk.api.utils.state import state_dep
from zoneWalk.resolver.state import ResolverState

router = APIRouter(prefix="/records", tags=["records"])


@router.get("/{domain}")
async def detailed_records(
    domain: str,
    resolver: Optional[str] = Query(None, description="Resolver id or DoH endpoint URL"),
    zone_apex: Optional[str] = Query(None, description="Skip apex detection and use this zone"),
    state: ResolverState = Depends(state_dep),
):
    endpoint = state.config.endpoint_for(resolver)
    records = await state.records.fetch_detailed_records(domain, endpoint, zone_apex=zone_apex)
    return ok(records.model_dump(exclude_none=True))
