"""Shared Pydantic models for the API layer."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from zoneWalk.resolver.models import ZoneNode, iter_zones


class ZoneListItem(BaseModel):
    """Flat view of one tree node, for clients that draw their own graph."""
    zone_name: str
    parent: Optional[str]
    depth: int
    is_delegated: bool
    is_cname: bool
    cname_target: Optional[str] = None
    domains: List[str] = Field(default_factory=list)
    nameservers: List[str] = Field(default_factory=list)


def flatten_tree(root: ZoneNode) -> List[ZoneListItem]:
    return [
        ZoneListItem(
            zone_name=node.zone_name,
            parent=parent,
            depth=node.depth,
            is_delegated=node.is_delegated,
            is_cname=node.is_cname,
            cname_target=node.cname_target,
            domains=node.domains,
            nameservers=node.nameservers,
        )
        for node, parent in iter_zones(root)
    ]


def ok(data: object) -> dict:
    return {"status": "ok", "data": data}


def err(detail: str) -> dict:
    return {"status": "error", "detail": detail}
