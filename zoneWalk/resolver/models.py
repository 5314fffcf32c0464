"""Data models for DoH answers, zone trees, record sets and RDAP results."""
from __future__ import annotations

from enum import Enum
from typing import Iterator, List, Optional, Tuple

import dns.rdatatype
from pydantic import BaseModel, ConfigDict, Field


class RecordType(str, Enum):
    """Record types the engine queries."""
    A = "A"
    NS = "NS"
    CNAME = "CNAME"
    SOA = "SOA"
    MX = "MX"
    TXT = "TXT"
    AAAA = "AAAA"

    @property
    def code(self) -> int:
        """Numeric RR type as it appears in DoH JSON answers."""
        return int(dns.rdatatype.from_text(self.value))


class Answer(BaseModel):
    """One raw DoH answer record. TTL is the resolver's remaining cache life."""
    name: str
    type: int
    ttl: int = Field(default=0, ge=0, alias="TTL")
    data: str = ""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class DohResponse(BaseModel):
    """Decoded DoH JSON body (0 = NOERROR, 2 = SERVFAIL, 3 = NXDOMAIN)."""
    status: int = Field(alias="Status")
    answer: Optional[List[Answer]] = Field(default=None, alias="Answer")
    authority: Optional[List[Answer]] = Field(default=None, alias="Authority")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def first_of(self, rtype: RecordType, section: str = "answer") -> Optional[Answer]:
        for record in getattr(self, section) or []:
            if record.type == rtype.code:
                return record
        return None

    def max_ttl(self) -> int:
        """Highest TTL in the Answer section (0 when empty)."""
        return max((record.ttl for record in self.answer or []), default=0)


class ZoneNode(BaseModel):
    """One zone in the delegation tree rooted at "."."""
    zone_name: str
    domains: List[str] = Field(default_factory=list)
    nameservers: List[str] = Field(default_factory=list)
    depth: int = Field(ge=0)
    is_delegated: bool = False
    is_cname: bool = False
    cname_target: Optional[str] = None
    children: List["ZoneNode"] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def find(self, zone_name: str) -> Optional["ZoneNode"]:
        """Depth-first lookup of a node by zone name."""
        for node, _parent in iter_zones(self):
            if node.zone_name == zone_name:
                return node
        return None


def iter_zones(root: ZoneNode, parent: Optional[str] = None) -> Iterator[Tuple[ZoneNode, Optional[str]]]:
    """Yield (node, parent zone name) pairs depth-first."""
    yield root, parent
    for child in root.children:
        yield from iter_zones(child, root.zone_name)


class SoaFields(BaseModel):
    mname: str
    rname: str
    serial: int
    refresh: int
    retry: int
    expire: int
    minimum: int


class SoaAnswer(Answer):
    """SOA answer plus its parsed fields (None when the data is malformed)."""
    parsed: Optional[SoaFields] = None


class DetailedRecordSet(BaseModel):
    """Per-type record sets for one domain; absent fields could not be fetched."""
    soa: Optional[SoaAnswer] = None
    ns: Optional[List[Answer]] = None
    a: Optional[List[Answer]] = None
    aaaa: Optional[List[Answer]] = None
    cname: Optional[List[Answer]] = None
    mx: Optional[List[Answer]] = None
    txt: Optional[List[Answer]] = None


class RegistrationInfo(BaseModel):
    """Best-effort RDAP registration summary."""
    domain: str
    registrar: Optional[str] = None
    registration_date: Optional[str] = None
    expiration_date: Optional[str] = None
    status: List[str] = Field(default_factory=list)
    nameservers: List[str] = Field(default_factory=list)


class RdapError(BaseModel):
    error: str
