"""Configuration loader for zoneWalk."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

DEFAULT_CONFIG_PATH = "/etc/zonewalk/zonewalk.yaml"


class ResolverEndpoint(BaseModel):
    id: str
    name: str
    endpoint: str
    description: str = Field(default="")


def _default_resolvers() -> List[ResolverEndpoint]:
    return [
        ResolverEndpoint(
            id="cloudflare",
            name="Cloudflare",
            endpoint=os.getenv("ZONEWALK_DOH_CLOUDFLARE_ENDPOINT", "https://cloudflare-dns.com/dns-query"),
            description="cloudflare-dns.com",
        ),
        ResolverEndpoint(
            id="google",
            name="Google",
            endpoint=os.getenv("ZONEWALK_DOH_GOOGLE_ENDPOINT", "https://dns.google/resolve"),
            description="dns.google",
        ),
    ]


class RateLimitConfig(BaseModel):
    max_queries: int = Field(default=100, ge=1)
    window_ms: int = Field(default=60_000, ge=1)


class RdapConfig(BaseModel):
    bootstrap_url: str = Field(default="https://data.iana.org/rdap/dns.json")
    timeout_seconds: float = Field(default=10.0, gt=0)


class WalkConfig(BaseModel):
    max_consecutive_failures: int = Field(default=3, ge=1)


class RecordsConfig(BaseModel):
    redundant_queries: int = Field(default=3, ge=1)


class ZoneWalkConfig(BaseModel):
    resolvers: List[ResolverEndpoint] = Field(default_factory=_default_resolvers, min_length=1)
    default_resolver: str = Field(default="cloudflare")
    dns_timeout_seconds: float = Field(default=10.0, gt=0)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    rdap: RdapConfig = Field(default_factory=RdapConfig)
    walk: WalkConfig = Field(default_factory=WalkConfig)
    records: RecordsConfig = Field(default_factory=RecordsConfig)

    @model_validator(mode="after")
    def _check_default_resolver(self) -> "ZoneWalkConfig":
        if not any(r.id == self.default_resolver for r in self.resolvers):
            raise ValueError(f"default_resolver {self.default_resolver!r} is not a configured resolver")
        return self

    @classmethod
    def load(cls, path: str) -> "ZoneWalkConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"zoneWalk config not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text()) or {}
            return cls(**raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid zoneWalk config: {exc}") from exc

    @classmethod
    def from_env(cls, path: Optional[str] = None) -> "ZoneWalkConfig":
        """
        Load the YAML file at `path` (or $ZONEWALK_CONFIG) when it exists,
        then apply ZONEWALK_DNS_TIMEOUT / ZONEWALK_RATE_LIMIT_* overrides.
        """
        path = path or os.getenv("ZONEWALK_CONFIG", DEFAULT_CONFIG_PATH)
        cfg = cls.load(path) if path and Path(path).exists() else cls()

        overrides = {}
        if os.getenv("ZONEWALK_DNS_TIMEOUT"):
            # milliseconds, like the rate-limit window
            overrides["dns_timeout_seconds"] = int(os.environ["ZONEWALK_DNS_TIMEOUT"]) / 1000
        rate_limit = cfg.rate_limit.model_dump()
        if os.getenv("ZONEWALK_RATE_LIMIT_MAX_QUERIES"):
            rate_limit["max_queries"] = int(os.environ["ZONEWALK_RATE_LIMIT_MAX_QUERIES"])
        if os.getenv("ZONEWALK_RATE_LIMIT_WINDOW_MS"):
            rate_limit["window_ms"] = int(os.environ["ZONEWALK_RATE_LIMIT_WINDOW_MS"])
        overrides["rate_limit"] = rate_limit
        try:
            return cls(**{**cfg.model_dump(), **overrides})
        except ValidationError as exc:
            raise ValueError(f"Invalid zoneWalk environment overrides: {exc}") from exc

    def get_resolver(self, resolver_id: Optional[str] = None) -> ResolverEndpoint:
        """Resolver by id; unknown or missing ids fall back to the default."""
        by_id = {r.id: r for r in self.resolvers}
        return by_id.get(resolver_id or self.default_resolver) or by_id[self.default_resolver]

    def endpoint_for(self, resolver: Optional[str] = None) -> str:
        """Endpoint URL for a resolver id; an http(s) URL passes through."""
        if resolver and resolver.startswith(("http://", "https://")):
            return resolver
        return self.get_resolver(resolver).endpoint
