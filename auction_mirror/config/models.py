"""Pydantic models describing the auction mirror service configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_FEED_ENDPOINT = "https://api.hypixel.net/skyblock/auctions"
DEFAULT_IDENTITY_URL = "https://api.mojang.com/users/profiles/minecraft"


class FeedConfig(BaseModel):
    """Upstream listing feed and its retry policy. Delays are in seconds."""

    endpoint: str = DEFAULT_FEED_ENDPOINT
    api_key: str | None = None
    page_concurrency: int = Field(default=5, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    max_attempts: int = Field(default=5, ge=1)
    rate_limit_delay: float = Field(default=60.0, ge=0)
    rate_limit_cap: float = Field(default=300.0, ge=0)
    timeout_delay: float = Field(default=30.0, ge=0)
    retry_delay: float = Field(default=30.0, ge=0)

    @field_validator("endpoint")
    @classmethod
    def _require_endpoint(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Feed endpoint cannot be empty")
        return value


class StoreConfig(BaseModel):
    """Where listings live."""

    backend: Literal["mongodb", "memory"] = "mongodb"
    uri: str = "mongodb://127.0.0.1:27017/skyblock_auctions"
    database: str = "skyblock_auctions"
    current_collection: str = "auctions"
    history_collection: str = "historical_auctions"
    chunk_size: int = Field(default=1000, ge=1)
    server_selection_timeout_ms: int = 30000
    socket_timeout_ms: int = 45000
    max_pool_size: int = 10

    @model_validator(mode="after")
    def _distinct_collections(self) -> "StoreConfig":
        if self.current_collection == self.history_collection:
            raise ValueError("current and history collections must differ")
        return self


class IdentityConfig(BaseModel):
    """Display name -> player identifier lookup service."""

    url: str = DEFAULT_IDENTITY_URL
    timeout: float = Field(default=10.0, gt=0)


class ScheduleConfig(BaseModel):
    """Recurring job intervals, in seconds."""

    ingest_interval_seconds: float = Field(default=300.0, gt=0)
    sweep_interval_seconds: float = Field(default=300.0, gt=0)
    max_overlapping_cycles: int = Field(default=3, ge=1)


class ServiceConfig(BaseModel):
    """Top level configuration document."""

    feed: FeedConfig = Field(default_factory=FeedConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)


__all__ = [
    "FeedConfig",
    "IdentityConfig",
    "ScheduleConfig",
    "ServiceConfig",
    "StoreConfig",
]
