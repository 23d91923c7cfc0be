"""Configuration package exports."""

from .loader import ENV_OVERRIDES, ConfigLocator, ConfigRepository, apply_env_overrides
from .models import FeedConfig, IdentityConfig, ScheduleConfig, ServiceConfig, StoreConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "FeedConfig",
    "IdentityConfig",
    "ScheduleConfig",
    "ServiceConfig",
    "StoreConfig",
    "apply_env_overrides",
]
