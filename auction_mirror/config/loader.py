"""Configuration loading helpers for the auction mirror service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import ServiceConfig

SERVICE_CONFIG_FILENAME = "service_config.yaml"

# environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "MONGODB_URI": ("store", "uri"),
    "HYPIXEL_API_KEY": ("feed", "api_key"),
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    """Return a copy of ``payload`` with secrets taken from the environment."""

    environ = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in payload.items()}
    for variable, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            merged.setdefault(section, {})[field] = value
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("AUCTION_MIRROR_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def service_config_path(self) -> Path:
        return self.data_dir / SERVICE_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(
        self, locator: ConfigLocator | None = None, environ: Mapping[str, str] | None = None
    ) -> None:
        self.locator = locator or ConfigLocator()
        self.environ = environ
        self._cache: ServiceConfig | None = None

    def load_config(self) -> ServiceConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.service_config_path()
        if path.exists():
            payload = _read_file(path)
        else:
            # env overrides are never persisted
            self.save_config(ServiceConfig())
            payload = {}
        config = ServiceConfig.model_validate(apply_env_overrides(payload, self.environ))
        self._cache = config
        return config

    def save_config(self, config: ServiceConfig) -> Path:
        path = self.locator.service_config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = None
        return path


__all__ = ["ConfigLocator", "ConfigRepository", "ENV_OVERRIDES", "apply_env_overrides"]
