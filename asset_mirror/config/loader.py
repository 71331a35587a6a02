"""
Config Loader — Load remote mirror settings from YAML plus env overrides.

## File format (config/remotes.yaml)

    enabled: true
    is_permanent_remote: false
    url_tries_count: 3
    timeout_seconds: 10
    local_mode: false
    remotes:
      - name: primary
        test_url: https://cdn-a.example.com/ping.txt
        remote_url: https://cdn-a.example.com/assets
        catalog_name: catalog.json

## Environment Variables

- ASSET_MIRROR_CONFIG: path to the YAML file (default: config/remotes.yaml)
- ASSET_MIRROR_ENABLED, ASSET_MIRROR_PERMANENT, ASSET_MIRROR_LOCAL_MODE: true/1/yes
- ASSET_MIRROR_TRIES, ASSET_MIRROR_TIMEOUT_SECONDS, ASSET_MIRROR_MANIFEST_TIMEOUT_SECONDS

Environment values override the file. A missing file yields defaults;
a corrupt file or invalid remote entry is logged and skipped.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..models.mirror import Mirror

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "remotes.yaml"

_TRUE_VALUES = ("true", "1", "yes")


class RemoteSettings(BaseModel):
    """Global remote-location settings and the configured mirrors."""

    enabled: bool = True
    is_permanent_remote: bool = False
    url_tries_count: int = Field(default=3, ge=1)
    timeout_seconds: float = Field(default=10, gt=0)
    manifest_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    local_mode: bool = False  # no real remote fetch: skip local cache purges
    remotes: List[Mirror] = Field(default_factory=list)

    @property
    def manifest_timeout(self) -> float:
        return self.manifest_timeout_seconds or self.timeout_seconds

    def get_all_enabled(self) -> List[Mirror]:
        return [m for m in self.remotes if m.enabled]


def config_path_from_env() -> Path:
    return Path(os.environ.get("ASSET_MIRROR_CONFIG") or DEFAULT_CONFIG_PATH)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping; missing, unreadable or non-mapping files give {}."""
    if not path.exists():
        logger.debug(f"No remote config at {path}, using defaults")
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to read remote config {path}: {e}")
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"Remote config {path} must be a mapping, got {type(data).__name__}")
        return {}
    return data


def _parse_remotes(raw: Any) -> List[Mirror]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning("'remotes' must be a list, ignoring")
        return []

    mirrors: List[Mirror] = []
    for i, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            logger.warning(f"Remote #{i}: expected a mapping, skipping")
            continue
        try:
            mirror = Mirror(**entry)
        except ValidationError as e:
            logger.warning(f"Remote #{i} ({entry.get('name', '?')}): invalid, skipping: {e.errors()[0]['msg']}")
            continue
        mirrors.append(mirror)
        logger.debug(f"Loaded remote: {mirror.display_name}")
    return mirrors


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return value.lower() in _TRUE_VALUES


def _env_number(name: str, cast) -> Optional[Any]:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except ValueError:
        logger.warning(f"{name}={value!r} is not a number, ignoring")
        return None


def _env_overrides() -> Dict[str, Any]:
    overrides = {
        "enabled": _env_bool("ASSET_MIRROR_ENABLED"),
        "is_permanent_remote": _env_bool("ASSET_MIRROR_PERMANENT"),
        "local_mode": _env_bool("ASSET_MIRROR_LOCAL_MODE"),
        "url_tries_count": _env_number("ASSET_MIRROR_TRIES", int),
        "timeout_seconds": _env_number("ASSET_MIRROR_TIMEOUT_SECONDS", float),
        "manifest_timeout_seconds": _env_number("ASSET_MIRROR_MANIFEST_TIMEOUT_SECONDS", float),
    }
    return {k: v for k, v in overrides.items() if v is not None}


def load_settings(path: Optional[Path] = None) -> RemoteSettings:
    """
    Load settings from YAML and apply environment overrides.

    Args:
        path: Config file; defaults to ASSET_MIRROR_CONFIG or config/remotes.yaml

    Returns:
        RemoteSettings (defaults where the file is missing or invalid)
    """
    path = Path(path) if path else config_path_from_env()
    data = load_yaml(path)

    values = {k: v for k, v in data.items() if k != "remotes" and k in RemoteSettings.model_fields}
    values.update(_env_overrides())
    remotes = _parse_remotes(data.get("remotes"))

    try:
        settings = RemoteSettings(**values, remotes=remotes)
    except ValidationError as e:
        logger.error(f"Invalid remote settings in {path}, using defaults: {e}")
        settings = RemoteSettings(remotes=remotes)

    logger.info(
        f"Remote settings: enabled={settings.enabled}, remotes={len(settings.remotes)}, "
        f"tries={settings.url_tries_count}, timeout={settings.timeout_seconds}s"
    )
    return settings
