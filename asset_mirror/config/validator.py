"""
Configuration Validator — Check remote settings before using them.

## Usage

    from asset_mirror.config.validator import ConfigValidator

    issues = ConfigValidator().validate(settings)
    for issue in issues:
        print(issue.level, issue.remote, issue.message)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse

from ..models.mirror import Mirror
from .loader import RemoteSettings

logger = logging.getLogger(__name__)

LEVEL_ERROR = "error"
LEVEL_WARNING = "warning"
LEVEL_INFO = "info"


@dataclass
class ConfigIssue:
    """One finding about the configuration."""

    level: str
    message: str
    remote: Optional[str] = None
    guidance: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "remote": self.remote,
            "message": self.message,
            "guidance": self.guidance,
        }


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ConfigValidator:
    """Validate remote settings and explain what is missing."""

    def validate(self, settings: RemoteSettings) -> List[ConfigIssue]:
        issues: List[ConfigIssue] = []

        if settings.enabled and not settings.get_all_enabled():
            issues.append(ConfigIssue(
                level=LEVEL_ERROR,
                message="Remote locations are enabled but no enabled remote is configured",
                guidance="Add entries under 'remotes' in config/remotes.yaml",
            ))

        seen: Dict[str, str] = {}
        for mirror in settings.remotes:
            issues.extend(self._validate_remote(mirror))
            if not mirror.remote_url:
                continue
            if mirror.key in seen:
                issues.append(ConfigIssue(
                    level=LEVEL_WARNING,
                    remote=mirror.display_name,
                    message=f"Duplicate remote_url (also used by '{seen[mirror.key]}'); the later entry wins",
                ))
            else:
                seen[mirror.key] = mirror.display_name

        return issues

    def _validate_remote(self, mirror: Mirror) -> List[ConfigIssue]:
        name = mirror.display_name or "(unnamed)"
        if not mirror.enabled:
            return [ConfigIssue(level=LEVEL_INFO, remote=name, message="Disabled; never registered")]

        issues = []
        if not _is_http_url(mirror.remote_url):
            issues.append(ConfigIssue(
                level=LEVEL_ERROR,
                remote=name,
                message=f"remote_url is not an http(s) URL: {mirror.remote_url}",
            ))
        if not mirror.test_url:
            issues.append(ConfigIssue(
                level=LEVEL_WARNING,
                remote=name,
                message="No test_url; selection will probe remote_url directly",
                guidance="Point test_url at a small static file on the mirror",
            ))
        elif not _is_http_url(mirror.test_url):
            issues.append(ConfigIssue(
                level=LEVEL_ERROR,
                remote=name,
                message=f"test_url is not an http(s) URL: {mirror.test_url}",
            ))
        if not mirror.catalog_name:
            issues.append(ConfigIssue(
                level=LEVEL_INFO,
                remote=name,
                message="No catalog_name; activation only changes the base URL",
            ))
        return issues

    def log_status(self, settings: RemoteSettings) -> None:
        """Log every issue at its own level."""
        issues = self.validate(settings)
        for issue in issues:
            prefix = f"{issue.remote}: " if issue.remote else ""
            if issue.level == LEVEL_ERROR:
                logger.error(f"✗ {prefix}{issue.message}")
            elif issue.level == LEVEL_WARNING:
                logger.warning(f"⚠ {prefix}{issue.message}")
            else:
                logger.info(f"• {prefix}{issue.message}")

        errors = sum(1 for i in issues if i.level == LEVEL_ERROR)
        logger.info(f"Config check: {len(settings.remotes)} remote(s), {errors} error(s)")
