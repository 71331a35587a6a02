"""
Tests for the config loader and validator.
"""

import pytest

from asset_mirror.config.loader import RemoteSettings, load_settings
from asset_mirror.config.validator import (
    LEVEL_ERROR,
    LEVEL_INFO,
    LEVEL_WARNING,
    ConfigValidator,
)
from asset_mirror.models.mirror import Mirror

ENV_VARS = (
    "ASSET_MIRROR_CONFIG",
    "ASSET_MIRROR_ENABLED",
    "ASSET_MIRROR_PERMANENT",
    "ASSET_MIRROR_TRIES",
    "ASSET_MIRROR_TIMEOUT_SECONDS",
    "ASSET_MIRROR_MANIFEST_TIMEOUT_SECONDS",
    "ASSET_MIRROR_LOCAL_MODE",
)

SAMPLE_YAML = """
enabled: true
is_permanent_remote: true
url_tries_count: 5
timeout_seconds: 2.5
remotes:
  - name: primary
    test_url: https://cdn-a.example.com/ping.txt
    remote_url: https://cdn-a.example.com/assets
    catalog_name: catalog.json
  - name: parked
    enabled: false
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, text):
    path = tmp_path / "remotes.yaml"
    path.write_text(text)
    return path


class TestLoadSettings:
    """Tests for YAML + environment loading."""

    def test_loads_file(self, tmp_path):
        settings = load_settings(_write(tmp_path, SAMPLE_YAML))

        assert settings.is_permanent_remote is True
        assert settings.url_tries_count == 5
        assert settings.timeout_seconds == 2.5
        assert [m.name for m in settings.remotes] == ["primary", "parked"]
        assert [m.name for m in settings.get_all_enabled()] == ["primary"]

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml")

        assert settings.enabled is True
        assert settings.url_tries_count == 3
        assert settings.timeout_seconds == 10
        assert settings.remotes == []

    def test_corrupt_file_gives_defaults(self, tmp_path):
        settings = load_settings(_write(tmp_path, "remotes: [unclosed"))

        assert settings.remotes == []

    def test_non_mapping_file(self, tmp_path):
        settings = load_settings(_write(tmp_path, "- just\n- a list\n"))

        assert settings.remotes == []

    def test_invalid_remote_skipped(self, tmp_path):
        text = """
remotes:
  - name: no-url
  - name: ok
    remote_url: https://cdn-b.example.com
  - just a string
"""
        settings = load_settings(_write(tmp_path, text))

        assert [m.name for m in settings.remotes] == ["ok"]

    def test_invalid_global_value_falls_back(self, tmp_path):
        text = "url_tries_count: 0\nremotes:\n  - remote_url: https://cdn-b.example.com\n"

        settings = load_settings(_write(tmp_path, text))

        assert settings.url_tries_count == 3
        assert len(settings.remotes) == 1

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASSET_MIRROR_TRIES", "7")
        monkeypatch.setenv("ASSET_MIRROR_PERMANENT", "false")
        monkeypatch.setenv("ASSET_MIRROR_LOCAL_MODE", "yes")
        monkeypatch.setenv("ASSET_MIRROR_MANIFEST_TIMEOUT_SECONDS", "4")

        settings = load_settings(_write(tmp_path, SAMPLE_YAML))

        assert settings.url_tries_count == 7
        assert settings.is_permanent_remote is False
        assert settings.local_mode is True
        assert settings.manifest_timeout == 4

    def test_bad_env_number_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASSET_MIRROR_TIMEOUT_SECONDS", "fast")

        settings = load_settings(_write(tmp_path, SAMPLE_YAML))

        assert settings.timeout_seconds == 2.5

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASSET_MIRROR_CONFIG", str(_write(tmp_path, SAMPLE_YAML)))

        settings = load_settings()

        assert settings.url_tries_count == 5

    def test_manifest_timeout_defaults_to_probe_timeout(self):
        assert RemoteSettings(timeout_seconds=3).manifest_timeout == 3


class TestConfigValidator:
    """Tests for configuration checks."""

    def test_clean_config(self):
        settings = RemoteSettings(remotes=[Mirror(
            name="primary",
            test_url="https://cdn-a.example.com/ping",
            remote_url="https://cdn-a.example.com/assets",
            catalog_name="catalog.json",
        )])

        assert ConfigValidator().validate(settings) == []

    def test_enabled_without_remotes(self):
        issues = ConfigValidator().validate(RemoteSettings())

        assert [i.level for i in issues] == [LEVEL_ERROR]
        assert issues[0].guidance

    def test_disabled_without_remotes_is_fine(self):
        assert ConfigValidator().validate(RemoteSettings(enabled=False)) == []

    def test_remote_findings(self):
        settings = RemoteSettings(remotes=[
            Mirror(name="bare", remote_url="cdnA"),
            Mirror(name="parked", enabled=False),
        ])

        issues = ConfigValidator().validate(settings)
        by_level = {}
        for issue in issues:
            by_level.setdefault(issue.level, []).append(issue.message)

        assert any("remote_url is not an http(s) URL" in m for m in by_level[LEVEL_ERROR])
        assert any("No test_url" in m for m in by_level[LEVEL_WARNING])
        assert any("Disabled" in m for m in by_level[LEVEL_INFO])
        assert any("No catalog_name" in m for m in by_level[LEVEL_INFO])

    def test_duplicate_remote_url(self):
        settings = RemoteSettings(remotes=[
            Mirror(name="a", test_url="https://x/ping", remote_url="https://x/assets", catalog_name="c.json"),
            Mirror(name="b", test_url="https://x/ping", remote_url="https://X/assets", catalog_name="c.json"),
        ])

        issues = ConfigValidator().validate(settings)

        assert len(issues) == 1
        assert issues[0].level == LEVEL_WARNING
        assert issues[0].remote == "b"

    def test_issue_to_dict(self):
        issue = ConfigValidator().validate(RemoteSettings())[0]

        assert set(issue.to_dict()) == {"level", "remote", "message", "guidance"}
