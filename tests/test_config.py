"""Tests for the JSON config loader."""

import json
import os

import pytest

from medialib import config
from medialib.config import cfg, reload_config, resolve_path, service_port


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "coordinator": {"port": 9080, "inventory_path": "deploy/inventory.json"},
        "stt": {"threads": 8},
    }))
    monkeypatch.setenv("DM_CONFIG", str(path))
    monkeypatch.delenv("PORT", raising=False)
    reload_config()
    yield path
    monkeypatch.delenv("DM_CONFIG")
    reload_config()


class TestCfg:
    def test_override_file_wins(self, config_file) -> None:
        assert cfg("coordinator", "port") == 9080

    def test_whole_section(self, config_file) -> None:
        assert cfg("stt") == {"threads": 8}

    def test_defaults(self, config_file) -> None:
        assert cfg("parser", "port", default=8092) == 8092
        assert cfg("parser", default={}) == {}
        assert cfg("stt", "whisper_model") is None

    def test_invalid_json_falls_through(self, config_file) -> None:
        config_file.write_text("{broken")
        reload_config()
        # next in the search path is the repo default
        assert cfg("tv_player", "port") == 8090

    def test_cached_until_reload(self, config_file) -> None:
        config_file.write_text(json.dumps({"coordinator": {"port": 1234}}))
        assert cfg("coordinator", "port") == 9080
        reload_config()
        assert cfg("coordinator", "port") == 1234


class TestServicePort:
    def test_from_config(self, config_file) -> None:
        assert service_port("coordinator", 8080) == 9080

    def test_default(self, config_file) -> None:
        assert service_port("audio_zone", 8091) == 8091

    def test_env_wins(self, config_file, monkeypatch) -> None:
        monkeypatch.setenv("PORT", "7000")
        assert service_port("coordinator", 8080) == 7000


class TestResolvePath:
    def test_relative_to_repo(self) -> None:
        resolved = resolve_path("deploy/inventory.json")
        assert resolved == os.path.join(config.REPO_ROOT, "deploy", "inventory.json")
        assert os.path.exists(resolved)

    def test_absolute_untouched(self, tmp_path) -> None:
        assert resolve_path(str(tmp_path)) == str(tmp_path)
