"""Tests for configuration loading."""

import json
import os
import stat

from wxrelay.config.loader import load_config, save_config
from wxrelay.config.schema import Config


class TestLoadConfig:
    """Loading config.json files."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")

        assert config.provider.model == "gpt-4o-mini"
        assert config.history.max_length == 20
        assert config.session.max_retries == 3
        assert config.session.retry_delay == 5.0
        assert config.reader.news_url == "https://api.lbbb.cc/api/60miao"

    def test_camel_case_keys(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "provider": {"model": "deepseek-chat", "apiKey": "sk-test", "apiBase": "https://api.deepseek.com/v1"},
            "wechat": {"bridgeUrl": "ws://10.0.0.2:3001"},
            "broker": {"maxConcurrentTurns": 8},
        }))

        config = load_config(path)

        assert config.provider.api_key == "sk-test"
        assert config.provider.api_base == "https://api.deepseek.com/v1"
        assert config.wechat.bridge_url == "ws://10.0.0.2:3001"
        assert config.broker.max_concurrent_turns == 8

    def test_legacy_layout_is_migrated(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "openai": {"model": "gpt-4o", "baseURL": "https://proxy.example/v1", "apiKey": "sk-legacy"},
            "maxHistoryLength": 10,
            "searchEngineURL": "http://searx.local:8888",
        }))

        config = load_config(path)

        assert config.provider.model == "gpt-4o"
        assert config.provider.api_key == "sk-legacy"
        assert config.provider.api_base == "https://proxy.example/v1"
        assert config.history.max_length == 10
        assert config.search.url == "http://searx.local:8888"

    def test_invalid_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"history": {"maxLength": 0}}))

        config = load_config(path)

        assert config.history.max_length == 20

    def test_insecure_permissions_fixed(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}")
        os.chmod(path, 0o644)

        load_config(path)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


class TestSaveConfig:
    """Writing config.json files."""

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config()
        config.provider.api_key = "sk-saved"

        save_config(config, path)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        data = json.loads(path.read_text())
        assert data["provider"]["apiKey"] == "sk-saved"
        assert load_config(path).provider.api_key == "sk-saved"
