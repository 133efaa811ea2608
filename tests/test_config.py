"""Tests for configuration schema and loading."""

import json

import pytest
from pydantic import ValidationError

from chatbudget.config.loader import camel_to_snake, convert_keys, load_config, save_config, snake_to_camel
from chatbudget.config.schema import CompressionConfig, CompressionSettings, Config


class TestCompressionConfig:
    def test_defaults(self):
        config = CompressionConfig()
        assert config.keep_recent_messages == 10
        assert config.summary_chunk_size == 10
        assert config.max_tokens == 4000
        assert config.summary_max_tokens == 200
        assert config.enable_summary_generation is True
        assert config.fallback_to_truncation is True

    def test_needs_compression(self):
        config = CompressionConfig(keep_recent_messages=10)
        assert config.needs_compression(12) is True
        assert config.summary_message_count(12) == 2
        assert config.needs_compression(10) is False
        assert config.summary_message_count(3) == 0

    @pytest.mark.parametrize("name,keep,chunk,max_tokens,summary_tokens", [
        ("default", 10, 10, 4000, 200),
        ("conservative", 15, 8, 3000, 150),
        ("aggressive", 5, 15, 8000, 300),
    ])
    def test_presets(self, name, keep, chunk, max_tokens, summary_tokens):
        config = CompressionConfig.preset(name)
        assert config.keep_recent_messages == keep
        assert config.summary_chunk_size == chunk
        assert config.max_tokens == max_tokens
        assert config.summary_max_tokens == summary_tokens

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown compression preset"):
            CompressionConfig.preset("extreme")

    def test_rejects_negative_values(self):
        with pytest.raises(ValidationError):
            CompressionConfig(keep_recent_messages=-1)
        with pytest.raises(ValidationError):
            CompressionConfig(max_tokens=0)

    def test_frozen(self):
        config = CompressionConfig()
        with pytest.raises(ValidationError):
            config.max_tokens = 1


class TestCompressionSettings:
    def test_preset_only(self):
        assert CompressionSettings(preset="aggressive").resolve() == CompressionConfig.preset("aggressive")

    def test_overrides_apply_on_top(self):
        resolved = CompressionSettings(preset="conservative", max_tokens=5000).resolve()
        assert resolved.max_tokens == 5000
        assert resolved.keep_recent_messages == 15


class TestConfig:
    def test_api_key_follows_model_prefix(self):
        config = Config.model_validate({
            "agents": {"defaults": {"model": "openai/gpt-4o"}},
            "providers": {"openai": {"api_key": "sk-o"}, "deepseek": {"api_key": "sk-d"}},
        })
        assert config.get_api_key() == "sk-o"

    def test_api_key_default_provider(self):
        config = Config.model_validate({"providers": {"deepseek": {"api_key": "sk-d"}}})
        assert config.get_api_key() == "sk-d"

    def test_no_api_key(self):
        assert Config.model_validate({}).get_api_key() is None

    def test_api_base(self):
        config = Config.model_validate({"providers": {"deepseek": {"api_base": "http://localhost:8000"}}})
        assert config.get_api_base() == "http://localhost:8000"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CHATBUDGET_SPLIT__LIMIT", "1234")
        assert Config().split.limit == 1234


class TestLoader:
    def test_key_conversion(self):
        assert camel_to_snake("keepRecentMessages") == "keep_recent_messages"
        assert snake_to_camel("keep_recent_messages") == "keepRecentMessages"
        assert convert_keys({"apiKey": [{"apiBase": 1}]}, camel_to_snake) == {
            "api_key": [{"api_base": 1}]
        }

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.json")
        assert config.split.limit == 3000
        assert config.usage.context_limit == 64_000

    def test_reads_camel_case(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "compression": {"preset": "aggressive", "keepRecentMessages": 3},
            "split": {"limit": 1000},
        }))

        config = load_config(path)

        assert config.split.limit == 1000
        resolved = config.compression.resolve()
        assert resolved.keep_recent_messages == 3
        assert resolved.max_tokens == 8000

    def test_invalid_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        assert load_config(path).split.limit == 3000

    def test_invalid_values_give_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"compression": {"preset": "extreme"}}))
        assert load_config(path).compression.preset == "default"

    def test_save_writes_camel_case(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config.model_validate({"split": {"limit": 2000}})

        save_config(config, path)

        data = json.loads(path.read_text())
        assert data["split"]["limit"] == 2000
        assert "keepRecentMessages" in data["compression"]
        assert load_config(path).split.limit == 2000
