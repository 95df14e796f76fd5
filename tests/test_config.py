"""Unit tests for starcharts.core.config and starcharts.cli.environment."""

import json
import logging

from starcharts.cli.environment import Environment
from starcharts.core.config import Config


def _environment(tmp_path, lines):
    env_file = tmp_path / ".env"
    env_file.write_text("\n".join(lines) + "\n")
    return Environment(env_file=str(env_file), use_os_environ=False)


def test_defaults_without_environment():
    config = Config()
    assert config.get("github.page_size") == 100
    assert config.get("github.max_rate_usage_pct") == 80
    assert config.get("github.tokens") == []
    assert config.get("cache.default_ttl") == 86400
    assert config.get("missing.key", "fallback") == "fallback"


def test_environment_overrides(tmp_path):
    env = _environment(tmp_path, [
        "GITHUB_TOKENS=ghp_aaaaaaaa1111,ghp_bbbbbbbb2222",
        "GITHUB_PAGE_SIZE=50",
        "GITHUB_MAX_RATE_LIMIT_USAGE=60",
        "CACHE_TTL=60",
        "LOG_LEVEL=debug",
    ])
    config = Config(environment=env)

    assert config.get("github.tokens") == ["ghp_aaaaaaaa1111", "ghp_bbbbbbbb2222"]
    assert config.get("github.page_size") == 50
    assert config.get("github.max_rate_usage_pct") == 60
    assert config.get("cache.default_ttl") == 60
    assert config.get("logging.level") == "DEBUG"


def test_cache_backend_from_environment(tmp_path):
    assert Config().get("cache.backend") == "file"

    env = _environment(tmp_path, ["CACHE_BACKEND=Memory", f"CACHE_DIR={tmp_path / 'etags'}"])
    config = Config(environment=env)

    assert config.get("cache.backend") == "memory"
    assert config.get("cache.dir") == str(tmp_path / "etags")


def test_invalid_integer_is_ignored(tmp_path, caplog):
    env = _environment(tmp_path, ["CACHE_MAX_SIZE=lots"])
    with caplog.at_level(logging.WARNING):
        config = Config(environment=env, logger=logging.getLogger("test"))

    assert config.get("cache.max_size") == 10000
    assert "CACHE_MAX_SIZE" in caplog.text


def test_page_size_is_clamped(tmp_path):
    assert Config(environment=_environment(tmp_path, ["GITHUB_PAGE_SIZE=500"])).get("github.page_size") == 100
    assert Config(environment=_environment(tmp_path, ["GITHUB_PAGE_SIZE=0"])).get("github.page_size") == 1


def test_file_overlay_then_environment(tmp_path):
    config_file = tmp_path / "starcharts.json"
    config_file.write_text(json.dumps({"cache": {"backend": "memory", "default_ttl": 5}}))
    env = _environment(tmp_path, ["CACHE_TTL=7"])

    config = Config(config_file=str(config_file), environment=env)

    assert config.get("cache.backend") == "memory"
    assert config.get("cache.default_ttl") == 7
    assert config.get("cache.max_size") == 10000


def test_missing_file_keeps_defaults(tmp_path):
    config = Config(config_file=str(tmp_path / "absent.json"))
    assert config.get("github.page_size") == 100


def test_set_creates_nested_path():
    config = Config()
    config.set("github.page_size", 30)
    config.set("extra.nested.value", 1)
    assert config.get("github.page_size") == 30
    assert config.get("extra.nested.value") == 1


def test_environment_without_tokens(tmp_path):
    env = _environment(tmp_path, ["OTHER=1"])
    assert env.get_github_tokens() == []
    assert env.get("OTHER") == "1"
