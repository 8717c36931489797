import pytest

from disclink.config import loader
from disclink.config.core import Core
from disclink.config.relay import Relay


def test_relay_defaults(monkeypatch):
    for name in ("MAX_SEND_RETRIES", "BASE_BACKOFF", "MAX_BACKOFF", "IGNORE_OTHER_BOTS"):
        monkeypatch.delenv(name, raising=False)
    relay = Relay({})

    assert relay.MAX_SEND_RETRIES == 5
    assert relay.BASE_BACKOFF == 0.4
    assert relay.MAX_BACKOFF == 25.6
    assert relay.IGNORE_OTHER_BOTS is True
    assert relay.SAVE_DEBOUNCE == 0.8


def test_relay_reads_toml_section_before_env(monkeypatch):
    monkeypatch.setenv("MAX_SEND_RETRIES", "9")
    relay = Relay({"disclink": {"relay": {"max_send_retries": 3, "ignore_other_bots": "off"}}})

    assert relay.MAX_SEND_RETRIES == 3
    assert relay.IGNORE_OTHER_BOTS is False


def test_core_validate_requires_token(monkeypatch):
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    monkeypatch.delenv("TOKEN", raising=False)
    core = Core({})

    assert core.DISCORD_TOKEN is None
    with pytest.raises(ValueError, match="DISCORD_TOKEN"):
        core.validate()


def test_core_reads_server_section(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "abc")
    core = Core({"disclink": {"server": {"host": "127.0.0.1", "port": 4000}, "state_file": "x.json"}})

    assert (core.HOST, core.PORT, core.STATE_FILE) == ("127.0.0.1", 4000, "x.json")
    assert core.DISCORD_TOKEN == "abc"


def test_load_raw_config(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[disclink.server]\nport = 5000\n', encoding="utf-8")

    assert loader.load_raw_config(path) == {"disclink": {"server": {"port": 5000}}}
    assert loader.load_raw_config(tmp_path / "missing.toml") == {}


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "bridge.toml"
    path.write_text('[disclink]\nlog_level = "debug"\n', encoding="utf-8")
    monkeypatch.setenv(loader.CONFIG_PATH_ENV, str(path))

    assert loader.load_raw_config() == {"disclink": {"log_level": "debug"}}


def test_malformed_config_is_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[disclink\n", encoding="utf-8")

    with pytest.raises(ValueError):
        loader.load_raw_config(path)
