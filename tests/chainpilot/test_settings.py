"""
Tests for chainpilot.config — platform settings from the environment.
"""

from chainpilot.config import PlatformSettings, get_platform_settings


def test_defaults():
    settings = PlatformSettings(_env_file=None)
    assert settings.platform_name == "ChainPilot"
    assert settings.use_testnets is True
    assert settings.telegram_bot_token == ""
    assert settings.rpc_urls == {}


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = PlatformSettings(_env_file=None)

    assert settings.telegram_bot_token == "123:abc"
    assert settings.telegram_chat_id == "-100"
    assert settings.log_level_number == 10


def test_rpc_override_lookup():
    settings = PlatformSettings(
        _env_file=None,
        rpc_urls={"ETHEREUM_TESTNET_SEPOLIA": "https://rpc.example.com"},
    )
    assert settings.rpc_url_for("ethereum-testnet-sepolia") == "https://rpc.example.com"
    assert settings.rpc_url_for("ethereum-testnet-sepolia-base-1") is None


def test_unknown_log_level_falls_back_to_info():
    assert PlatformSettings(_env_file=None, log_level="chatty").log_level_number == 20


def test_settings_singleton():
    get_platform_settings.cache_clear()
    assert get_platform_settings() is get_platform_settings()
    get_platform_settings.cache_clear()
