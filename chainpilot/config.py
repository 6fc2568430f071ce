"""
Platform Configuration — Process-wide settings shared by all workflows.

The platform config manages:
  - Secrets that must never live in workflow config files
    (Telegram bot token, signing key)
  - RPC endpoints per chain selector name
  - Platform-level settings (environment, log level, workflows dir)

Per-workflow settings (schedule, URLs, addresses) live in each workflow's
config file and are validated by its `config_schema`.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlatformSettings(BaseSettings):
    """Platform-wide settings, read from the environment and .env files."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ── Platform ─────────────────────────────────────────────────────
    platform_name: str = "ChainPilot"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # ── Workflows ─────────────────────────────────────────────────────
    workflows_dir: str = "workflows"

    # ── Telegram ──────────────────────────────────────────────────────
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # ── Chain ─────────────────────────────────────────────────────────
    sender_private_key: str = ""
    # e.g. RPC_URLS__ETHEREUM_TESTNET_SEPOLIA=https://...
    rpc_urls: dict[str, str] = Field(default_factory=dict)
    use_testnets: bool = True

    # ── HTTP ──────────────────────────────────────────────────────────
    http_timeout_seconds: float = 30.0

    # ── Tracing ───────────────────────────────────────────────────────
    otlp_endpoint: str = ""
    trace_console: bool = False

    def rpc_url_for(self, chain_selector_name: str) -> str | None:
        """Look up an RPC override, accepting env-style upper snake keys."""
        if chain_selector_name in self.rpc_urls:
            return self.rpc_urls[chain_selector_name]
        env_key = chain_selector_name.replace("-", "_").lower()
        for key, url in self.rpc_urls.items():
            if key.replace("-", "_").lower() == env_key:
                return url
        return None

    @property
    def log_level_number(self) -> int:
        levels = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
        return levels.get(self.log_level.upper(), 20)


@lru_cache
def get_platform_settings() -> PlatformSettings:
    """Singleton accessor — parsed once, cached forever."""
    return PlatformSettings()
