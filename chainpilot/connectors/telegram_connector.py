"""
TelegramConnector — Async Telegram Bot API notifications.

Workflows use Telegram only to announce what they did, so every failure
here surfaces as `NotificationError`, which the pipeline treats as
best-effort. Native httpx, no third-party Telegram libraries.

Usage:
    telegram = get_connector_registry().get("telegram")
    await telegram.notify("*Update*: price is `1.23`")
"""

from __future__ import annotations

import re
import time
from typing import Any, Optional

import httpx
import structlog

from chainpilot.config import PlatformSettings
from chainpilot.connectors.base_connector import BaseConnector
from chainpilot.errors import NotificationError

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


# ── Async Telegram Client ────────────────────────────────────────────


class AsyncTelegramClient:
    """Minimal Bot API client: getMe and sendMessage over HTTP/2."""

    def __init__(self, bot_token: str, timeout: float = 30.0):
        self._token = bot_token
        self._base_url = f"{TELEGRAM_API_URL}/bot{self._token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            http2=True,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        start = time.monotonic()
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NotificationError(f"Telegram request failed: {e}") from e

        latency_ms = (time.monotonic() - start) * 1000

        if resp.status_code == 401:
            raise NotificationError("Authentication failed, check your bot token", detail="401")

        try:
            data = resp.json()
        except ValueError as e:
            raise NotificationError(
                f"Telegram returned a non-JSON body (status {resp.status_code})"
            ) from e

        # Bot API wraps every response in {"ok": bool, "result": ...}
        if not data.get("ok", False):
            error_code = data.get("error_code", resp.status_code)
            description = data.get("description", "Unknown error")
            raise NotificationError(
                f"API error {error_code}: {description}",
                detail=str(error_code),
            )

        logger.debug(
            "telegram_request",
            method=method,
            path=path,
            status=resp.status_code,
            latency_ms=round(latency_ms),
        )
        return data.get("result")

    async def get_me(self) -> dict:
        """Basic info about the bot. Used as the health check."""
        return await self._request("GET", "/getMe")

    async def send_message(
        self,
        chat_id: str,
        text: str,
        parse_mode: Optional[str] = None,
        disable_notification: bool = False,
    ) -> dict:
        """
        Send a text message to a chat.

        Args:
            chat_id: Target chat ID or @channel_username.
            text: Message text (up to 4096 characters).
            parse_mode: Optional "MarkdownV2" or "HTML".
            disable_notification: Send silently if True.
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if disable_notification:
            payload["disable_notification"] = True

        result = await self._request("POST", "/sendMessage", json=payload)
        logger.info(
            "telegram_message_sent",
            chat_id=chat_id,
            message_id=result.get("message_id"),
            text_length=len(text),
        )
        return result

    @staticmethod
    def markdown_to_html(text: str) -> str:
        """Convert the Markdown subset workflows write to Telegram HTML.

        HTML entities are escaped first so message content never breaks
        Telegram's parser.
        """
        t = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        t = re.sub(r"```(?:\w*\n)?(.*?)```", r"<pre>\1</pre>", t, flags=re.DOTALL)
        t = re.sub(r"`([^`]+)`", r"<code>\1</code>", t)
        t = re.sub(r"\*\*(.*?)\*\*", r"<b>\1</b>", t, flags=re.DOTALL)
        # Single *x* is bold in Telegram's legacy Markdown, keep that meaning
        t = re.sub(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)", r"<b>\1</b>", t)
        t = re.sub(r"(?<!\w)_(.+?)_(?!\w)", r"<i>\1</i>", t)
        t = re.sub(r"\[([^\]]+)]\(([^)]+)\)", r'<a href="\2">\1</a>', t)
        return t

    async def send_markdown(self, chat_id: str, text: str) -> dict:
        """Send Markdown-ish text, rendered as Telegram HTML."""
        return await self.send_message(
            chat_id=chat_id, text=self.markdown_to_html(text), parse_mode="HTML"
        )

    async def close(self) -> None:
        await self._client.aclose()


# ── Connector ────────────────────────────────────────────────────────


class TelegramConnector(BaseConnector):
    """Telegram notifications to the configured operator chat."""

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def icon(self) -> str:
        return "📱"

    @property
    def description(self) -> str:
        return "Send workflow notifications to a Telegram chat"

    def __init__(self, settings: PlatformSettings):
        self._token = settings.telegram_bot_token
        self._chat_id = settings.telegram_chat_id
        self._timeout = settings.http_timeout_seconds
        self._client: AsyncTelegramClient | None = None

    @property
    def client(self) -> AsyncTelegramClient:
        """Lazy-initializes on first access."""
        if self._client is None:
            if not self._token:
                raise NotificationError("TELEGRAM_BOT_TOKEN is not set")
            self._client = AsyncTelegramClient(bot_token=self._token, timeout=self._timeout)
        return self._client

    async def notify(self, text: str, *, markdown: bool = False) -> dict:
        """Send `text` to the configured chat."""
        if not self._chat_id:
            raise NotificationError("TELEGRAM_CHAT_ID is not set")
        if markdown:
            return await self.client.send_markdown(self._chat_id, text)
        return await self.client.send_message(self._chat_id, text)

    async def teardown(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    async def health_check(self) -> bool:
        try:
            await self.client.get_me()
            return True
        except NotificationError:
            return False
