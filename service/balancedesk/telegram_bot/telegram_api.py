"""
Telegram Bot API transport.

Thin httpx wrapper used by every desk bot. Each call takes the bot token
explicitly because the service talks to several bots at once. Calls never
raise on transport problems: sends return a SendResult and polls return None.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import BaseModel

from balancedesk.config import get_settings
from .logging_config import bot_logger as logger


@dataclass
class SendResult:
    """Outcome of a sendMessage call."""
    delivered: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


class InboundUpdate(BaseModel):
    """The part of a Telegram update the desk cares about."""
    sequence_id: int
    has_message: bool = False
    text: str = ""
    reply_to_message_id: Optional[int] = None
    chat_id: Optional[int] = None

    @classmethod
    def from_telegram(cls, data: dict) -> "InboundUpdate":
        message = data.get("message") or {}
        reply_to = message.get("reply_to_message") or {}
        return cls(
            sequence_id=int(data["update_id"]),
            has_message=bool(message),
            text=str(message.get("text") or ""),
            reply_to_message_id=reply_to.get("message_id"),
            chat_id=(message.get("chat") or {}).get("id"),
        )


class TelegramTransport:
    """Sends messages and fetches updates for any bot token."""

    def __init__(self, base_url: str = "https://api.telegram.org", client: httpx.AsyncClient = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient()

    def _url(self, token: str, method: str) -> str:
        return f"{self.base_url}/bot{token}/{method}"

    async def send_message(self, token: str, chat_id: str, text: str, timeout: float = 5.0) -> SendResult:
        """
        Send a text message, bounded by `timeout` seconds in total.

        A timed-out call is reported as not delivered and is not retried.
        """
        if not token or not chat_id:
            return SendResult(delivered=False, error="telegram_config_missing")

        try:
            response = await asyncio.wait_for(
                self.client.post(self._url(token, "sendMessage"), json={"chat_id": chat_id, "text": text}),
                timeout=timeout,
            )
            data = response.json()
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return SendResult(delivered=False, error="timeout")
        except httpx.HTTPError as e:
            return SendResult(delivered=False, error=str(e))
        except ValueError:
            return SendResult(delivered=False, error="invalid_response")

        if not isinstance(data, dict):
            return SendResult(delivered=False, error="invalid_response")
        if not data.get("ok"):
            return SendResult(delivered=False, error=data.get("description") or "not_ok")

        result = data.get("result")
        if not isinstance(result, dict):
            result = {}
        return SendResult(delivered=True, message_id=result.get("message_id"))

    async def get_updates(self, token: str, after: int, long_poll: int = 20) -> Optional[list[InboundUpdate]]:
        """
        Fetch updates with update_id > `after`.

        The server holds the request open for up to `long_poll` seconds when
        nothing is pending. Returns None when the call fails.
        """
        try:
            response = await self.client.get(
                self._url(token, "getUpdates"),
                params={"offset": after + 1, "timeout": long_poll},
                timeout=long_poll + 10,
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"getUpdates failed: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"getUpdates returned a non-object body: {data!r}")
            return None
        if not data.get("ok"):
            logger.warning(f"getUpdates returned not ok: {data.get('description')}")
            return None

        updates = [InboundUpdate.from_telegram(u) for u in data.get("result") or [] if isinstance(u, dict) and "update_id" in u]
        return sorted(updates, key=lambda u: u.sequence_id)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()


# Global instance
_transport: Optional[TelegramTransport] = None


def get_transport() -> TelegramTransport:
    """Get or create the Telegram transport singleton."""
    global _transport
    if _transport is None:
        _transport = TelegramTransport(get_settings().telegram_api_base)
    return _transport
