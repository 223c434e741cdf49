"""
Per-bot getUpdates polling with persisted cursors.

Dispatch is at-most-once: the cursor moves past an update before its handler
runs, and a failing handler is logged, not retried. The cursor map is
persisted once per cycle, after the whole batch. Once a cursor is on disk no
update with that id or lower is dispatched again for that bot.
"""

import asyncio
import hashlib
from typing import Awaitable, Callable, Optional

from balancedesk.config import BotIdentity, Settings
from balancedesk.store import CacheStore
from .logging_config import bot_logger as logger
from .telegram_api import InboundUpdate, TelegramTransport

UpdateHandler = Callable[[InboundUpdate], Awaitable[object]]


def bot_key(token: str) -> str:
    """Cursor key for a bot. Raw tokens never reach the cache file."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class PollLoop:
    """Polls every configured bot in turn on a fixed interval."""

    def __init__(
        self,
        store: CacheStore,
        transport: TelegramTransport,
        bots: list[tuple[BotIdentity, UpdateHandler]],
        interval: float = 10.0,
        long_poll: int = 20,
    ):
        self.store = store
        self.transport = transport
        self.bots = bots
        self.interval = interval
        self.long_poll = long_poll

    def cursor(self, token: str) -> int:
        return self.store.doc.tg_offsets.get(bot_key(token), 0)

    async def poll_bot(self, bot: BotIdentity, handler: UpdateHandler) -> int:
        """Run one cycle for one bot. Returns the number of updates dispatched."""
        key = bot_key(bot.token)
        last = self.store.doc.tg_offsets.get(key, 0)

        updates = await self.transport.get_updates(bot.token, last, long_poll=self.long_poll)
        if updates is None:
            return 0

        dispatched = 0
        for update in updates:
            if update.sequence_id <= self.store.doc.tg_offsets.get(key, 0):
                continue
            self.store.doc.tg_offsets[key] = update.sequence_id
            dispatched += 1
            try:
                await handler(update)
            except Exception as e:
                logger.warning(f"[{bot.name}] handler failed on update {update.sequence_id}: {e}", exc_info=True)

        if updates:
            self.store.persist()
        return dispatched

    async def poll_all(self) -> None:
        for bot, handler in self.bots:
            try:
                await self.poll_bot(bot, handler)
            except Exception as e:
                logger.warning(f"[{bot.name}] polling cycle failed: {e}", exc_info=True)

    async def run_forever(self) -> None:
        logger.info(f"Polling {len(self.bots)} bot(s) every {self.interval}s")
        while True:
            await self.poll_all()
            await asyncio.sleep(self.interval)


def build_poll_loop(store: CacheStore, transport: TelegramTransport, settings: Settings,
                    reply_handler: UpdateHandler, admin_handler: Optional[UpdateHandler] = None) -> PollLoop:
    """Wire each configured bot to its handler: admin commands or desk replies."""
    bots = []
    for bot in settings.polled_bots():
        if bot.name == "admin_cmd":
            if admin_handler is not None:
                bots.append((bot, admin_handler))
        else:
            bots.append((bot, reply_handler))
    return PollLoop(
        store,
        transport,
        bots,
        interval=settings.poll_interval_seconds,
        long_poll=settings.poll_long_poll_seconds,
    )
