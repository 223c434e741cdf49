"""
Admin command bot: block and unblock personal numbers.

    حظر الرقم الشخصي: 1234567          -> block
    الغاء الحظر الرقم الشخصي: 1234567  -> unblock
"""

import re

from balancedesk.store import CacheStore
from .logging_config import bot_logger as logger
from .telegram_api import InboundUpdate

BLOCK_PATTERN = re.compile(r"^حظر", re.IGNORECASE)
UNBLOCK_PATTERN = re.compile(r"^(الغاء|إلغاء) الحظر", re.IGNORECASE)
PERSONAL_PATTERN = re.compile(r"الرقم الشخصي[:\s]*([0-9]+)", re.IGNORECASE)


class AdminCommandHandler:

    def __init__(self, store: CacheStore):
        self.store = store

    async def handle(self, update: InboundUpdate) -> None:
        text = update.text.strip()
        if not text:
            return

        match = PERSONAL_PATTERN.search(text)
        if not match:
            return
        personal = match.group(1)

        if BLOCK_PATTERN.search(text):
            if personal not in self.store.doc.blocked:
                self.store.doc.blocked.append(personal)
                self.store.persist()
                logger.info(f"Blocked {personal}")
        elif UNBLOCK_PATTERN.search(text):
            self.store.doc.blocked = [p for p in self.store.doc.blocked if p != personal]
            self.store.persist()
            logger.info(f"Unblocked {personal}")
