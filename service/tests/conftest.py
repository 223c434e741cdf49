"""
Shared fixtures: an on-disk cache store plus in-memory fakes for the ledger
and the Telegram transport.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import pytest

from balancedesk.config import Settings
from balancedesk.ledger_client import LedgerRow
from balancedesk.models import Profile
from balancedesk.services.reconciler import BalanceReconciler
from balancedesk.store import CacheStore
from balancedesk.telegram_bot.router import ReplyRouter
from balancedesk.telegram_bot.telegram_api import InboundUpdate, SendResult


class FakeLedger:
    """In-memory Profiles sheet with switchable failures."""

    def __init__(self):
        self.rows: dict[str, LedgerRow] = {}
        self.reachable = True
        self.fail_writes = False
        self.balance_writes: list[tuple[str, Decimal]] = []
        self.yield_on_read = False

    def set_balance(self, personal: str, balance) -> None:
        row = self.rows.setdefault(personal, LedgerRow(personal_number=personal))
        row.balance = Decimal(str(balance))

    async def get_row(self, personal: str) -> Optional[LedgerRow]:
        if self.yield_on_read:
            await asyncio.sleep(0)
        if not self.reachable:
            return None
        return self.rows.get(str(personal))

    async def upsert_row(self, row: LedgerRow) -> bool:
        if not self.reachable or self.fail_writes:
            return False
        self.rows[row.personal_number] = row
        return True

    async def update_balance(self, personal: str, value: Decimal) -> bool:
        if not self.reachable or self.fail_writes:
            return False
        self.set_balance(str(personal), value)
        self.balance_writes.append((str(personal), value))
        return True

    async def assign_next_login_number(self, personal: str) -> Optional[int]:
        if not self.reachable or self.fail_writes:
            return None
        row = self.rows.get(str(personal))
        if row and row.login_number:
            return row.login_number
        taken = [r.login_number for r in self.rows.values() if r.login_number]
        number = max(taken, default=0) + 1
        if row is None:
            row = LedgerRow(personal_number=str(personal))
            self.rows[str(personal)] = row
        row.login_number = number
        return number


@dataclass
class SentMessage:
    token: str
    chat_id: str
    text: str


class FakeTransport:
    """Records outbound messages and serves queued updates per token."""

    def __init__(self):
        self.sent: list[SentMessage] = []
        self.deliver = True
        self.next_message_id = 100
        self.updates: dict[str, list[InboundUpdate]] = {}
        self.fail_polls = False
        self.ignore_offset = False
        self.polls: list[tuple[str, int]] = []

    async def send_message(self, token, chat_id, text, timeout=5.0) -> SendResult:
        self.sent.append(SentMessage(token, chat_id, text))
        if not self.deliver:
            return SendResult(delivered=False, error="timeout")
        message_id = self.next_message_id
        self.next_message_id += 1
        return SendResult(delivered=True, message_id=message_id)

    async def get_updates(self, token, after, long_poll=20):
        self.polls.append((token, after))
        if self.fail_polls:
            return None
        queued = self.updates.get(token, [])
        if self.ignore_offset:
            return list(queued)
        return [u for u in queued if u.sequence_id > after]

    def sent_to(self, token: str) -> list[SentMessage]:
        return [m for m in self.sent if m.token == token]


def make_update(sequence_id: int, text: str, reply_to: Optional[int] = None) -> InboundUpdate:
    return InboundUpdate(
        sequence_id=sequence_id,
        has_message=True,
        text=text,
        reply_to_message_id=reply_to,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        bot_order_token="order-token", bot_order_chat="-1001",
        bot_balance_token="balance-token", bot_balance_chat="-1002",
        bot_admin_cmd_token="admin-token", bot_admin_cmd_chat="-1003",
        bot_login_report_token="login-token", bot_login_report_chat="-1004",
        bot_notify_token="notify-token", bot_notify_chat="-1005",
        bot_offers_token="offers-token", bot_offers_chat="-1006",
        data_file=str(tmp_path / "data.json"),
    )


@pytest.fixture
def store(settings) -> CacheStore:
    s = CacheStore(settings.data_file)
    s.load()
    return s


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def reconciler(store, ledger, transport, settings) -> BalanceReconciler:
    return BalanceReconciler(store, ledger, transport, settings)


@pytest.fixture
def router(store, reconciler) -> ReplyRouter:
    return ReplyRouter(store, reconciler)


@pytest.fixture
def add_profile(store, ledger):
    """Create a profile in the cache and, optionally, the ledger."""
    def _add(personal: str, balance=0, in_ledger: bool = True, **fields) -> Profile:
        profile = Profile(personal_number=personal, balance=Decimal(str(balance)), **fields)
        store.doc.profiles.append(profile)
        if in_ledger:
            ledger.set_balance(personal, balance)
        store.persist()
        return profile
    return _add
