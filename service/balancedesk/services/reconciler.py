"""
Balance reconciler.

The ledger sheet is the commit point. Balance changes are written remote
first and mirrored into the local cache only after the ledger accepted them,
so the cache never shows a balance the next login would not read back.
When the ledger write fails the record gets a reconciliation-failed status,
an operator alert goes out on the notify bot, and nothing is retried.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from balancedesk.config import Settings, get_settings
from balancedesk.models import Charge, Profile
from balancedesk.services.notifications import append_notification
from balancedesk.store import CacheStore
from balancedesk.utils.amounts import format_amount

logger = logging.getLogger(__name__)

CREDIT_APPLIED_STATUS = "تم تحويل الرصيد"
RECONCILIATION_FAILED_STATUS = "فشل تحديث الشيت"
CURRENCY = "ل.س"


@dataclass
class ReconcileResult:
    """Outcome of a balance change."""
    ok: bool
    personal: str
    delta: Decimal
    old_balance: Optional[Decimal] = None
    new_balance: Optional[Decimal] = None
    error: Optional[str] = None  # "sheet_update_failed" | "insufficient_balance"


class BalanceReconciler:
    """Applies balance deltas to the ledger, then to the local cache."""

    def __init__(self, store: CacheStore, ledger, transport, settings: Settings = None):
        self.store = store
        self.ledger = ledger
        self.transport = transport
        self.settings = settings or get_settings()

    async def current_balance(self, profile: Profile) -> Decimal:
        """Ledger balance when reachable, cached balance otherwise."""
        row = await self.ledger.get_row(profile.personal_number)
        if row is not None:
            return row.balance
        return profile.balance

    async def credit_charge(self, charge: Charge, profile: Profile, amount: Decimal) -> ReconcileResult:
        """
        Apply a structured "credit <amount> to <personal>" charge reply.

        Resolves the charge either way: CREDIT_APPLIED_STATUS on success,
        RECONCILIATION_FAILED_STATUS when the ledger rejected the write.
        """
        result = await self._apply(profile, amount, action="شحن")

        charge.replied = True
        if result.ok:
            charge.status = CREDIT_APPLIED_STATUS
            charge.credited_amount = amount
            append_notification(
                self.store,
                profile.personal_number,
                f"تم شحن رصيدك بمبلغ {format_amount(amount)} {CURRENCY}. "
                f"رصيدك الآن: {format_amount(result.new_balance)} {CURRENCY}",
                kind="balance",
            )
        else:
            charge.status = RECONCILIATION_FAILED_STATUS

        self.store.persist()
        return result

    async def debit_for_order(self, profile: Profile, amount: Decimal) -> ReconcileResult:
        """Take an order payment from the balance. Refuses to go below zero."""
        result = await self._apply(profile, -amount, action="خصم", allow_negative=False)
        if result.ok:
            append_notification(
                self.store,
                profile.personal_number,
                f"تم خصم {format_amount(amount)} {CURRENCY} من رصيدك. "
                f"رصيدك الآن: {format_amount(result.new_balance)} {CURRENCY}",
                kind="debit",
            )
            self.store.persist()
        return result

    async def _apply(self, profile: Profile, delta: Decimal, action: str, allow_negative: bool = True) -> ReconcileResult:
        personal = profile.personal_number

        async with self.store.profile_lock(personal):
            current = await self.current_balance(profile)
            new_balance = current + delta

            if not allow_negative and new_balance < 0:
                logger.info(f"Balance change refused for {personal}: {current} {delta:+}")
                return ReconcileResult(
                    ok=False, personal=personal, delta=delta,
                    old_balance=current, error="insufficient_balance",
                )

            written = await self.ledger.update_balance(personal, new_balance)
            if not written:
                logger.error(
                    f"Ledger update failed for {personal}: attempted delta {delta:+} "
                    f"({current} -> {new_balance}); local balance left at {profile.balance}"
                )
                await self._alert(
                    f"فشل تحديث الشيت عند {action} الرصيد للمستخدم {personal} بالمبلغ {format_amount(abs(delta))}"
                )
                return ReconcileResult(
                    ok=False, personal=personal, delta=delta,
                    old_balance=current, error="sheet_update_failed",
                )

            profile.balance = new_balance
            self.store.persist()

        logger.info(f"Balance of {personal} changed {current} -> {new_balance}")
        return ReconcileResult(
            ok=True, personal=personal, delta=delta,
            old_balance=current, new_balance=new_balance,
        )

    async def _alert(self, text: str) -> None:
        notify = self.settings.bot("notify")
        result = await self.transport.send_message(
            notify.token, notify.chat_id, text, timeout=self.settings.alert_timeout_seconds
        )
        if not result.delivered:
            logger.error(f"Operator alert not delivered ({result.error}): {text}")


# Singleton instance
_reconciler: Optional[BalanceReconciler] = None


def get_reconciler() -> BalanceReconciler:
    global _reconciler
    if _reconciler is None:
        from balancedesk.ledger_client import get_ledger
        from balancedesk.store import get_store
        from balancedesk.telegram_bot.telegram_api import get_transport

        _reconciler = BalanceReconciler(get_store(), get_ledger(), get_transport())
    return _reconciler
