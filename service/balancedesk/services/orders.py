"""
Order submission.

An order is only created after its review message reached the orders desk.
Orders paid from balance are validated before the send and debited after it,
through the reconciler, so every stored order with paid_with_balance=True has
a confirmed ledger debit behind it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from balancedesk.config import Settings, get_settings
from balancedesk.models import Order, Profile
from balancedesk.services.reconciler import BalanceReconciler
from balancedesk.store import CacheStore
from balancedesk.utils.amounts import parse_amount

logger = logging.getLogger(__name__)


@dataclass
class OrderResult:
    ok: bool
    order: Optional[Order] = None
    profile: Optional[Profile] = None
    error: Optional[str] = None
    details: Optional[str] = None


class OrderService:

    def __init__(self, store: CacheStore, transport, reconciler: BalanceReconciler, settings: Settings = None):
        self.store = store
        self.transport = transport
        self.reconciler = reconciler
        self.settings = settings or get_settings()

    async def submit(
        self,
        personal: Optional[str],
        type: Optional[str],
        item: Optional[str],
        phone: str = "",
        id_field: str = "",
        file_link: str = "",
        cash_method: str = "",
        paid_with_balance: bool = False,
        paid_amount=None,
    ) -> OrderResult:
        if not personal or not type or not item:
            return OrderResult(ok=False, error="missing_fields")
        if self.store.is_blocked(personal):
            return OrderResult(ok=False, error="blocked")

        price = parse_amount(paid_amount)
        if paid_with_balance and (price is None or price <= 0):
            return OrderResult(ok=False, error="invalid_paid_amount")

        profile = self.store.ensure_profile(personal)

        if paid_with_balance:
            current = await self.reconciler.current_balance(profile)
            if current < price:
                logger.info(f"Order refused for {personal}: balance {current} < {price}")
                return OrderResult(ok=False, error="insufficient_balance")

        text = (
            "طلب شحن جديد:\n\n"
            f"رقم شخصي: {personal}\n"
            f"الهاتف: {phone or 'لا يوجد'}\n"
            f"النوع: {type}\n"
            f"التفاصيل: {item}\n"
            f"الايدي: {id_field}\n"
            f"طريقة الدفع: {cash_method}\n"
            f"رابط الملف: {file_link}"
        )
        desk = self.settings.bot("order")
        sent = await self.transport.send_message(
            desk.token, desk.chat_id, text, timeout=self.settings.send_timeout_seconds
        )
        if not sent.delivered:
            logger.warning(f"Order message for {personal} not delivered: {sent.error}")
            return OrderResult(ok=False, error="telegram_send_failed", details=sent.error or "no_response")

        if paid_with_balance:
            debit = await self.reconciler.debit_for_order(profile, price)
            if not debit.ok:
                logger.warning(f"Order for {personal} dropped after send: {debit.error}")
                return OrderResult(ok=False, error=debit.error)

        order = Order(
            id=self.store.next_record_id(),
            personal_number=str(personal),
            phone=phone or profile.phone,
            type=type,
            item=item,
            id_field=id_field,
            file_link=file_link,
            cash_method=cash_method,
            telegram_message_id=sent.message_id,
            paid_with_balance=bool(paid_with_balance),
            paid_amount=price if price is not None else 0,
        )
        self.store.doc.orders.insert(0, order)
        self.store.persist()
        logger.info(f"Order {order.id} created for {personal} (message {sent.message_id})")
        return OrderResult(ok=True, order=order, profile=profile)


# Singleton instance
_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    global _order_service
    if _order_service is None:
        from balancedesk.services.reconciler import get_reconciler
        from balancedesk.store import get_store
        from balancedesk.telegram_bot.telegram_api import get_transport

        _order_service = OrderService(get_store(), get_transport(), get_reconciler())
    return _order_service
