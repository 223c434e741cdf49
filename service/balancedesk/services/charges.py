"""
Balance charge (top-up) submission.

Unlike orders, a charge is stored before its review message is sent. A failed
send leaves the charge uncorrelated: it stays pending until handled by hand.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from balancedesk.config import Settings, get_settings
from balancedesk.models import Charge
from balancedesk.store import CacheStore

logger = logging.getLogger(__name__)


@dataclass
class ChargeResult:
    ok: bool
    charge: Optional[Charge] = None
    error: Optional[str] = None


class ChargeService:

    def __init__(self, store: CacheStore, transport, settings: Settings = None):
        self.store = store
        self.transport = transport
        self.settings = settings or get_settings()

    async def submit(
        self,
        personal: Optional[str],
        amount,
        phone: str = "",
        method: str = "",
        file_link: str = "",
    ) -> ChargeResult:
        if not personal or amount in (None, ""):
            return ChargeResult(ok=False, error="missing_fields")
        if self.store.is_blocked(personal):
            return ChargeResult(ok=False, error="blocked")

        profile = self.store.ensure_profile(personal)
        charge = Charge(
            id=self.store.next_record_id(),
            personal_number=str(personal),
            phone=phone or profile.phone,
            amount=str(amount),
            method=method,
            file_link=file_link,
        )
        self.store.doc.charges.insert(0, charge)
        self.store.persist()

        text = (
            "طلب شحن رصيد:\n\n"
            f"رقم شخصي: {personal}\n"
            f"الهاتف: {charge.phone or 'لا يوجد'}\n"
            f"المبلغ: {amount}\n"
            f"طريقة الدفع: {method}\n"
            f"رابط الملف: {file_link}\n"
            f"معرف الطلب: {charge.id}"
        )
        desk = self.settings.bot("balance")
        sent = await self.transport.send_message(
            desk.token, desk.chat_id, text, timeout=self.settings.send_timeout_seconds
        )
        if sent.delivered and sent.message_id:
            charge.telegram_message_id = sent.message_id
            self.store.persist()
        else:
            logger.warning(f"Charge {charge.id} message not delivered: {sent.error}")

        return ChargeResult(ok=True, charge=charge)


# Singleton instance
_charge_service: Optional[ChargeService] = None


def get_charge_service() -> ChargeService:
    global _charge_service
    if _charge_service is None:
        from balancedesk.store import get_store
        from balancedesk.telegram_bot.telegram_api import get_transport

        _charge_service = ChargeService(get_store(), get_transport())
    return _charge_service
