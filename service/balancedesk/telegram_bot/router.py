"""
Reply router for the review desks.

Operators answer order, charge and profile-edit messages by replying to them
in Telegram. The router maps a reply back to the record it answers and applies
the classified intent:

    reply to message M
      -> open Order with telegram_message_id == M
      -> open Charge with telegram_message_id == M
      -> pending profile-edit request keyed by M
    no reply / no match
      -> direct notification ("... الرقم الشخصي: <id>")
      -> offer announcement ("عرض ..." / "هدية ...")
      -> dropped

Message ids are assumed unique across the three namespaces; the first match wins.
"""

from enum import Enum
from typing import Optional

from balancedesk.models import Charge, Order
from balancedesk.services.notifications import append_notification, append_offer
from balancedesk.services.reconciler import BalanceReconciler
from balancedesk.store import CacheStore
from .intents import (
    CHARGE_STATUSES,
    ORDER_STATUSES,
    is_edit_approval,
    is_offer,
    parse_credit_instruction,
    parse_direct_notification,
    resolve_status,
)
from .logging_config import bot_logger as logger
from .telegram_api import InboundUpdate

EDIT_APPROVED_TEXT = "تم قبول طلبك بتعديل معلوماتك الشخصية. تحقق من ذلك في ملفك الشخصي."


class RouteOutcome(str, Enum):
    ORDER = "order"
    CHARGE = "charge"
    CREDIT = "credit"
    PROFILE_EDIT = "profile_edit"
    DIRECT = "direct"
    OFFER = "offer"
    IGNORED = "ignored"


class ReplyRouter:
    """Dispatches inbound desk messages to the record they answer."""

    def __init__(self, store: CacheStore, reconciler: BalanceReconciler):
        self.store = store
        self.reconciler = reconciler

    async def handle(self, update: InboundUpdate) -> RouteOutcome:
        if not update.has_message:
            return RouteOutcome.IGNORED

        text = update.text.strip()

        if update.reply_to_message_id is not None:
            outcome = await self._route_reply(update.reply_to_message_id, text)
            if outcome is not None:
                return outcome

        direct = parse_direct_notification(text)
        if direct:
            personal, body = direct
            append_notification(self.store, personal, body, kind="direct")
            self.store.persist()
            logger.info(f"Direct notification queued for {personal}")
            return RouteOutcome.DIRECT

        if is_offer(text):
            offer = append_offer(self.store, text)
            self.store.persist()
            logger.info(f"Offer {offer.id} published")
            return RouteOutcome.OFFER

        return RouteOutcome.IGNORED

    async def _route_reply(self, message_id: int, text: str) -> Optional[RouteOutcome]:
        order = self.store.find_order_by_message(message_id)
        if order:
            return self._resolve_order(order, text)

        charge = self.store.find_charge_by_message(message_id)
        if charge:
            return await self._resolve_charge(charge, text)

        if str(message_id) in self.store.doc.profile_edit_requests:
            return self._resolve_profile_edit(str(message_id), text)

        return None

    def _resolve_order(self, order: Order, text: str) -> RouteOutcome:
        order.status = resolve_status(text, ORDER_STATUSES)
        order.replied = True
        append_notification(
            self.store,
            order.personal_number,
            f"تحديث حالة الطلب #{order.id}: {order.status}",
            kind="order",
        )
        self.store.persist()
        logger.info(f"Order {order.id} resolved: {order.status}")
        return RouteOutcome.ORDER

    async def _resolve_charge(self, charge: Charge, text: str) -> RouteOutcome:
        # A credited charge is final: no reply may re-credit it or overwrite its status
        if charge.credited_amount is not None:
            logger.warning(f"Charge {charge.id} already credited {charge.credited_amount}; ignoring reply")
            return RouteOutcome.IGNORED

        # Structured credit replies often start with "تم", so they are tested first
        instruction = parse_credit_instruction(text)
        if instruction:
            profile = self.store.find_profile(instruction.personal)
            if profile:
                result = await self.reconciler.credit_charge(charge, profile, instruction.amount)
                logger.info(f"Charge {charge.id} credit to {profile.personal_number}: ok={result.ok}")
                return RouteOutcome.CREDIT
            logger.warning(f"Credit reply for unknown profile {instruction.personal}; treating as status text")

        charge.status = resolve_status(text, CHARGE_STATUSES)
        charge.replied = True
        append_notification(
            self.store,
            charge.personal_number,
            f"تحديث حالة شحن الرصيد #{charge.id}: {charge.status}",
            kind="charge-status",
        )
        self.store.persist()
        logger.info(f"Charge {charge.id} resolved: {charge.status}")
        return RouteOutcome.CHARGE

    def _resolve_profile_edit(self, message_id: str, text: str) -> RouteOutcome:
        # Consumed exactly once, whatever the reply says
        personal = self.store.doc.profile_edit_requests.pop(message_id)

        if is_edit_approval(text):
            profile = self.store.find_profile(personal)
            if profile:
                profile.can_edit = True
                append_notification(self.store, personal, EDIT_APPROVED_TEXT, kind="edit")
                logger.info(f"Profile edit approved for {personal}")
        else:
            logger.info(f"Profile edit request for {personal} discarded")

        self.store.persist()
        return RouteOutcome.PROFILE_EDIT
