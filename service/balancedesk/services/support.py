"""
Help requests and offer acknowledgements. Both only post to their desk.
"""

import logging
from typing import Optional

from balancedesk.config import Settings, get_settings
from balancedesk.store import CacheStore

logger = logging.getLogger(__name__)


class SupportService:

    def __init__(self, store: CacheStore, transport, settings: Settings = None):
        self.store = store
        self.transport = transport
        self.settings = settings or get_settings()

    async def send_help_request(self, personal: str, issue: str, desc: str = "", file_link: str = "",
                                name: str = "", email: str = "", phone: str = ""):
        profile = self.store.ensure_profile(personal)
        text = (
            "مشكلة من المستخدم:\n"
            f"الاسم: {name or profile.name or 'غير معروف'}\n"
            f"الرقم الشخصي: {personal}\n"
            f"الهاتف: {phone or profile.phone or 'لا يوجد'}\n"
            f"البريد: {email or profile.email or 'لا يوجد'}\n"
            f"المشكلة: {issue}\n"
            f"الوصف: {desc}\n"
            f"رابط الملف: {file_link or 'لا يوجد'}"
        )
        desk = self.settings.bot("help")
        result = await self.transport.send_message(
            desk.token, desk.chat_id, text, timeout=self.settings.send_timeout_seconds
        )
        if not result.delivered:
            logger.warning(f"Help request from {personal} not delivered: {result.error}")
        return result

    async def acknowledge_offer(self, personal: str, offer_id):
        profile = self.store.ensure_profile(personal)
        offer = next((o for o in self.store.doc.offers if str(o.id) == str(offer_id)), None)
        text = (
            "لقد حصل على العرض او الهدية\n"
            f"الرقم الشخصي: {personal}\n"
            f"البريد: {profile.email or 'لا يوجد'}\n"
            f"الهاتف: {profile.phone or 'لا يوجد'}\n"
            f"العرض: {offer.text if offer else 'غير معروف'}"
        )
        desk = self.settings.bot("offers")
        result = await self.transport.send_message(
            desk.token, desk.chat_id, text, timeout=self.settings.send_timeout_seconds
        )
        if not result.delivered:
            logger.warning(f"Offer ack from {personal} not delivered: {result.error}")
        return result


# Singleton instance
_support_service: Optional[SupportService] = None


def get_support_service() -> SupportService:
    global _support_service
    if _support_service is None:
        from balancedesk.store import get_store
        from balancedesk.telegram_bot.telegram_api import get_transport

        _support_service = SupportService(get_store(), get_transport())
    return _support_service
