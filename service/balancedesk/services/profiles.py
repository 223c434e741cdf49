"""
Profiles: registration, login sync with the ledger, login numbers and the
one-shot edit permission granted from the login-report desk.
"""

import asyncio
import logging
import random
import re
from dataclasses import dataclass
from typing import Optional

from balancedesk.config import Settings, get_settings
from balancedesk.ledger_client import LedgerRow
from balancedesk.models import Profile, utc_now_iso
from balancedesk.store import CacheStore

logger = logging.getLogger(__name__)

PERSONAL_NUMBER_PATTERN = re.compile(r"^\d{7}$")
NEW_USER_NAME = "مستخدم جديد"
UNKNOWN_NAME = "غير معروف"


@dataclass
class ProfileResult:
    ok: bool
    profile: Optional[Profile] = None
    error: Optional[str] = None
    message_id: Optional[int] = None


def ledger_row_for(profile: Profile) -> LedgerRow:
    return LedgerRow(
        personal_number=profile.personal_number,
        name=profile.name,
        email=profile.email,
        password=profile.password,
        phone=profile.phone,
        balance=profile.balance,
        login_number=profile.login_number,
    )


class ProfileService:

    def __init__(self, store: CacheStore, ledger, transport, settings: Settings = None):
        self.store = store
        self.ledger = ledger
        self.transport = transport
        self.settings = settings or get_settings()
        self._login_number_lock = asyncio.Lock()

    async def _report(self, text: str) -> None:
        desk = self.settings.bot("login_report")
        result = await self.transport.send_message(
            desk.token, desk.chat_id, text, timeout=self.settings.send_timeout_seconds
        )
        if not result.delivered:
            logger.warning(f"Login report not delivered: {result.error}")

    def _random_personal_number(self) -> str:
        while True:
            candidate = str(random.randint(1000000, 9999999))
            if self.store.find_profile(candidate) is None:
                return candidate

    # ------------------------------------------------------------------
    # register / login
    # ------------------------------------------------------------------

    async def register(self, personal: Optional[str], name: str = "", email: str = "",
                       password: str = "", phone: str = "") -> ProfileResult:
        if not personal:
            return ProfileResult(ok=False, error="missing_personal_number")

        profile = self.store.find_profile(personal)
        if profile is None:
            profile = Profile(
                personal_number=str(personal),
                name=name or UNKNOWN_NAME,
                email=email,
                password=password,
                phone=phone,
            )
            self.store.doc.profiles.append(profile)
        else:
            profile.name = name or profile.name
            profile.email = email or profile.email
            profile.password = password or profile.password
            profile.phone = phone or profile.phone
        self.store.persist()

        if not await self.ledger.upsert_row(ledger_row_for(profile)):
            logger.warning(f"Ledger row for {profile.personal_number} not written on register")

        await self._report(
            "تسجيل مستخدم جديد:\n"
            f"الاسم: {profile.name}\n"
            f"البريد: {profile.email or 'لا يوجد'}\n"
            f"الهاتف: {profile.phone or 'لا يوجد'}\n"
            f"الرقم الشخصي: {profile.personal_number}\n"
            f"كلمة السر: {profile.password or '---'}"
        )
        return ProfileResult(ok=True, profile=profile)

    async def login(self, personal: Optional[str] = None, email: Optional[str] = None,
                    password: Optional[str] = None, name: str = "", phone: str = "") -> ProfileResult:
        """
        Find or create the profile, sync it with the ledger and make sure it
        has a login number.

        Unknown users are created on the spot. A personal number that is not
        exactly 7 digits is replaced by a fresh random one.
        """
        if personal and self.store.is_blocked(personal):
            return ProfileResult(ok=False, error="blocked")

        profile = None
        if personal:
            profile = self.store.find_profile(personal)
        elif email:
            profile = self.store.find_profile_by_email(email)

        if profile is None:
            new_personal = str(personal) if personal else ""
            if not PERSONAL_NUMBER_PATTERN.match(new_personal):
                new_personal = self._random_personal_number()
            profile = Profile(
                personal_number=new_personal,
                name=name or NEW_USER_NAME,
                email=email or "",
                password=password or "",
                phone=phone or "",
            )
            self.store.doc.profiles.append(profile)
            self.store.persist()
            logger.info(f"Created profile {new_personal} on first login")
        elif profile.password and str(password or "") != profile.password:
            return ProfileResult(ok=False, error="invalid_password")

        if self.store.is_blocked(profile.personal_number):
            return ProfileResult(ok=False, error="blocked")

        await self._sync_from_ledger(profile)
        if not profile.login_number:
            await self.assign_login_number(profile)

        profile.last_login = utc_now_iso()
        self.store.persist()

        await self._report(
            "تسجيل دخول/تسجيل جديد:\n"
            f"الاسم: {profile.name or UNKNOWN_NAME}\n"
            f"الرقم الشخصي: {profile.personal_number}\n"
            f"رقم الدخول: {profile.login_number or '---'}\n"
            f"الهاتف: {profile.phone or 'لا يوجد'}\n"
            f"البريد: {profile.email or 'لا يوجد'}\n"
            f"الوقت: {profile.last_login}"
        )
        return ProfileResult(ok=True, profile=profile)

    async def _sync_from_ledger(self, profile: Profile) -> None:
        """Ledger balance and login number win; missing name/email are filled in."""
        async with self.store.profile_lock(profile.personal_number):
            row = await self.ledger.get_row(profile.personal_number)
            if row is None:
                await self.ledger.upsert_row(ledger_row_for(profile))
                return

            profile.balance = row.balance
            profile.name = profile.name or row.name
            profile.email = profile.email or row.email
            if row.login_number:
                profile.login_number = row.login_number
            self.store.persist()

    async def assign_login_number(self, profile: Profile) -> int:
        """Allocate from the ledger when reachable, else locally as max + 1."""
        async with self._login_number_lock:
            if profile.login_number:
                return profile.login_number

            assigned = await self.ledger.assign_next_login_number(profile.personal_number)
            if assigned:
                profile.login_number = assigned
                await self.ledger.upsert_row(ledger_row_for(profile))
            else:
                taken = [p.login_number for p in self.store.doc.profiles if p.login_number]
                profile.login_number = max(taken, default=0) + 1
                logger.info(f"Ledger unreachable; local login number {profile.login_number} for {profile.personal_number}")

            self.store.persist()
            return profile.login_number

    # ------------------------------------------------------------------
    # edit permission
    # ------------------------------------------------------------------

    async def request_edit(self, personal: Optional[str]) -> ProfileResult:
        """Ask the login-report desk for a one-time edit; replying "تم" grants it."""
        if not personal:
            return ProfileResult(ok=False, error="missing_personal")

        profile = self.store.ensure_profile(personal)
        desk = self.settings.bot("login_report")
        sent = await self.transport.send_message(
            desk.token,
            desk.chat_id,
            "طلب تعديل بيانات المستخدم:\n"
            f"الاسم: {profile.name or UNKNOWN_NAME}\n"
            f"الرقم الشخصي: {profile.personal_number}\n"
            '(اكتب "تم" كرد هنا للموافقة على التعديل لمرة واحدة)',
            timeout=self.settings.send_timeout_seconds,
        )
        if not sent.delivered or not sent.message_id:
            logger.warning(f"Edit request for {personal} not delivered: {sent.error}")
            return ProfileResult(ok=False, profile=profile, error="telegram_send_failed")

        self.store.doc.profile_edit_requests[str(sent.message_id)] = profile.personal_number
        self.store.persist()
        return ProfileResult(ok=True, profile=profile, message_id=sent.message_id)

    def submit_edit(self, personal: Optional[str], name: str = "", email: str = "",
                    phone: str = "", password: str = "") -> ProfileResult:
        """Apply an approved edit and consume the permission."""
        if not personal:
            return ProfileResult(ok=False, error="missing_personal")

        profile = self.store.find_profile(personal)
        if profile is None:
            return ProfileResult(ok=False, error="not_found")
        if not profile.can_edit:
            return ProfileResult(ok=False, error="edit_not_allowed")

        if name:
            profile.name = name
        if email:
            profile.email = email
        if phone:
            profile.phone = phone
        if password:
            profile.password = password
        profile.can_edit = False
        self.store.persist()
        return ProfileResult(ok=True, profile=profile)


# Singleton instance
_profile_service: Optional[ProfileService] = None


def get_profile_service() -> ProfileService:
    global _profile_service
    if _profile_service is None:
        from balancedesk.ledger_client import get_ledger
        from balancedesk.store import get_store
        from balancedesk.telegram_bot.telegram_api import get_transport

        _profile_service = ProfileService(get_store(), get_ledger(), get_transport())
    return _profile_service
