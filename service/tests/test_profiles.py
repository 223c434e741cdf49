"""
Tests for registration, login sync, login numbers and edit permissions.
"""

from decimal import Decimal

import pytest

from balancedesk.ledger_client import LedgerRow
from balancedesk.models import Offer
from balancedesk.services import notifications
from balancedesk.services.profiles import ProfileService
from balancedesk.services.support import SupportService

from conftest import make_update


@pytest.fixture
def profiles(store, ledger, transport, settings) -> ProfileService:
    return ProfileService(store, ledger, transport, settings)


class TestLogin:

    async def test_login_number_is_stable(self, profiles, ledger):
        first = await profiles.login("9999999", password="pw", name="Sami")
        second = await profiles.login("9999999", password="pw")

        assert first.ok and second.ok
        assert first.profile.login_number == 1
        assert second.profile.login_number == 1
        assert ledger.rows["9999999"].login_number == 1

    async def test_login_numbers_increase(self, profiles):
        a = await profiles.login("1111111")
        b = await profiles.login("2222222")
        assert (a.profile.login_number, b.profile.login_number) == (1, 2)

    async def test_non_seven_digit_id_gets_random_one(self, profiles, store):
        result = await profiles.login("12", name="x")

        assert result.ok
        assert len(result.profile.personal_number) == 7
        assert result.profile.personal_number.isdigit()
        assert store.find_profile("12") is None

    async def test_login_by_email(self, profiles, add_profile):
        add_profile("4000001", email="Sami@Example.com")
        result = await profiles.login(email="sami@example.com")
        assert result.profile.personal_number == "4000001"

    async def test_wrong_password(self, profiles, add_profile):
        add_profile("4000001", password="secret")
        result = await profiles.login("4000001", password="nope")
        assert result.error == "invalid_password"

    async def test_blocked(self, profiles, store):
        store.doc.blocked.append("4000001")
        result = await profiles.login("4000001")
        assert result.error == "blocked"

    async def test_ledger_values_win(self, profiles, ledger, add_profile):
        profile = add_profile("4000001", balance=10, in_ledger=False)
        ledger.rows["4000001"] = LedgerRow(personal_number="4000001", name="Sami", balance=Decimal("900"), login_number=7)

        result = await profiles.login("4000001")

        assert result.profile is profile
        assert profile.balance == Decimal("900")
        assert profile.login_number == 7
        assert profile.name == "Sami"

    async def test_unreachable_ledger_uses_local_numbers(self, profiles, ledger, add_profile):
        add_profile("4000001", login_number=4, in_ledger=False)
        ledger.reachable = False

        result = await profiles.login("4000002")

        assert result.profile.login_number == 5
        assert result.profile.last_login

    async def test_login_report_sent(self, profiles, transport):
        await profiles.login("4000001", name="Sami")
        reports = transport.sent_to("login-token")
        assert len(reports) == 1
        assert "4000001" in reports[0].text


class TestRegister:

    async def test_register_writes_cache_and_ledger(self, profiles, store, ledger):
        result = await profiles.register("4000001", name="Sami", email="s@x.com", password="pw", phone="0999")

        assert result.ok
        assert store.find_profile("4000001").email == "s@x.com"
        assert ledger.rows["4000001"].name == "Sami"

    async def test_register_requires_personal_number(self, profiles):
        result = await profiles.register(None, name="Sami")
        assert result.error == "missing_personal_number"


class TestEditPermission:

    async def test_request_then_approve_then_submit(self, profiles, router, store, add_profile):
        profile = add_profile("4000001", name="Sami")
        requested = await profiles.request_edit("4000001")
        assert requested.ok
        assert store.doc.profile_edit_requests[str(requested.message_id)] == "4000001"

        rejected = profiles.submit_edit("4000001", name="Other")
        assert rejected.error == "edit_not_allowed"

        await router.handle(make_update(1, "تم", reply_to=requested.message_id))
        applied = profiles.submit_edit("4000001", name="Sami Z")

        assert applied.ok
        assert profile.name == "Sami Z"
        assert profile.can_edit is False
        assert profiles.submit_edit("4000001", name="Again").error == "edit_not_allowed"

    async def test_request_send_failure(self, profiles, store, transport):
        transport.deliver = False
        result = await profiles.request_edit("4000001")
        assert result.error == "telegram_send_failed"
        assert store.doc.profile_edit_requests == {}

    def test_submit_for_unknown_profile(self, profiles):
        assert profiles.submit_edit("4000001").error == "not_found"


class TestNotificationsView:

    def test_view_collects_records(self, store, add_profile):
        add_profile("4000001")
        notifications.append_notification(store, "4000001", "hello", kind="direct")
        notifications.append_notification(store, "4000002", "other", kind="direct")
        store.doc.offers.append(Offer(id=1, text="عرض"))

        view = notifications.notifications_for(store, "4000001")

        assert [n.text for n in view["notifications"]] == ["hello"]
        assert len(view["offers"]) == 1
        assert notifications.notifications_for(store, "4999999") is None

    def test_offers_hidden_for_short_ids(self, store, add_profile):
        add_profile("123")
        store.doc.offers.append(Offer(id=1, text="عرض"))
        assert notifications.notifications_for(store, "123")["offers"] == []

    def test_mark_read_and_clear(self, store):
        notifications.append_notification(store, "4000001", "a", kind="direct")
        notifications.append_notification(store, "4000001", "b", kind="direct")

        assert notifications.mark_read(store, "4000001") == 2
        assert all(n.read for n in store.doc.notifications)
        assert notifications.clear(store, "4000001") == 2
        assert store.doc.notifications == []


class TestSupport:

    async def test_help_request_goes_to_help_desk(self, store, transport, settings):
        settings.bot_help_token = "help-token"
        settings.bot_help_chat = "-1007"
        support = SupportService(store, transport, settings)

        result = await support.send_help_request("4000001", issue="payment", desc="stuck")

        assert result.delivered
        assert "payment" in transport.sent_to("help-token")[0].text

    async def test_offer_ack_names_offer(self, store, transport, settings):
        store.doc.offers.append(Offer(id=42, text="هدية رمضان"))
        support = SupportService(store, transport, settings)

        await support.acknowledge_offer("4000001", 42)

        assert "هدية رمضان" in transport.sent_to("offers-token")[0].text
