"""
Tests for remote-first balance reconciliation.
"""

import asyncio
from decimal import Decimal

from balancedesk.models import Charge
from balancedesk.services.reconciler import CREDIT_APPLIED_STATUS


def _charge(store, personal="4000001") -> Charge:
    charge = Charge(id=store.next_record_id(), personal_number=personal, amount="100")
    store.doc.charges.insert(0, charge)
    return charge


class TestCurrentBalance:

    async def test_prefers_ledger(self, reconciler, ledger, add_profile):
        profile = add_profile("4000001", balance=10)
        ledger.set_balance("4000001", 700)
        assert await reconciler.current_balance(profile) == Decimal("700")

    async def test_falls_back_to_cache_when_unreachable(self, reconciler, ledger, add_profile):
        profile = add_profile("4000001", balance=10)
        ledger.reachable = False
        assert await reconciler.current_balance(profile) == Decimal("10")


class TestCredit:

    async def test_concurrent_credits_are_serialised(self, store, reconciler, ledger, add_profile):
        """Both deltas land even when the reads interleave."""
        profile = add_profile("4000001", balance=0)
        ledger.yield_on_read = True

        first, second = await asyncio.gather(
            reconciler.credit_charge(_charge(store), profile, Decimal("100")),
            reconciler.credit_charge(_charge(store), profile, Decimal("200")),
        )

        assert first.ok and second.ok
        assert ledger.rows["4000001"].balance == Decimal("300")
        assert profile.balance == Decimal("300")

    async def test_credit_without_ledger_row_creates_it(self, store, reconciler, ledger, add_profile):
        profile = add_profile("4000001", balance=50, in_ledger=False)
        charge = _charge(store)

        result = await reconciler.credit_charge(charge, profile, Decimal("25"))

        # No row to read, so the cached balance is the base
        assert result.new_balance == Decimal("75")
        assert ledger.rows["4000001"].balance == Decimal("75")
        assert charge.status == CREDIT_APPLIED_STATUS

    async def test_unreachable_ledger_leaves_cache_untouched(self, store, reconciler, ledger, transport, add_profile):
        profile = add_profile("4000001", balance=50)
        ledger.reachable = False

        result = await reconciler.credit_charge(_charge(store), profile, Decimal("25"))

        assert not result.ok
        assert result.error == "sheet_update_failed"
        assert profile.balance == Decimal("50")
        assert len(transport.sent_to("notify-token")) == 1


class TestDebit:

    async def test_debit(self, store, reconciler, ledger, add_profile):
        profile = add_profile("4000001", balance=300)

        result = await reconciler.debit_for_order(profile, Decimal("200"))

        assert result.ok
        assert result.old_balance == Decimal("300")
        assert profile.balance == Decimal("100")
        assert ledger.rows["4000001"].balance == Decimal("100")
        assert store.doc.notifications[0].id.endswith("-debit")

    async def test_debit_refuses_negative_balance(self, reconciler, ledger, add_profile):
        profile = add_profile("4000001", balance=150)

        result = await reconciler.debit_for_order(profile, Decimal("200"))

        assert not result.ok
        assert result.error == "insufficient_balance"
        assert profile.balance == Decimal("150")
        assert ledger.balance_writes == []

    async def test_debit_alert_names_the_action(self, reconciler, ledger, transport, add_profile):
        profile = add_profile("4000001", balance=300)
        ledger.fail_writes = True

        result = await reconciler.debit_for_order(profile, Decimal("200"))

        assert result.error == "sheet_update_failed"
        assert "خصم" in transport.sent_to("notify-token")[0].text
