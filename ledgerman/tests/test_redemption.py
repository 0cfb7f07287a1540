"""Tests for redemption and reversal."""

import pytest

from ledgerman import LedgerService
from ledgerman.exceptions import LedgermanError
from ledgerman.gates import GateError
from ledgerman.models import AuditLog, LedgerEntry, Redemption, Reward
from ledgerman.services import customers, redemption, rewards


pytestmark = pytest.mark.django_db


@pytest.fixture
def reward_50(merchant):
    """Create a 50-point reward."""
    return Reward.objects.create(merchant=merchant, name="Pastry", points_cost=50)


class TestRedeem:
    """Tests for redeem."""

    def test_redeem_then_insufficient(self, merchant, customer, reward_50, fund):
        """Balance 50, cost 50: first redeem succeeds, second fails."""
        fund(customer, 50)

        result = redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")
        assert result.balance == 0
        assert result.points_cost == 50
        assert result.idempotent is False

        with pytest.raises(LedgermanError) as exc_info:
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0002")
        assert exc_info.value.code == "INSUFFICIENT_POINTS"
        assert exc_info.value.data == {"balance": 0, "points_cost": 50}
        assert LedgerEntry.objects.filter(type="redeem").count() == 1

    def test_records_redemption_entry_and_audit(self, merchant, customer, reward_50, fund):
        """One redeem entry, one redemption, one audit record."""
        fund(customer, 80)
        result = redemption.redeem(
            merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001", actor="cashier-7"
        )

        obj = Redemption.objects.get(pk=result.redemption_id)
        entry = LedgerEntry.objects.get(type="redeem")
        assert entry.points_delta == -50
        assert entry.external_id == str(obj.uuid)
        assert obj.status == "approved"
        assert obj.points_cost == 50

        log = AuditLog.objects.get(action="redemption_created")
        assert log.actor == "cashier-7"
        assert log.target_id == str(obj.pk)
        assert log.metadata["ledger_entry_id"] == entry.pk

    def test_insufficient_writes_nothing(self, merchant, customer, reward_50, fund):
        """A failed check leaves no trace."""
        fund(customer, 49)
        with pytest.raises(LedgermanError):
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")
        assert not Redemption.objects.exists()
        assert not LedgerEntry.objects.filter(type="redeem").exists()
        assert not AuditLog.objects.filter(action="redemption_created").exists()

    def test_replay_after_balance_dropped(self, merchant, customer, reward_50, fund):
        """A retry succeeds idempotently even once the balance is too low."""
        fund(customer, 50)
        first = redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")
        assert first.balance == 0

        replay = redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")
        assert replay.idempotent is True
        assert replay.redemption_id == first.redemption_id
        assert replay.balance == 0
        assert Redemption.objects.count() == 1

    def test_key_used_by_earn(self, merchant, customer, reward_50, rule, fund):
        """Key of an earn cannot be replayed as a redemption."""
        fund(customer, 100)
        LedgerService.earn(merchant.pk, customer.pk, "10", "shared-key-0001")
        with pytest.raises(LedgermanError) as exc_info:
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "shared-key-0001")
        assert exc_info.value.code == "IDEMPOTENCY_CONFLICT"

    def test_reward_of_other_merchant(self, merchant, customer, other_merchant, fund):
        """Rewards never cross tenants."""
        foreign = Reward.objects.create(merchant=other_merchant, name="Bread", points_cost=1)
        fund(customer, 10)
        with pytest.raises(LedgermanError) as exc_info:
            redemption.redeem(merchant.pk, customer.pk, foreign.pk, "redeem-key-0001")
        assert exc_info.value.code == "REWARD_NOT_FOUND"

    def test_inactive_reward(self, merchant, customer, reward_50, fund):
        """Deactivated rewards cannot be redeemed."""
        fund(customer, 100)
        rewards.deactivate_reward(merchant.pk, reward_50.pk)
        with pytest.raises(LedgermanError, match="Reward not found"):
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")

    def test_unknown_reward(self, merchant, customer):
        with pytest.raises(LedgermanError) as exc_info:
            redemption.redeem(merchant.pk, customer.pk, 999999, "redeem-key-0001")
        assert exc_info.value.code == "REWARD_NOT_FOUND"

    def test_blocked_customer(self, merchant, customer, reward_50, fund):
        """Blocked customers cannot redeem."""
        fund(customer, 100)
        customers.block_customer(merchant.pk, customer.pk)
        with pytest.raises(LedgermanError) as exc_info:
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")
        assert exc_info.value.code == "CUSTOMER_BLOCKED"

    def test_bad_key(self, merchant, customer, reward_50):
        with pytest.raises(GateError):
            redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "")

    def test_serial_double_spend(self, merchant, customer, reward_50, fund):
        """Two redeems against an exact balance: one wins, one is refused."""
        fund(customer, 50)
        outcomes = []
        for key in ("redeem-key-aaaa", "redeem-key-bbbb"):
            try:
                outcomes.append(redemption.redeem(merchant.pk, customer.pk, reward_50.pk, key))
            except LedgermanError as exc:
                outcomes.append(exc.code)

        assert outcomes[1] == "INSUFFICIENT_POINTS"
        assert outcomes[0].balance == 0
        assert LedgerEntry.objects.filter(type="redeem").count() == 1


class TestReverseRedemption:
    """Tests for reverse_redemption."""

    @pytest.fixture
    def redeemed(self, merchant, customer, reward_50, fund):
        fund(customer, 70)
        return redemption.redeem(merchant.pk, customer.pk, reward_50.pk, "redeem-key-0001")

    def test_reversal_refunds(self, merchant, customer, redeemed):
        """A reversal entry restores the points; the redeem entry stays."""
        result = redemption.reverse_redemption(
            merchant.pk, redeemed.redemption_id, "reverse-key-0001", actor="owner", reason="spilled"
        )
        assert result.balance == 70
        assert result.idempotent is False

        entry = LedgerEntry.objects.get(pk=result.entry_id)
        assert entry.type == "reversal"
        assert entry.points_delta == 50
        assert LedgerEntry.objects.filter(type="redeem").count() == 1

        obj = Redemption.objects.get(pk=redeemed.redemption_id)
        assert obj.status == "reversed"
        assert obj.reversed_at is not None
        assert entry.external_id == str(obj.uuid)
        assert AuditLog.objects.get(action="redemption_reversed").metadata["reason"] == "spilled"

    def test_reversal_replay(self, merchant, redeemed):
        """Same key twice: one reversal."""
        first = redemption.reverse_redemption(merchant.pk, redeemed.redemption_id, "reverse-key-0001")
        second = redemption.reverse_redemption(merchant.pk, redeemed.redemption_id, "reverse-key-0001")
        assert second.idempotent is True
        assert second.entry_id == first.entry_id
        assert LedgerEntry.objects.filter(type="reversal").count() == 1

    def test_already_reversed(self, merchant, redeemed):
        """A second reversal with a new key is refused."""
        redemption.reverse_redemption(merchant.pk, redeemed.redemption_id, "reverse-key-0001")
        with pytest.raises(LedgermanError) as exc_info:
            redemption.reverse_redemption(merchant.pk, redeemed.redemption_id, "reverse-key-0002")
        assert exc_info.value.code == "REDEMPTION_ALREADY_REVERSED"

    def test_other_merchant(self, redeemed, other_merchant):
        """Redemptions are looked up within the merchant."""
        with pytest.raises(LedgermanError) as exc_info:
            redemption.reverse_redemption(other_merchant.pk, redeemed.redemption_id, "reverse-key-0001")
        assert exc_info.value.code == "REDEMPTION_NOT_FOUND"

    def test_get_redemption(self, merchant, redeemed):
        obj = redemption.get_redemption(merchant.pk, redeemed.redemption_id)
        assert obj.reward.name == "Pastry"
