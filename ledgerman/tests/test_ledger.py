"""Tests for the ledger writer and balance reads."""

from unittest.mock import patch

import pytest

from ledgerman.exceptions import LedgermanError
from ledgerman.gates import GateError
from ledgerman.models import Customer, EntrySource, EntryType, LedgerEntry
from ledgerman.services import ledger
from ledgerman.services.ledger import Created, Replayed


pytestmark = pytest.mark.django_db


def append(merchant, customer, key, delta=10, entry_type=EntryType.EARN):
    return ledger.append_entry(
        merchant.pk,
        customer.pk,
        entry_type,
        delta,
        EntrySource.TERMINAL,
        key,
    )


class TestAppendEntry:
    """Tests for append_entry."""

    def test_created(self, merchant, customer):
        """First use of a key inserts an entry."""
        outcome = append(merchant, customer, "append-key-0001")
        assert isinstance(outcome, Created)
        assert outcome.idempotent is False
        assert outcome.entry.points_delta == 10
        assert LedgerEntry.objects.count() == 1

    def test_replayed(self, merchant, customer):
        """Second use of a key returns the original entry."""
        first = append(merchant, customer, "append-key-0001")
        second = append(merchant, customer, "append-key-0001")
        assert isinstance(second, Replayed)
        assert second.idempotent is True
        assert second.entry.pk == first.entry.pk
        assert LedgerEntry.objects.count() == 1

    def test_replay_keeps_original_delta(self, merchant, customer):
        """A retried call with a different delta still gets the original."""
        append(merchant, customer, "append-key-0001", delta=10)
        outcome = append(merchant, customer, "append-key-0001", delta=99)
        assert isinstance(outcome, Replayed)
        assert outcome.entry.points_delta == 10
        assert ledger.get_balance(merchant.pk, customer.pk) == 10

    def test_key_reused_for_other_customer(self, merchant, customer, other_customer):
        """Same key for another customer is a conflict, not a replay."""
        append(merchant, customer, "append-key-0001")
        with pytest.raises(LedgermanError) as exc_info:
            append(merchant, other_customer, "append-key-0001")
        assert exc_info.value.code == "IDEMPOTENCY_CONFLICT"
        assert ledger.get_balance(merchant.pk, other_customer.pk) == 0

    def test_key_reused_for_other_type(self, merchant, customer):
        """Same key for another entry type is a conflict."""
        append(merchant, customer, "append-key-0001")
        with pytest.raises(LedgermanError, match="different operation"):
            append(merchant, customer, "append-key-0001", -5, EntryType.REDEEM)

    def test_conflict_without_visible_row(self, merchant, customer):
        """A unique violation with no row to replay is reported as a conflict."""
        append(merchant, customer, "append-key-0001")
        with patch("ledgerman.services.ledger.find_entry", return_value=None):
            with pytest.raises(LedgermanError) as exc_info:
                append(merchant, customer, "append-key-0001")
        assert exc_info.value.code == "IDEMPOTENCY_CONFLICT"

    def test_customer_of_other_merchant(self, merchant, other_merchant):
        """Customer must belong to the merchant."""
        stranger = Customer.objects.create(merchant=other_merchant)
        with pytest.raises(LedgermanError) as exc_info:
            append(merchant, stranger, "append-key-0001")
        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"

    def test_bad_key_rejected(self, merchant, customer):
        """Key is validated before insert."""
        with pytest.raises(GateError):
            append(merchant, customer, "short")
        assert not LedgerEntry.objects.exists()

    def test_bad_type_rejected(self, merchant, customer):
        """Unknown entry type is a programming error."""
        with pytest.raises(ValueError, match="Unknown ledger entry type"):
            append(merchant, customer, "append-key-0001", entry_type="gift")

    def test_non_int_delta_rejected(self, merchant, customer):
        """Fractional points never reach the ledger."""
        with pytest.raises(ValueError, match="points_delta"):
            append(merchant, customer, "append-key-0001", delta=1.5)


class TestBalance:
    """Tests for balance derivation."""

    def test_no_entries_is_zero(self, merchant, customer):
        """A customer with no history has balance 0."""
        assert ledger.get_balance(merchant.pk, customer.pk) == 0

    def test_balance_is_sum_of_deltas(self, merchant, customer):
        """Balance equals SUM(points_delta) at every step."""
        deltas = [25, -10, 7, -22, 3]
        running = 0
        for i, delta in enumerate(deltas):
            entry_type = EntryType.EARN if delta > 0 else EntryType.REDEEM
            append(merchant, customer, f"balance-key-{i:04d}", delta, entry_type)
            running += delta
            assert ledger.get_balance(merchant.pk, customer.pk) == running

    def test_balance_scoped_to_customer(self, merchant, customer, other_customer):
        """Other customers' entries do not count."""
        append(merchant, customer, "balance-key-0001", 40)
        append(merchant, other_customer, "balance-key-0002", 15)
        assert ledger.get_balance(merchant.pk, customer.pk) == 40
        assert ledger.get_balance(merchant.pk, other_customer.pk) == 15


class TestListLedger:
    """Tests for list_ledger."""

    def test_newest_first(self, merchant, customer):
        """Entries come back newest first."""
        for i in range(3):
            append(merchant, customer, f"list-key-{i:04d}", i + 1)
        entries = ledger.list_ledger(merchant.pk, customer.pk)
        assert [e.idempotency_key for e in entries] == [
            "list-key-0002",
            "list-key-0001",
            "list-key-0000",
        ]

    def test_limit(self, merchant, customer):
        """limit caps the result."""
        for i in range(5):
            append(merchant, customer, f"list-key-{i:04d}")
        assert len(ledger.list_ledger(merchant.pk, customer.pk, limit=2)) == 2

    def test_limit_clamped(self, merchant, customer, settings):
        """limit is clamped to [1, LEDGER_LIST_MAX]."""
        settings.LEDGERMAN = {"LEDGER_LIST_MAX": 3}
        for i in range(5):
            append(merchant, customer, f"list-key-{i:04d}")
        assert len(ledger.list_ledger(merchant.pk, customer.pk, limit=1000)) == 3
        assert len(ledger.list_ledger(merchant.pk, customer.pk, limit=0)) == 1

    def test_empty(self, merchant, customer):
        assert ledger.list_ledger(merchant.pk, customer.pk) == []


class TestLockCustomer:
    """Tests for lock_customer."""

    def test_locks_existing_customer(self, merchant, customer):
        """Returns the customer row."""
        from django.db import transaction

        with transaction.atomic():
            assert ledger.lock_customer(merchant.pk, customer.pk) == customer

    def test_unknown_customer(self, merchant):
        """Unknown customer id."""
        from django.db import transaction

        with transaction.atomic():
            with pytest.raises(LedgermanError) as exc_info:
                ledger.lock_customer(merchant.pk, 424242)
        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"
