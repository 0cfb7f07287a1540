"""Tests for tokens, customers and rewards."""

from unittest.mock import patch

import pytest
from django.db.models import QuerySet

from ledgerman import LedgerService
from ledgerman.exceptions import LedgermanError
from ledgerman.gates import GateError
from ledgerman.models import AuditLog, Customer, CustomerDevice, CustomerToken
from ledgerman.services import customers, rewards, tokens


pytestmark = pytest.mark.django_db


class TestIssueToken:
    """Tests for issue_token."""

    def test_issue(self, merchant, customer):
        """Issued tokens are active, random and long enough."""
        token = tokens.issue_token(merchant.pk, customer.pk, "nfc", {"device": "tag-9"})
        assert token.is_active
        assert token.type == "nfc"
        assert token.metadata == {"device": "tag-9"}
        assert len(token.public_token) >= 22

    def test_tokens_are_distinct(self, merchant, customer):
        first = tokens.issue_token(merchant.pk, customer.pk)
        second = tokens.issue_token(merchant.pk, customer.pk)
        assert first.public_token != second.public_token

    def test_unknown_type(self, merchant, customer):
        with pytest.raises(GateError):
            tokens.issue_token(merchant.pk, customer.pk, "smoke_signal")

    def test_customer_of_other_merchant(self, customer, other_merchant):
        """Cannot issue a token across tenants."""
        with pytest.raises(LedgermanError) as exc_info:
            tokens.issue_token(other_merchant.pk, customer.pk)
        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"


class TestResolveToken:
    """Tests for resolve_token."""

    def test_resolve(self, token):
        """Token resolves to its merchant and customer."""
        identity = LedgerService.resolve_token(token.public_token)
        assert identity.merchant_id == token.merchant_id
        assert identity.customer_id == token.customer_id
        assert identity.token_id == token.pk
        assert identity.customer_status == "active"

    def test_unknown(self, db):
        with pytest.raises(LedgermanError) as exc_info:
            tokens.resolve_token("nope-nope-nope")
        assert exc_info.value.code == "TOKEN_NOT_FOUND"

    def test_scoped_to_merchant(self, token, other_merchant):
        """A merchant-scoped lookup does not see other merchants' tokens."""
        with pytest.raises(LedgermanError) as exc_info:
            tokens.resolve_token(token.public_token, merchant_id=other_merchant.pk)
        assert exc_info.value.code == "TOKEN_NOT_FOUND"

    def test_revoked(self, token):
        """Revoked tokens do not resolve."""
        tokens.revoke_token(token.merchant_id, token.public_token, actor="owner", reason="lost")
        with pytest.raises(LedgermanError) as exc_info:
            tokens.resolve_token(token.public_token)
        assert exc_info.value.code == "TOKEN_INACTIVE"

    def test_reports_blocked_customer(self, token):
        """Resolution reports the customer status; the caller decides."""
        customers.block_customer(token.merchant_id, token.customer_id)
        assert tokens.resolve_token(token.public_token).customer_status == "blocked"


class TestRevokeToken:
    """Tests for revoke_token."""

    def test_revoke_audited_once(self, token):
        """Revocation is idempotent and audited once."""
        tokens.revoke_token(token.merchant_id, token.public_token, reason="lost")
        revoked = tokens.revoke_token(token.merchant_id, token.public_token)
        assert revoked.status == "revoked"
        assert revoked.revoked_at is not None
        assert AuditLog.objects.filter(action="token_revoked").count() == 1

    def test_list_tokens(self, merchant, customer, token):
        """Only active tokens by default."""
        extra = tokens.issue_token(merchant.pk, customer.pk, "barcode")
        tokens.revoke_token(merchant.pk, token.public_token)
        assert tokens.list_tokens(merchant.pk, customer.pk) == [extra]
        assert len(tokens.list_tokens(merchant.pk, customer.pk, only_active=False)) == 2

    def test_unknown(self, merchant):
        with pytest.raises(LedgermanError, match="Token not found"):
            tokens.revoke_token(merchant.pk, "missing-token-value")


class TestInitSession:
    """Tests for init_session."""

    DEVICE = "7f3c2a90-1b4e-4c8d-9f00-123456789abc"

    def test_first_contact_creates_customer(self, merchant):
        """A new device gets a customer, a binding and a QR token."""
        session = customers.init_session(merchant.slug, self.DEVICE)

        assert session.created is True
        assert session.merchant_id == merchant.pk
        customer = Customer.objects.get(pk=session.customer_id)
        assert customer.merchant_id == merchant.pk
        assert customer.status == "active"
        device = CustomerDevice.objects.get(merchant=merchant, device_id=self.DEVICE)
        assert device.customer_id == customer.pk
        token = CustomerToken.objects.get(public_token=session.public_token)
        assert token.type == "qr"
        assert token.is_active

    def test_repeat_returns_same_customer(self, merchant):
        """The same device always maps to the same customer and token."""
        first = customers.init_session(merchant.slug, self.DEVICE)
        seen = CustomerDevice.objects.get(device_id=self.DEVICE).last_seen_at

        second = customers.init_session(merchant.slug, self.DEVICE)

        assert second.created is False
        assert second.customer_id == first.customer_id
        assert second.public_token == first.public_token
        assert Customer.objects.count() == 1
        assert CustomerDevice.objects.get(device_id=self.DEVICE).last_seen_at >= seen

    def test_newest_active_token_returned(self, merchant):
        """After the QR token is revoked the next active token is used."""
        first = customers.init_session(merchant.slug, self.DEVICE)
        replacement = tokens.issue_token(merchant.pk, first.customer_id, "barcode")
        tokens.revoke_token(merchant.pk, first.public_token)

        session = customers.init_session(merchant.slug, self.DEVICE)
        assert session.public_token == replacement.public_token

    def test_distinct_devices_distinct_customers(self, merchant):
        a = customers.init_session(merchant.slug, "device-a")
        b = customers.init_session(merchant.slug, "device-b")
        assert a.customer_id != b.customer_id

    def test_device_scoped_to_merchant(self, merchant, other_merchant):
        """One device at two merchants is two customers."""
        here = customers.init_session(merchant.slug, self.DEVICE)
        there = customers.init_session(other_merchant.slug, self.DEVICE)
        assert there.created is True
        assert there.customer_id != here.customer_id
        assert Customer.objects.get(pk=there.customer_id).merchant_id == other_merchant.pk

    def test_unknown_merchant(self, db):
        with pytest.raises(LedgermanError) as exc_info:
            customers.init_session("no-such-shop", self.DEVICE)
        assert exc_info.value.code == "MERCHANT_NOT_FOUND"

    @pytest.mark.parametrize("device_id", ["", "   ", None, "d" * 129])
    def test_invalid_device_id(self, merchant, device_id):
        with pytest.raises(GateError):
            customers.init_session(merchant.slug, device_id)
        assert not Customer.objects.exists()

    def test_no_active_token(self, merchant):
        """A known device whose tokens are all revoked cannot open a session."""
        first = customers.init_session(merchant.slug, self.DEVICE)
        tokens.revoke_token(merchant.pk, first.public_token)

        with pytest.raises(LedgermanError) as exc_info:
            customers.init_session(merchant.slug, self.DEVICE)
        assert exc_info.value.code == "TOKEN_NOT_FOUND"
        assert Customer.objects.count() == 1

    def test_lost_race_returns_winner(self, merchant):
        """If another request binds the device first, its customer is returned."""
        winner = customers.init_session(merchant.slug, self.DEVICE)
        real_first = QuerySet.first
        calls = []

        def miss_once(queryset):
            calls.append(queryset)
            if len(calls) == 1:
                return None
            return real_first(queryset)

        with patch.object(QuerySet, "first", autospec=True, side_effect=miss_once):
            session = customers.init_session(merchant.slug, self.DEVICE)

        assert session.created is False
        assert session.customer_id == winner.customer_id
        assert session.public_token == winner.public_token
        assert Customer.objects.count() == 1
        assert CustomerToken.objects.count() == 1

    def test_facade(self, merchant):
        session = LedgerService.init_session(merchant.slug, self.DEVICE)
        assert LedgerService.resolve_token(session.public_token).customer_id == session.customer_id


class TestCustomers:
    """Tests for customer service."""

    def test_create_customer(self, merchant):
        customer = LedgerService.create_customer(merchant.pk)
        assert customer.merchant_id == merchant.pk
        assert customer.status == "active"

    def test_create_customer_unknown_merchant(self, db):
        with pytest.raises(LedgermanError) as exc_info:
            customers.create_customer(999999)
        assert exc_info.value.code == "MERCHANT_NOT_FOUND"

    def test_get_merchant(self, merchant):
        assert customers.get_merchant("cafe-central") == merchant
        with pytest.raises(LedgermanError):
            customers.get_merchant("nowhere")

    def test_get_customer_scoped(self, customer, other_merchant):
        """Lookups never cross tenants."""
        assert customers.get_customer(customer.merchant_id, customer.pk) == customer
        with pytest.raises(LedgermanError) as exc_info:
            customers.get_customer(other_merchant.pk, customer.pk)
        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"

    def test_block_and_unblock(self, merchant, customer):
        """Status changes are audited; repeats are no-ops."""
        blocked = customers.block_customer(merchant.pk, customer.pk, actor="owner", reason="fraud")
        assert blocked.is_blocked
        assert blocked.blocked_at is not None
        customers.block_customer(merchant.pk, customer.pk)
        assert AuditLog.objects.filter(action="customer_blocked").count() == 1

        active = customers.unblock_customer(merchant.pk, customer.pk, actor="owner")
        assert active.is_blocked is False
        assert active.blocked_at is None
        assert Customer.objects.get(pk=customer.pk).status == "active"
        assert AuditLog.objects.filter(action="customer_unblocked").count() == 1


class TestRewards:
    """Tests for reward catalog."""

    def test_create_reward(self, merchant):
        """Names are stripped; new rewards are active."""
        assert LedgerService.list_rewards(merchant.pk) == []

        created = rewards.create_reward(merchant.pk, "  Latte  ", 120)
        assert created.name == "Latte"
        assert created.active is True
        assert LedgerService.list_rewards(merchant.pk) == [created]

    @pytest.mark.parametrize("cost", [0, -5, 1.5, True])
    def test_invalid_cost(self, merchant, cost):
        with pytest.raises(ValueError):
            rewards.create_reward(merchant.pk, "Latte", cost)

    def test_blank_name(self, merchant):
        with pytest.raises(ValueError, match="name"):
            rewards.create_reward(merchant.pk, " ", 10)
