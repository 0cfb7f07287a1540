"""Pytest fixtures for Ledgerman tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from ledgerman.models import (
    Customer,
    CustomerToken,
    Merchant,
    Reward,
    RoundingMode,
    RuleVersion,
    TokenType,
)


@pytest.fixture
def merchant(db):
    """Create a test merchant."""
    return Merchant.objects.create(slug="cafe-central", name="Cafe Central")


@pytest.fixture
def other_merchant(db):
    """Create a second merchant for tenant isolation tests."""
    return Merchant.objects.create(slug="padaria-sul", name="Padaria Sul")


@pytest.fixture
def customer(merchant):
    """Create an active customer."""
    return Customer.objects.create(merchant=merchant)


@pytest.fixture
def other_customer(merchant):
    """Create a second customer of the same merchant."""
    return Customer.objects.create(merchant=merchant)


@pytest.fixture
def rule(merchant):
    """Rule v1: 1 point per unit, floor, in force since yesterday."""
    return RuleVersion.objects.create(
        merchant=merchant,
        version=1,
        points_per_unit=Decimal("1"),
        rounding=RoundingMode.FLOOR,
        promo_multiplier=Decimal("1"),
        effective_from=timezone.now() - timedelta(days=1),
    )


@pytest.fixture
def reward(merchant):
    """Create a 100-point reward."""
    return Reward.objects.create(merchant=merchant, name="Free coffee", points_cost=100)


@pytest.fixture
def token(merchant, customer):
    """Create an active QR token."""
    return CustomerToken.objects.create(
        merchant=merchant,
        customer=customer,
        type=TokenType.QR,
        public_token="qr-token-0001-abcdefghijklmnop",
    )


@pytest.fixture
def fund(merchant):
    """Credit a customer through an admin adjustment."""
    from ledgerman.services import operations

    counter = {"n": 0}

    def _fund(customer, points):
        counter["n"] += 1
        return operations.adjust(
            merchant.pk,
            customer.pk,
            points,
            f"fund-{customer.pk}-{counter['n']:04d}",
            reason="test funding",
            actor="owner",
        )

    return _fund
