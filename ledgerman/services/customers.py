"""Customer service - tenant-scoped customer lookup, device sessions and blocking."""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from ledgerman.exceptions import LedgermanError
from ledgerman.gates import Gates
from ledgerman.models import Customer, CustomerDevice, CustomerStatus, Merchant, TokenType
from ledgerman.services import audit, tokens
from ledgerman.services.ledger import lock_customer

logger = logging.getLogger(__name__)


def get_merchant(slug: str) -> Merchant:
    """Get merchant by slug."""
    try:
        return Merchant.objects.get(slug=slug)
    except Merchant.DoesNotExist:
        raise LedgermanError("MERCHANT_NOT_FOUND", slug=slug)


def create_customer(merchant_id: int) -> Customer:
    """Create an anonymous active customer for a merchant."""
    if not Merchant.objects.filter(pk=merchant_id).exists():
        raise LedgermanError("MERCHANT_NOT_FOUND", merchant_id=merchant_id)
    customer = Customer.objects.create(merchant_id=merchant_id)
    logger.info("Customer %s created for merchant %s", customer.pk, merchant_id)
    return customer


# ======================================================================
# Device sessions
# ======================================================================


@dataclass(frozen=True)
class SessionResult:
    merchant_id: int
    customer_id: int
    public_token: str
    created: bool


def init_session(merchant_slug: str, device_id: str) -> SessionResult:
    """
    Resolve a device to its customer, creating both on first contact.

    A new device gets a new active customer, a QR token and the
    (merchant, device) binding, all in one transaction. Concurrent first
    sessions from the same device race on the (merchant, device_id)
    unique constraint; the loser returns the winner's customer.

    Returns:
        SessionResult with the customer's newest active token

    Raises:
        GateError: Malformed device id
        LedgermanError: MERCHANT_NOT_FOUND, or TOKEN_NOT_FOUND if a known
            device's customer has no active token left
    """
    Gates.device_id(device_id)
    merchant = get_merchant(merchant_slug)

    device = CustomerDevice.objects.filter(merchant=merchant, device_id=device_id).first()
    if device is not None:
        return _existing_session(device)

    try:
        with transaction.atomic():
            customer = Customer.objects.create(merchant=merchant)
            CustomerDevice.objects.create(
                merchant=merchant,
                customer=customer,
                device_id=device_id,
            )
            token = tokens.issue_token(merchant.pk, customer.pk, TokenType.QR)
    except IntegrityError as exc:
        device = CustomerDevice.objects.filter(merchant=merchant, device_id=device_id).first()
        if device is None:
            raise LedgermanError(
                "CONSTRAINT_VIOLATION",
                message="Could not bind device to a customer",
                merchant_id=merchant.pk,
            ) from exc
        return _existing_session(device)

    logger.info(
        "Session for new device created customer %s@%s", customer.pk, merchant.pk
    )
    return SessionResult(
        merchant_id=merchant.pk,
        customer_id=customer.pk,
        public_token=token.public_token,
        created=True,
    )


def _existing_session(device: CustomerDevice) -> SessionResult:
    CustomerDevice.objects.filter(pk=device.pk).update(last_seen_at=timezone.now())
    active = tokens.list_tokens(device.merchant_id, device.customer_id)
    if not active:
        raise LedgermanError(
            "TOKEN_NOT_FOUND",
            message="Active token not found",
            merchant_id=device.merchant_id,
            customer_id=device.customer_id,
        )
    return SessionResult(
        merchant_id=device.merchant_id,
        customer_id=device.customer_id,
        public_token=active[0].public_token,
        created=False,
    )


def get_customer(merchant_id: int, customer_id: int) -> Customer:
    """Get customer within a merchant; never crosses tenants."""
    try:
        return Customer.objects.get(pk=customer_id, merchant_id=merchant_id)
    except Customer.DoesNotExist:
        raise LedgermanError(
            "CUSTOMER_NOT_FOUND",
            merchant_id=merchant_id,
            customer_id=customer_id,
        )


def ensure_active(customer: Customer) -> None:
    """Raise CUSTOMER_BLOCKED for a blocked customer."""
    if customer.is_blocked:
        raise LedgermanError(
            "CUSTOMER_BLOCKED",
            merchant_id=customer.merchant_id,
            customer_id=customer.pk,
        )


def block_customer(
    merchant_id: int,
    customer_id: int,
    actor: str = "",
    reason: str = "",
) -> Customer:
    """
    Block a customer from earning and redeeming.

    Idempotent: blocking a blocked customer changes nothing and is not audited.
    Manual adjustments remain possible for blocked customers.
    """
    return _set_status(merchant_id, customer_id, CustomerStatus.BLOCKED, actor, reason)


def unblock_customer(
    merchant_id: int,
    customer_id: int,
    actor: str = "",
    reason: str = "",
) -> Customer:
    """Reactivate a blocked customer."""
    return _set_status(merchant_id, customer_id, CustomerStatus.ACTIVE, actor, reason)


def _set_status(merchant_id, customer_id, status, actor, reason) -> Customer:
    with transaction.atomic():
        customer = lock_customer(merchant_id, customer_id)
        if customer.status == status:
            return customer

        customer.status = status
        customer.blocked_at = timezone.now() if status == CustomerStatus.BLOCKED else None
        customer.save(update_fields=["status", "blocked_at"])

        audit.record(
            merchant_id,
            "customer_blocked" if status == CustomerStatus.BLOCKED else "customer_unblocked",
            "customer",
            customer.pk,
            actor=actor,
            metadata={"reason": reason},
        )

    logger.info("Customer %s@%s is now %s", customer_id, merchant_id, status)
    return customer
