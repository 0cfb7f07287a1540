"""
Token service - presentable credentials (QR, barcode, NFC, wallet passes).

This is the identity-resolution step callers run before invoking the
ledger core; the core itself only ever receives resolved ids.
"""

import logging
import secrets
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.gates import Gates
from ledgerman.models import Customer, CustomerToken, TokenStatus, TokenType
from ledgerman.services import audit

logger = logging.getLogger(__name__)

_ISSUE_ATTEMPTS = 3


@dataclass(frozen=True)
class ResolvedIdentity:
    """Customer and merchant a token resolves to."""

    merchant_id: int
    customer_id: int
    token_id: int
    customer_status: str


def generate_public_token() -> str:
    """Random URL-safe token with at least 128 bits of entropy."""
    return secrets.token_urlsafe(max(16, ledgerman_settings.TOKEN_BYTES))


def issue_token(
    merchant_id: int,
    customer_id: int,
    token_type: str = TokenType.QR,
    metadata: dict | None = None,
) -> CustomerToken:
    """
    Issue a new active token for a customer.

    Raises:
        GateError: If token_type is unknown
        LedgermanError: CUSTOMER_NOT_FOUND
    """
    Gates.token_type(token_type)
    if not Customer.objects.filter(pk=customer_id, merchant_id=merchant_id).exists():
        raise LedgermanError(
            "CUSTOMER_NOT_FOUND",
            merchant_id=merchant_id,
            customer_id=customer_id,
        )

    for attempt in range(1, _ISSUE_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                token = CustomerToken.objects.create(
                    merchant_id=merchant_id,
                    customer_id=customer_id,
                    type=token_type,
                    public_token=generate_public_token(),
                    metadata=metadata or {},
                )
        except IntegrityError:
            if attempt == _ISSUE_ATTEMPTS:
                raise
            logger.warning("Public token collision for merchant %s, retrying", merchant_id)
            continue
        break

    logger.info("Issued %s token %s for customer %s@%s", token_type, token.pk, customer_id, merchant_id)
    return token


def resolve_token(public_token: str, merchant_id: int | None = None) -> ResolvedIdentity:
    """
    Resolve a presented token to (merchant, customer).

    Raises:
        LedgermanError: TOKEN_NOT_FOUND if unknown, TOKEN_INACTIVE if revoked
    """
    qs = CustomerToken.objects.select_related("customer").filter(public_token=public_token)
    if merchant_id is not None:
        qs = qs.filter(merchant_id=merchant_id)
    token = qs.order_by("-issued_at").first()

    if token is None:
        raise LedgermanError("TOKEN_NOT_FOUND")
    if token.status != TokenStatus.ACTIVE:
        raise LedgermanError("TOKEN_INACTIVE", token_id=token.pk)

    return ResolvedIdentity(
        merchant_id=token.merchant_id,
        customer_id=token.customer_id,
        token_id=token.pk,
        customer_status=token.customer.status,
    )


def revoke_token(
    merchant_id: int,
    public_token: str,
    actor: str = "",
    reason: str = "",
) -> CustomerToken:
    """
    Revoke a token. Revoking an already revoked token is a no-op.

    Raises:
        LedgermanError: TOKEN_NOT_FOUND
    """
    with transaction.atomic():
        try:
            token = CustomerToken.objects.select_for_update().get(
                merchant_id=merchant_id,
                public_token=public_token,
            )
        except CustomerToken.DoesNotExist:
            raise LedgermanError("TOKEN_NOT_FOUND", merchant_id=merchant_id)

        if token.status == TokenStatus.REVOKED:
            return token

        token.status = TokenStatus.REVOKED
        token.revoked_at = timezone.now()
        token.save(update_fields=["status", "revoked_at"])

        audit.record(
            merchant_id,
            "token_revoked",
            "customer_token",
            token.pk,
            actor=actor,
            metadata={"type": token.type, "reason": reason or None},
        )

    logger.info("Revoked token %s for customer %s@%s", token.pk, token.customer_id, merchant_id)
    return token


def list_tokens(merchant_id: int, customer_id: int, only_active: bool = True) -> list[CustomerToken]:
    """Tokens held by a customer, newest first."""
    qs = CustomerToken.objects.filter(merchant_id=merchant_id, customer_id=customer_id)
    if only_active:
        qs = qs.filter(status=TokenStatus.ACTIVE)
    return list(qs.order_by("-issued_at"))
