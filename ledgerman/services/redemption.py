"""
Redemption coordinator.

redeem() runs lock -> check -> write -> record as one transaction. The
customer row lock taken first is what makes the balance check safe: two
concurrent redemptions for the same customer cannot both see a
sufficient balance.
"""

import logging
import uuid as uuid_lib
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from ledgerman.exceptions import LedgermanError
from ledgerman.gates import Gates
from ledgerman.models import EntrySource, EntryType, Redemption, RedemptionStatus
from ledgerman.services import audit
from ledgerman.services.customers import ensure_active
from ledgerman.services.ledger import (
    Replayed,
    append_entry,
    find_entry,
    get_balance,
    lock_customer,
    replay_of,
)
from ledgerman.services.rewards import get_active_reward
from ledgerman.signals import redemption_created, redemption_reversed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedeemResult:
    redemption_id: int
    balance: int
    idempotent: bool
    points_cost: int


@dataclass(frozen=True)
class ReversalResult:
    entry_id: int
    redemption_id: int
    balance: int
    idempotent: bool


def redeem(
    merchant_id: int,
    customer_id: int,
    reward_id: int,
    idempotency_key: str,
    actor: str = "",
    source: str = EntrySource.TERMINAL,
) -> RedeemResult:
    """
    Grant a reward and charge its points cost.

    A retried request (same idempotency key) returns the original redemption
    with idempotent=True, even if the balance has since dropped below the
    reward cost.

    Args:
        merchant_id: Merchant id
        customer_id: Customer id (already resolved from a token)
        reward_id: Reward to grant
        idempotency_key: Caller-supplied dedup key
        actor: Staff identifier for the audit record
        source: EntrySource for the redeem entry

    Returns:
        RedeemResult with the post-write balance

    Raises:
        GateError: Malformed key
        LedgermanError: CUSTOMER_NOT_FOUND, CUSTOMER_BLOCKED, REWARD_NOT_FOUND,
            INSUFFICIENT_POINTS, IDEMPOTENCY_CONFLICT, LOCK_TIMEOUT
    """
    Gates.idempotency_key(idempotency_key)

    with transaction.atomic():
        customer = lock_customer(merchant_id, customer_id)

        existing = find_entry(merchant_id, idempotency_key)
        if existing is not None:
            return _replayed_redemption(
                replay_of(existing, customer_id, EntryType.REDEEM), merchant_id, customer_id
            )

        ensure_active(customer)
        reward = get_active_reward(merchant_id, reward_id)

        balance = get_balance(merchant_id, customer_id)
        if balance < reward.points_cost:
            raise LedgermanError(
                "INSUFFICIENT_POINTS",
                balance=balance,
                points_cost=reward.points_cost,
            )

        redemption_ref = uuid_lib.uuid4()
        outcome = append_entry(
            merchant_id,
            customer_id,
            EntryType.REDEEM,
            -reward.points_cost,
            source,
            idempotency_key,
            external_id=str(redemption_ref),
        )
        if isinstance(outcome, Replayed):
            return _replayed_redemption(outcome, merchant_id, customer_id)

        redemption = Redemption.objects.create(
            uuid=redemption_ref,
            merchant_id=merchant_id,
            customer_id=customer_id,
            reward=reward,
            points_cost=reward.points_cost,
            status=RedemptionStatus.APPROVED,
        )
        audit.record(
            merchant_id,
            "redemption_created",
            "redemption",
            redemption.pk,
            actor=actor,
            metadata={
                "reward_id": reward.pk,
                "points_cost": reward.points_cost,
                "ledger_entry_id": outcome.entry.pk,
            },
        )

        new_balance = get_balance(merchant_id, customer_id)
        transaction.on_commit(
            lambda: redemption_created.send(sender=Redemption, redemption=redemption)
        )

    logger.info(
        "Redemption %s: reward %s (%s pts) for customer %s@%s, balance %s",
        redemption.pk,
        reward.pk,
        reward.points_cost,
        customer_id,
        merchant_id,
        new_balance,
    )
    return RedeemResult(
        redemption_id=redemption.pk,
        balance=new_balance,
        idempotent=False,
        points_cost=reward.points_cost,
    )


def _replayed_redemption(outcome: Replayed, merchant_id: int, customer_id: int) -> RedeemResult:
    redemption = Redemption.objects.filter(
        merchant_id=merchant_id,
        uuid=outcome.entry.external_id,
    ).first()
    if redemption is None:
        # A redeem entry always has its redemption in the same transaction
        raise LedgermanError(
            "IDEMPOTENCY_CONFLICT",
            message="Redeem entry has no matching redemption",
            entry_id=outcome.entry.pk,
        )
    return RedeemResult(
        redemption_id=redemption.pk,
        balance=get_balance(merchant_id, customer_id),
        idempotent=True,
        points_cost=redemption.points_cost,
    )


def reverse_redemption(
    merchant_id: int,
    redemption_id: int,
    idempotency_key: str,
    actor: str = "",
    reason: str = "",
) -> ReversalResult:
    """
    Undo a redemption by appending a compensating ``reversal`` entry.

    The original redeem entry is left untouched; the redemption's status
    moves to ``reversed``.

    Raises:
        GateError: Malformed key
        LedgermanError: REDEMPTION_NOT_FOUND, REDEMPTION_ALREADY_REVERSED,
            IDEMPOTENCY_CONFLICT, LOCK_TIMEOUT
    """
    Gates.idempotency_key(idempotency_key)

    with transaction.atomic():
        try:
            customer_id = Redemption.objects.values_list("customer_id", flat=True).get(
                pk=redemption_id,
                merchant_id=merchant_id,
            )
        except Redemption.DoesNotExist:
            raise LedgermanError(
                "REDEMPTION_NOT_FOUND",
                merchant_id=merchant_id,
                redemption_id=redemption_id,
            )

        # Customer first, then redemption: same lock order as redeem()
        lock_customer(merchant_id, customer_id)
        redemption = Redemption.objects.select_for_update().get(pk=redemption_id)

        existing = find_entry(merchant_id, idempotency_key)
        if existing is not None:
            outcome = replay_of(existing, customer_id, EntryType.REVERSAL)
            return ReversalResult(
                entry_id=outcome.entry.pk,
                redemption_id=redemption.pk,
                balance=get_balance(merchant_id, customer_id),
                idempotent=True,
            )

        if redemption.status == RedemptionStatus.REVERSED:
            raise LedgermanError(
                "REDEMPTION_ALREADY_REVERSED",
                redemption_id=redemption.pk,
            )

        outcome = append_entry(
            merchant_id,
            customer_id,
            EntryType.REVERSAL,
            redemption.points_cost,
            EntrySource.ADMIN,
            idempotency_key,
            external_id=str(redemption.uuid),
        )
        if isinstance(outcome, Replayed):
            return ReversalResult(
                entry_id=outcome.entry.pk,
                redemption_id=redemption.pk,
                balance=get_balance(merchant_id, customer_id),
                idempotent=True,
            )

        redemption.status = RedemptionStatus.REVERSED
        redemption.reversed_at = timezone.now()
        redemption.save(update_fields=["status", "reversed_at"])

        audit.record(
            merchant_id,
            "redemption_reversed",
            "redemption",
            redemption.pk,
            actor=actor,
            metadata={
                "points_cost": redemption.points_cost,
                "ledger_entry_id": outcome.entry.pk,
                "reason": reason or None,
            },
        )

        balance = get_balance(merchant_id, customer_id)
        transaction.on_commit(
            lambda: redemption_reversed.send(sender=Redemption, redemption=redemption)
        )

    logger.info("Redemption %s reversed (+%s pts)", redemption.pk, redemption.points_cost)
    return ReversalResult(
        entry_id=outcome.entry.pk,
        redemption_id=redemption.pk,
        balance=balance,
        idempotent=False,
    )


def get_redemption(merchant_id: int, redemption_id: int) -> Redemption:
    """Get redemption within a merchant."""
    try:
        return Redemption.objects.select_related("reward").get(
            pk=redemption_id,
            merchant_id=merchant_id,
        )
    except Redemption.DoesNotExist:
        raise LedgermanError(
            "REDEMPTION_NOT_FOUND",
            merchant_id=merchant_id,
            redemption_id=redemption_id,
        )
