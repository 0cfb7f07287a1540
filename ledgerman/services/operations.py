"""
Earn and adjust operations.

Both take the same per-customer lock as redemption, so every
balance-affecting write for a customer is linearized and the balance read
at the end of the transaction accounts for all of them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction

from ledgerman.calculator import compute_points
from ledgerman.gates import Gates
from ledgerman.models import EntrySource, EntryType
from ledgerman.services import audit
from ledgerman.services.customers import ensure_active
from ledgerman.services.ledger import (
    Created,
    append_entry,
    find_entry,
    get_balance,
    lock_customer,
    replay_of,
)
from ledgerman.services.rules import resolve_active_rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EarnResult:
    entry_id: int
    balance: int
    points_delta: int
    idempotent: bool
    rule_version: int | None = None


@dataclass(frozen=True)
class AdjustResult:
    entry_id: int
    balance: int
    points_delta: int
    idempotent: bool


def earn(
    merchant_id: int,
    customer_id: int,
    amount,
    idempotency_key: str,
    at: datetime | None = None,
    source: str = EntrySource.TERMINAL,
) -> EarnResult:
    """
    Award points for a purchase.

    Resolves the rule version in force at ``at`` (default: now), computes
    points, appends an ``earn`` entry, and returns the new balance. A replay
    returns the original entry's points even if rules changed since.

    Args:
        merchant_id: Merchant id
        customer_id: Customer id (already resolved from a token)
        amount: Positive purchase amount
        idempotency_key: Caller-supplied dedup key
        at: Purchase time used to pick the rule version
        source: EntrySource (terminal or pos)

    Raises:
        GateError: Malformed amount or key, or points too large for a ledger entry
        LedgermanError: CUSTOMER_NOT_FOUND, CUSTOMER_BLOCKED, RULES_MISSING,
            IDEMPOTENCY_CONFLICT, LOCK_TIMEOUT
    """
    Gates.idempotency_key(idempotency_key)
    Gates.positive_amount(amount)

    with transaction.atomic():
        customer = lock_customer(merchant_id, customer_id)

        existing = find_entry(merchant_id, idempotency_key)
        if existing is not None:
            outcome = replay_of(existing, customer_id, EntryType.EARN)
        else:
            ensure_active(customer)
            rule = resolve_active_rule(merchant_id, at)
            points = compute_points(amount, rule)
            Gates.earned_points(points)
            outcome = append_entry(
                merchant_id,
                customer_id,
                EntryType.EARN,
                points,
                source,
                idempotency_key,
                rule_version_id=rule.pk,
            )

        balance = get_balance(merchant_id, customer_id)

    entry = outcome.entry
    return EarnResult(
        entry_id=entry.pk,
        balance=balance,
        points_delta=entry.points_delta,
        idempotent=outcome.idempotent,
        rule_version=entry.rule_version.version if entry.rule_version_id else None,
    )


def adjust(
    merchant_id: int,
    customer_id: int,
    points_delta: int,
    idempotency_key: str,
    reason: str,
    actor: str = "",
) -> AdjustResult:
    """
    Manual balance correction (owner only; the caller enforces the role).

    The delta may be positive or negative and may take the balance below
    zero. Blocked customers can still be adjusted. The reason goes into the
    ``adjustment_created`` audit record.

    Raises:
        GateError: Malformed delta, key or reason
        LedgermanError: CUSTOMER_NOT_FOUND, IDEMPOTENCY_CONFLICT, LOCK_TIMEOUT
    """
    Gates.idempotency_key(idempotency_key)
    Gates.points_delta(points_delta)
    Gates.reason(reason)

    with transaction.atomic():
        lock_customer(merchant_id, customer_id)

        existing = find_entry(merchant_id, idempotency_key)
        if existing is not None:
            outcome = replay_of(existing, customer_id, EntryType.ADJUST)
        else:
            outcome = append_entry(
                merchant_id,
                customer_id,
                EntryType.ADJUST,
                points_delta,
                EntrySource.ADMIN,
                idempotency_key,
            )
            if isinstance(outcome, Created):
                audit.record(
                    merchant_id,
                    "adjustment_created",
                    "ledger_entry",
                    outcome.entry.pk,
                    actor=actor,
                    metadata={
                        "points_delta": points_delta,
                        "reason": reason.strip(),
                        "idempotency_key": idempotency_key,
                    },
                )

        balance = get_balance(merchant_id, customer_id)

    return AdjustResult(
        entry_id=outcome.entry.pk,
        balance=balance,
        points_delta=outcome.entry.points_delta,
        idempotent=outcome.idempotent,
    )
