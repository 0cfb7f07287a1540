"""
Ledger service - the only write path into LedgerEntry, plus balance reads.

append_entry() returns a tagged outcome, Created or Replayed, so callers
cannot forget the replay path. Balance is always SUM(points_delta); it is
never cached or stored.
"""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, OperationalError, connection, transaction

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.gates import Gates
from ledgerman.models import Customer, EntrySource, EntryType, LedgerEntry
from ledgerman.signals import ledger_entry_created

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Created:
    """A new ledger entry was inserted."""

    entry: LedgerEntry
    idempotent = False


@dataclass(frozen=True)
class Replayed:
    """The idempotency key was already used; this is the original entry."""

    entry: LedgerEntry
    idempotent = True


AppendOutcome = Created | Replayed


# ======================================================================
# Locking
# ======================================================================


def lock_customer(merchant_id: int, customer_id: int) -> Customer:
    """
    Take the per-customer exclusive lock (SELECT ... FOR UPDATE).

    MUST be called inside transaction.atomic(). The lock is held until the
    surrounding transaction commits or rolls back.

    Raises:
        LedgermanError: CUSTOMER_NOT_FOUND, or LOCK_TIMEOUT when the wait
            exceeds the store's lock timeout (safe to retry)
    """
    _apply_lock_timeout()
    try:
        return Customer.objects.select_for_update().get(
            pk=customer_id,
            merchant_id=merchant_id,
        )
    except Customer.DoesNotExist:
        raise LedgermanError(
            "CUSTOMER_NOT_FOUND",
            merchant_id=merchant_id,
            customer_id=customer_id,
        )
    except OperationalError as exc:
        logger.warning(
            "Lock wait failed for customer %s@%s: %s", customer_id, merchant_id, exc
        )
        raise LedgermanError(
            "LOCK_TIMEOUT",
            merchant_id=merchant_id,
            customer_id=customer_id,
        ) from exc


def _apply_lock_timeout() -> None:
    """Bound lock waits for the current transaction (PostgreSQL only)."""
    timeout_ms = ledgerman_settings.LOCK_TIMEOUT_MS
    if not timeout_ms or connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('lock_timeout', %s, true)",
            [f"{int(timeout_ms)}ms"],
        )


# ======================================================================
# Writer
# ======================================================================


def find_entry(merchant_id: int, idempotency_key: str) -> LedgerEntry | None:
    """Look up the entry recorded under (merchant, idempotency_key)."""
    return LedgerEntry.objects.filter(
        merchant_id=merchant_id,
        idempotency_key=idempotency_key,
    ).first()


def replay_of(entry: LedgerEntry, customer_id: int, entry_type: str) -> Replayed:
    """
    Accept ``entry`` as the original outcome of a retried operation.

    A key reused for another customer or another entry type is not a
    replay but a conflicting operation.

    Raises:
        LedgermanError: IDEMPOTENCY_CONFLICT
    """
    if entry.customer_id != customer_id or entry.type != entry_type:
        logger.warning(
            "Idempotency key %r reused: stored %s for customer %s, got %s for customer %s",
            entry.idempotency_key,
            entry.type,
            entry.customer_id,
            entry_type,
            customer_id,
        )
        raise LedgermanError(
            "IDEMPOTENCY_CONFLICT",
            message="Idempotency key already used for a different operation",
            idempotency_key=entry.idempotency_key,
            entry_id=entry.pk,
        )
    logger.info("Replay of ledger entry %s (%s)", entry.pk, entry.idempotency_key)
    return Replayed(entry)


def append_entry(
    merchant_id: int,
    customer_id: int,
    entry_type: str,
    points_delta: int,
    source: str,
    idempotency_key: str,
    rule_version_id: int | None = None,
    external_id: str | None = None,
) -> AppendOutcome:
    """
    Append one ledger entry under the idempotency contract.

    The insert runs in a savepoint guarded by the (merchant, idempotency_key)
    unique constraint. If the key is taken, the original entry is returned
    as Replayed; replaying is always safe.

    Args:
        merchant_id: Merchant id
        customer_id: Customer id (must belong to merchant)
        entry_type: EntryType value
        points_delta: Signed integer delta
        source: EntrySource value
        idempotency_key: Caller-supplied dedup key
        rule_version_id: RuleVersion used to compute an earn
        external_id: Correlation id (e.g. redemption uuid)

    Returns:
        Created(entry) or Replayed(entry)

    Raises:
        GateError: On malformed input
        LedgermanError: CUSTOMER_NOT_FOUND, IDEMPOTENCY_CONFLICT,
            CONSTRAINT_VIOLATION
    """
    Gates.idempotency_key(idempotency_key)
    if entry_type not in EntryType.values:
        raise ValueError(f"Unknown ledger entry type: {entry_type!r}")
    if source not in EntrySource.values:
        raise ValueError(f"Unknown ledger entry source: {source!r}")
    if isinstance(points_delta, bool) or not isinstance(points_delta, int):
        raise ValueError(f"points_delta must be an int, got {points_delta!r}")

    if not Customer.objects.filter(pk=customer_id, merchant_id=merchant_id).exists():
        raise LedgermanError(
            "CUSTOMER_NOT_FOUND",
            merchant_id=merchant_id,
            customer_id=customer_id,
        )

    try:
        with transaction.atomic():
            entry = LedgerEntry.objects.create(
                merchant_id=merchant_id,
                customer_id=customer_id,
                type=entry_type,
                points_delta=points_delta,
                source=source,
                rule_version_id=rule_version_id,
                external_id=external_id,
                idempotency_key=idempotency_key,
            )
    except IntegrityError as exc:
        existing = find_entry(merchant_id, idempotency_key)
        if existing is None:
            # Key conflict reported but no row visible: storage anomaly, not a replay
            logger.error(
                "Insert rejected for key %r but no entry found (merchant %s): %s",
                idempotency_key,
                merchant_id,
                exc,
            )
            raise LedgermanError(
                "IDEMPOTENCY_CONFLICT",
                idempotency_key=idempotency_key,
                merchant_id=merchant_id,
            ) from exc
        return replay_of(existing, customer_id, entry_type)

    logger.info(
        "Ledger %s %+d for customer %s@%s (entry %s)",
        entry_type,
        points_delta,
        customer_id,
        merchant_id,
        entry.pk,
    )
    transaction.on_commit(
        lambda: ledger_entry_created.send(sender=LedgerEntry, entry=entry)
    )
    return Created(entry)


# ======================================================================
# Reader
# ======================================================================


def get_balance(merchant_id: int, customer_id: int) -> int:
    """Current balance: SUM(points_delta), 0 for a customer with no entries."""
    return LedgerEntry.objects.filter(
        merchant_id=merchant_id,
        customer_id=customer_id,
    ).balance()


def list_ledger(
    merchant_id: int,
    customer_id: int,
    limit: int | None = None,
) -> list[LedgerEntry]:
    """
    Ledger history for a customer, newest first.

    ``limit`` defaults to LEDGER_LIST_DEFAULT and is clamped to
    [1, LEDGER_LIST_MAX].
    """
    if limit is None:
        limit = ledgerman_settings.LEDGER_LIST_DEFAULT
    limit = max(1, min(int(limit), ledgerman_settings.LEDGER_LIST_MAX))
    return list(
        LedgerEntry.objects.filter(
            merchant_id=merchant_id,
            customer_id=customer_id,
        ).order_by("-created_at", "-id")[:limit]
    )
