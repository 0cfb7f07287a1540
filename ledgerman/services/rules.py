"""
Rules service - versioned points policy.

Rule versions are append-only. create_rule_version() assigns max+1 inside
the inserting transaction, with the merchant row locked; the
(merchant, version) unique constraint is the backstop, retried on conflict.
"""

import logging
from datetime import datetime
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.gates import Gates, as_decimal
from ledgerman.models import Merchant, RoundingMode, RuleVersion
from ledgerman.services import audit
from ledgerman.signals import rule_version_created

logger = logging.getLogger(__name__)

_RATE_QUANTUM = Decimal("0.0001")


def resolve_active_rule(merchant_id: int, as_of: datetime | None = None) -> RuleVersion:
    """
    Rule version in force at ``as_of`` (default: now).

    Highest version whose effective_from <= as_of. A version scheduled for
    the future does not shadow the one currently in force.

    Raises:
        LedgermanError: RULES_MISSING if no version is effective yet
    """
    as_of = as_of or timezone.now()
    rule = (
        RuleVersion.objects.filter(merchant_id=merchant_id, effective_from__lte=as_of)
        .order_by("-version")
        .first()
    )
    if rule is None:
        raise LedgermanError(
            "RULES_MISSING",
            merchant_id=merchant_id,
            as_of=as_of.isoformat(),
        )
    return rule


def list_rule_versions(merchant_id: int) -> list[RuleVersion]:
    """All rule versions for a merchant, newest version first."""
    return list(RuleVersion.objects.filter(merchant_id=merchant_id).order_by("-version"))


def create_rule_version(
    merchant_id: int,
    points_per_unit,
    rounding: str = RoundingMode.FLOOR,
    promo_multiplier=1,
    effective_from: datetime | None = None,
    actor: str = "",
) -> RuleVersion:
    """
    Append a new rule version (current max + 1).

    Args:
        merchant_id: Merchant id
        points_per_unit: Points per currency unit (positive)
        rounding: "floor" or "nearest"
        promo_multiplier: Promotional multiplier (positive, default 1)
        effective_from: When the version takes effect (default: now)
        actor: Staff identifier for the audit record

    Returns:
        Created RuleVersion

    Raises:
        GateError: On invalid parameters
        LedgermanError: MERCHANT_NOT_FOUND, or CONSTRAINT_VIOLATION if a
            version number could not be assigned after retries
    """
    Gates.rule_parameters(points_per_unit, rounding, promo_multiplier)
    rate = _quantize(points_per_unit)
    multiplier = _quantize(promo_multiplier)
    # Values below the stored precision would round to zero
    Gates.rule_parameters(rate, rounding, multiplier)
    effective_from = effective_from or timezone.now()

    attempts = max(1, ledgerman_settings.RULE_VERSION_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                rule = _insert_next_version(
                    merchant_id, rate, rounding, multiplier, effective_from, actor
                )
        except IntegrityError as exc:
            logger.warning(
                "Rule version collision for merchant %s (attempt %s/%s): %s",
                merchant_id,
                attempt,
                attempts,
                exc,
            )
            if attempt == attempts:
                raise LedgermanError(
                    "CONSTRAINT_VIOLATION",
                    message="Could not assign a rule version number",
                    merchant_id=merchant_id,
                ) from exc
            continue
        break

    logger.info(
        "Rule v%s for merchant %s: %s/unit x%s %s from %s",
        rule.version,
        merchant_id,
        rate,
        multiplier,
        rounding,
        effective_from.isoformat(),
    )
    transaction.on_commit(lambda: rule_version_created.send(sender=RuleVersion, rule=rule))
    return rule


def _insert_next_version(merchant_id, rate, rounding, multiplier, effective_from, actor):
    """Lock merchant, read max(version), insert max+1, audit. Call inside atomic()."""
    try:
        Merchant.objects.select_for_update().get(pk=merchant_id)
    except Merchant.DoesNotExist:
        raise LedgermanError("MERCHANT_NOT_FOUND", merchant_id=merchant_id)

    current = RuleVersion.objects.filter(merchant_id=merchant_id).aggregate(
        current=Max("version")
    )["current"] or 0

    rule = RuleVersion.objects.create(
        merchant_id=merchant_id,
        version=current + 1,
        points_per_unit=rate,
        rounding=rounding,
        promo_multiplier=multiplier,
        effective_from=effective_from,
        created_by=actor,
    )

    audit.record(
        merchant_id,
        "rules_version_created",
        "rule_version",
        rule.pk,
        actor=actor,
        metadata={
            "version": rule.version,
            "points_per_unit": str(rate),
            "rounding": rounding,
            "promo_multiplier": str(multiplier),
            "effective_from": effective_from.isoformat(),
        },
    )
    return rule


def _quantize(value) -> Decimal:
    return as_decimal(value).quantize(_RATE_QUANTUM)
