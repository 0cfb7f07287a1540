"""Reward catalog service."""

import logging

from ledgerman.exceptions import LedgermanError
from ledgerman.models import Merchant, Reward

logger = logging.getLogger(__name__)


def create_reward(merchant_id: int, name: str, points_cost: int) -> Reward:
    """
    Create an active reward.

    Raises:
        ValueError: If name is blank or points_cost is not a positive int
        LedgermanError: MERCHANT_NOT_FOUND
    """
    if not name or not name.strip():
        raise ValueError("Reward name is required")
    if isinstance(points_cost, bool) or not isinstance(points_cost, int) or points_cost <= 0:
        raise ValueError(f"points_cost must be a positive integer, got {points_cost!r}")
    if not Merchant.objects.filter(pk=merchant_id).exists():
        raise LedgermanError("MERCHANT_NOT_FOUND", merchant_id=merchant_id)

    reward = Reward.objects.create(
        merchant_id=merchant_id,
        name=name.strip(),
        points_cost=points_cost,
    )
    logger.info("Reward %s (%s pts) created for merchant %s", reward.pk, points_cost, merchant_id)
    return reward


def get_active_reward(merchant_id: int, reward_id: int) -> Reward:
    """
    Active reward of this merchant.

    Raises:
        LedgermanError: REWARD_NOT_FOUND if absent, inactive, or owned by
            another merchant
    """
    try:
        return Reward.objects.get(pk=reward_id, merchant_id=merchant_id, active=True)
    except Reward.DoesNotExist:
        raise LedgermanError(
            "REWARD_NOT_FOUND",
            merchant_id=merchant_id,
            reward_id=reward_id,
        )


def deactivate_reward(merchant_id: int, reward_id: int) -> Reward:
    """Hide a reward from redemption. Past redemptions keep referencing it."""
    try:
        reward = Reward.objects.get(pk=reward_id, merchant_id=merchant_id)
    except Reward.DoesNotExist:
        raise LedgermanError(
            "REWARD_NOT_FOUND",
            merchant_id=merchant_id,
            reward_id=reward_id,
        )
    if reward.active:
        reward.active = False
        reward.save(update_fields=["active"])
    return reward


def list_rewards(merchant_id: int, max_cost: int | None = None) -> list[Reward]:
    """
    Active rewards ordered by cost (cheapest first).

    Pass the customer's balance as ``max_cost`` to list what they can afford.
    """
    qs = Reward.objects.filter(merchant_id=merchant_id, active=True)
    if max_cost is not None:
        qs = qs.filter(points_cost__lte=max_cost)
    return list(qs.order_by("points_cost", "name"))
