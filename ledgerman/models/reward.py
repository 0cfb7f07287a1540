"""Reward model."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Reward(models.Model):
    """Merchant-defined redeemable item."""

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="rewards",
        verbose_name=_("merchant"),
    )
    name = models.CharField(_("name"), max_length=200)
    points_cost = models.PositiveIntegerField(_("points cost"))
    active = models.BooleanField(_("active"), default=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("reward")
        verbose_name_plural = _("rewards")
        ordering = ["points_cost", "name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(points_cost__gt=0),
                name="ledgerman_reward_points_cost_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.points_cost}pts)"
