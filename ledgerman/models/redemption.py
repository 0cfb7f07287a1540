"""Redemption model."""

import uuid as uuid_lib

from django.db import models
from django.utils.translation import gettext_lazy as _


class RedemptionStatus(models.TextChoices):
    APPROVED = "approved", _("Approved")
    REVERSED = "reversed", _("Reversed")


class Redemption(models.Model):
    """
    A reward granted to a customer.

    Always created in the same transaction as its paired ``redeem``
    LedgerEntry, whose external_id carries this redemption's uuid.
    """

    # Public reference, carried as external_id by the paired ledger entry
    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True)

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("merchant"),
    )
    customer = models.ForeignKey(
        "ledgerman.Customer",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("customer"),
    )
    reward = models.ForeignKey(
        "ledgerman.Reward",
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("reward"),
    )
    points_cost = models.PositiveIntegerField(_("points cost"))
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=RedemptionStatus.choices,
        default=RedemptionStatus.APPROVED,
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    reversed_at = models.DateTimeField(_("reversed at"), null=True, blank=True)

    class Meta:
        verbose_name = _("redemption")
        verbose_name_plural = _("redemptions")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["merchant", "customer", "created_at"],
                name="ledgerman_redemption_cust_idx",
            ),
        ]

    def __str__(self):
        return f"redemption:{self.pk} {self.points_cost}pts [{self.status}]"
