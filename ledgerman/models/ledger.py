"""LedgerEntry model - the append-only source of truth for balances."""

from django.db import models
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from ledgerman.exceptions import LedgermanError


class EntryType(models.TextChoices):
    EARN = "earn", _("Earn")
    REDEEM = "redeem", _("Redeem")
    ADJUST = "adjust", _("Adjust")
    REVERSAL = "reversal", _("Reversal")
    EXPIRE = "expire", _("Expire")


class EntrySource(models.TextChoices):
    TERMINAL = "terminal", _("Terminal")
    POS = "pos", _("Point of sale")
    ADMIN = "admin", _("Admin")


class LedgerEntryQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of existing entries."""

    def update(self, **kwargs):
        raise LedgermanError("LEDGER_IMMUTABLE", operation="update")

    def delete(self):
        raise LedgermanError("LEDGER_IMMUTABLE", operation="delete")

    def balance(self) -> int:
        """Sum of points_delta over the queryset (0 when empty)."""
        total = self.aggregate(
            total=Coalesce(models.Sum("points_delta"), 0)
        )["total"]
        return int(total)


class LedgerEntry(models.Model):
    """
    Immutable record of one balance change.

    (merchant, idempotency_key) is unique: this is the exactly-once
    contract. Corrections are new entries (reversal/adjust), never edits.
    Inserts go through services.ledger.append_entry only.
    """

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name=_("merchant"),
    )
    customer = models.ForeignKey(
        "ledgerman.Customer",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        verbose_name=_("customer"),
    )
    type = models.CharField(_("type"), max_length=20, choices=EntryType.choices)
    points_delta = models.IntegerField(
        _("points delta"),
        help_text=_("Positive for earn/reversal, negative for redeem/expire"),
    )
    source = models.CharField(_("source"), max_length=20, choices=EntrySource.choices)
    external_id = models.CharField(
        _("external id"),
        max_length=100,
        null=True,
        blank=True,
        help_text=_("Correlation id (e.g. redemption id)"),
    )
    rule_version = models.ForeignKey(
        "ledgerman.RuleVersion",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        null=True,
        blank=True,
        verbose_name=_("rule version"),
    )
    idempotency_key = models.CharField(_("idempotency key"), max_length=255)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _("ledger entry")
        verbose_name_plural = _("ledger entries")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["merchant", "idempotency_key"],
                name="ledgerman_ledger_merchant_idempotency_uq",
            ),
        ]
        indexes = [
            models.Index(
                fields=["merchant", "customer", "created_at"],
                name="ledgerman_ledger_cust_idx",
            ),
        ]

    def __str__(self):
        sign = "+" if self.points_delta > 0 else ""
        return f"{self.type} {sign}{self.points_delta}pts ({self.idempotency_key})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgermanError("LEDGER_IMMUTABLE", operation="update", entry_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgermanError("LEDGER_IMMUTABLE", operation="delete", entry_id=self.pk)
