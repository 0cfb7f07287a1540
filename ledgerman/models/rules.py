"""RuleVersion model - immutable points-computation policy snapshots."""

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ledgerman.exceptions import LedgermanError


class RoundingMode(models.TextChoices):
    FLOOR = "floor", _("Floor")
    NEAREST = "nearest", _("Nearest (half up)")


class RuleVersion(models.Model):
    """
    Versioned points policy for a merchant.

    Versions start at 1 and are unique per merchant. A policy change always
    creates version N+1; existing versions are never modified. The version
    used for a computation at time T is the highest one whose
    effective_from <= T.
    """

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="rule_versions",
        verbose_name=_("merchant"),
    )
    version = models.PositiveIntegerField(_("version"))
    points_per_unit = models.DecimalField(
        _("points per currency unit"),
        max_digits=12,
        decimal_places=4,
    )
    rounding = models.CharField(
        _("rounding"),
        max_length=10,
        choices=RoundingMode.choices,
        default=RoundingMode.FLOOR,
    )
    promo_multiplier = models.DecimalField(
        _("promotional multiplier"),
        max_digits=8,
        decimal_places=4,
        default=Decimal("1"),
    )
    effective_from = models.DateTimeField(_("effective from"), default=timezone.now)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    class Meta:
        verbose_name = _("rule version")
        verbose_name_plural = _("rule versions")
        ordering = ["merchant", "-version"]
        constraints = [
            models.UniqueConstraint(
                fields=["merchant", "version"],
                name="ledgerman_rule_merchant_version_uq",
            ),
            models.CheckConstraint(
                condition=Q(points_per_unit__gt=0),
                name="ledgerman_rule_points_per_unit_positive",
            ),
            models.CheckConstraint(
                condition=Q(promo_multiplier__gt=0),
                name="ledgerman_rule_promo_multiplier_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["merchant", "effective_from"], name="ledgerman_rule_effective_idx"),
        ]

    def __str__(self):
        return (
            f"v{self.version} {self.points_per_unit}/unit x{self.promo_multiplier} "
            f"({self.rounding})"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgermanError(
                "CONSTRAINT_VIOLATION",
                message="Rule versions are immutable; create a new version instead",
                rule_version_id=self.pk,
            )
        super().save(*args, **kwargs)
