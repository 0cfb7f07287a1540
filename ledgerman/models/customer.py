"""Customer model."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class CustomerStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    BLOCKED = "blocked", _("Blocked")


class Customer(models.Model):
    """
    Anonymous or claimed identity within one merchant.

    The customer row doubles as the per-customer lock: every
    balance-affecting operation takes SELECT ... FOR UPDATE on it
    before reading the balance.
    """

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="customers",
        verbose_name=_("merchant"),
    )
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=CustomerStatus.choices,
        default=CustomerStatus.ACTIVE,
        db_index=True,
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    blocked_at = models.DateTimeField(_("blocked at"), null=True, blank=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["-created_at"]

    def __str__(self):
        return f"customer:{self.pk} @ {self.merchant_id} [{self.status}]"

    @property
    def is_blocked(self) -> bool:
        return self.status == CustomerStatus.BLOCKED
