"""CustomerDevice model - lazy customer creation per device session."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CustomerDevice(models.Model):
    """
    A device (browser or app install) bound to one customer of a merchant.

    The first session from an unknown device creates the customer; later
    sessions from the same device resolve to it. (merchant, device_id)
    is unique.
    """

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="devices",
        verbose_name=_("merchant"),
    )
    customer = models.ForeignKey(
        "ledgerman.Customer",
        on_delete=models.PROTECT,
        related_name="devices",
        verbose_name=_("customer"),
    )
    device_id = models.CharField(_("device id"), max_length=128)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    last_seen_at = models.DateTimeField(_("last seen at"), default=timezone.now)

    class Meta:
        verbose_name = _("customer device")
        verbose_name_plural = _("customer devices")
        constraints = [
            models.UniqueConstraint(
                fields=["merchant", "device_id"],
                name="ledgerman_device_merchant_device_uq",
            ),
        ]

    def __str__(self):
        return f"device:{self.device_id} -> customer:{self.customer_id}"
