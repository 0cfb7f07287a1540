"""CustomerToken model - presentable credentials (QR, barcode, NFC, wallet)."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class TokenType(models.TextChoices):
    QR = "qr", _("QR code")
    BARCODE = "barcode", _("Barcode")
    NFC = "nfc", _("NFC")
    APPLE_WALLET = "apple_wallet", _("Apple Wallet")
    GOOGLE_WALLET = "google_wallet", _("Google Wallet")
    SAMSUNG_WALLET = "samsung_wallet", _("Samsung Wallet")


class TokenStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    REVOKED = "revoked", _("Revoked")


class CustomerToken(models.Model):
    """
    Opaque credential bound to one customer within one merchant.

    public_token is random (see services.tokens.issue_token) and never
    derived from the customer id. A customer may hold several tokens;
    all of them resolve to the same balance.
    """

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="tokens",
        verbose_name=_("merchant"),
    )
    customer = models.ForeignKey(
        "ledgerman.Customer",
        on_delete=models.PROTECT,
        related_name="tokens",
        verbose_name=_("customer"),
    )
    type = models.CharField(_("type"), max_length=20, choices=TokenType.choices)
    public_token = models.CharField(_("public token"), max_length=128)
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=TokenStatus.choices,
        default=TokenStatus.ACTIVE,
    )
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)
    issued_at = models.DateTimeField(_("issued at"), auto_now_add=True)
    revoked_at = models.DateTimeField(_("revoked at"), null=True, blank=True)

    class Meta:
        verbose_name = _("customer token")
        verbose_name_plural = _("customer tokens")
        ordering = ["-issued_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["merchant", "public_token"],
                name="ledgerman_token_merchant_public_token_uq",
            ),
        ]
        indexes = [
            models.Index(fields=["public_token"], name="ledgerman_token_public_idx"),
        ]

    def __str__(self):
        return f"{self.type}:{self.public_token[:8]}... [{self.status}]"

    @property
    def is_active(self) -> bool:
        return self.status == TokenStatus.ACTIVE
