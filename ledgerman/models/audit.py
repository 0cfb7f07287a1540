"""AuditLog model - default storage for the database audit backend."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditLog(models.Model):
    """One audit record per redeem, adjust, rule change, or token revocation."""

    merchant = models.ForeignKey(
        "ledgerman.Merchant",
        on_delete=models.PROTECT,
        related_name="audit_logs",
        verbose_name=_("merchant"),
    )
    actor = models.CharField(
        _("actor"),
        max_length=100,
        blank=True,
        help_text=_("Staff user or system that performed the action"),
    )
    action = models.CharField(_("action"), max_length=50, db_index=True)
    target_type = models.CharField(_("target type"), max_length=50)
    target_id = models.CharField(_("target id"), max_length=100)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("audit log")
        verbose_name_plural = _("audit logs")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["merchant", "-created_at"], name="ledgerman_audit_merchant_idx"),
        ]

    def __str__(self):
        return f"[{self.action}] {self.target_type}:{self.target_id}"
