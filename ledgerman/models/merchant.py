"""Merchant model (tenant boundary)."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Merchant(models.Model):
    """
    Tenant. Every other entity references exactly one merchant and
    uniqueness constraints (tokens, idempotency keys, rule versions)
    are scoped to it.
    """

    slug = models.SlugField(_("slug"), max_length=80, unique=True)
    name = models.CharField(_("name"), max_length=200)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("merchant")
        verbose_name_plural = _("merchants")
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.slug})"
