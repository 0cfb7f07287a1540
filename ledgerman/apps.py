from django.apps import AppConfig


class LedgermanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ledgerman"
    verbose_name = "Ledgerman - Loyalty Ledger"
