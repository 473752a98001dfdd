from django.apps import AppConfig


class StampmanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "stampman"
    verbose_name = "Stampman - Loyalty & Wallet"

    def ready(self):
        from stampman.signals import purchase_registered
        from stampman.wallet.sync import on_purchase_registered

        purchase_registered.connect(on_purchase_registered, dispatch_uid="stampman.wallet_sync")
