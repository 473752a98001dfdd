# Generated migration for Apple Wallet device registrations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("stampman", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="WalletDevice",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("device_library_identifier", models.CharField(max_length=128, verbose_name="dispositivo")),
                ("push_token", models.CharField(max_length=255, verbose_name="token push")),
                ("pass_type_id", models.CharField(max_length=255, verbose_name="tipo de pase")),
                ("serial_number", models.CharField(max_length=128, verbose_name="número de serie")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="registrado en")),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True, verbose_name="actualizado en")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="wallet_devices",
                        to="stampman.profile",
                        verbose_name="cliente",
                    ),
                ),
            ],
            options={
                "verbose_name": "dispositivo wallet",
                "verbose_name_plural": "dispositivos wallet",
            },
        ),
        migrations.AddConstraint(
            model_name="walletdevice",
            constraint=models.UniqueConstraint(
                fields=("device_library_identifier", "serial_number"),
                name="stampman_unique_device_serial",
            ),
        ),
    ]
