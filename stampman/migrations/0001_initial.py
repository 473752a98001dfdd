# Generated migration for the loyalty core models

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=150, verbose_name="nombre")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("customer", "Cliente"),
                            ("staff", "Staff"),
                            ("admin", "Admin"),
                        ],
                        db_index=True,
                        default="customer",
                        max_length=20,
                        verbose_name="rol",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stampman_profile",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="usuario",
                    ),
                ),
            ],
            options={
                "verbose_name": "perfil",
                "verbose_name_plural": "perfiles",
            },
        ),
        migrations.CreateModel(
            name="CustomerLedger",
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
                ("cashback_points", models.PositiveIntegerField(default=0, verbose_name="puntos cashback")),
                ("stamps", models.PositiveIntegerField(default=0, verbose_name="sellos")),
                (
                    "level_points",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Determina el nivel mostrado en el pase",
                        verbose_name="puntos de nivel",
                    ),
                ),
                (
                    "roulette_visits_since_last_spin",
                    models.PositiveIntegerField(default=0, verbose_name="visitas desde el último giro"),
                ),
                ("last_visit", models.DateTimeField(blank=True, null=True, verbose_name="última visita")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="actualizado en")),
                (
                    "customer",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ledger",
                        to="stampman.profile",
                        verbose_name="cliente",
                    ),
                ),
            ],
            options={
                "verbose_name": "estado del cliente",
                "verbose_name_plural": "estados de clientes",
            },
        ),
        migrations.CreateModel(
            name="VisitRecord",
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
                ("amount_spent", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="monto")),
                ("cashback_earned", models.PositiveIntegerField(default=0, verbose_name="puntos ganados")),
                ("stamps_earned", models.PositiveIntegerField(default=0, verbose_name="sellos ganados")),
                ("notes", models.CharField(blank=True, max_length=500, verbose_name="notas")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="fecha")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="visits",
                        to="stampman.profile",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="processed_visits",
                        to="stampman.profile",
                        verbose_name="procesado por",
                    ),
                ),
            ],
            options={
                "verbose_name": "visita",
                "verbose_name_plural": "visitas",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["customer", "-created_at"], name="stampman_visit_cust_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Reward",
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
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("product", "Producto gratis"),
                            ("points", "Puntos"),
                            ("coupon", "Cupón"),
                        ],
                        max_length=20,
                        verbose_name="tipo",
                    ),
                ),
                ("value", models.CharField(default="1", max_length=50, verbose_name="valor")),
                ("description", models.CharField(max_length=200, verbose_name="descripción")),
                (
                    "source",
                    models.CharField(
                        choices=[("stamps", "Sellos"), ("roulette", "Ruleta")],
                        max_length=20,
                        verbose_name="origen",
                    ),
                ),
                ("redeemed", models.BooleanField(db_index=True, default=False, verbose_name="canjeado")),
                ("redeemed_at", models.DateTimeField(blank=True, null=True, verbose_name="canjeado en")),
                ("earned_at", models.DateTimeField(auto_now_add=True, verbose_name="obtenido en")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="vence en")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rewards",
                        to="stampman.profile",
                        verbose_name="cliente",
                    ),
                ),
            ],
            options={
                "verbose_name": "recompensa",
                "verbose_name_plural": "recompensas",
                "ordering": ["-earned_at"],
            },
        ),
    ]
