"""Stampman admin.

Ledger balances and visits are read-only here: every change goes through
PurchaseService so the row lock and the wallet sync stay in one place.
"""

from django.contrib import admin
from django.utils.html import format_html

from stampman.conf import stampman_settings
from stampman.models import CustomerLedger, Profile, Reward, VisitRecord, WalletDevice


# ===========================================
# Inline Classes (must be defined before ProfileAdmin)
# ===========================================


class CustomerLedgerInline(admin.StackedInline):
    model = CustomerLedger
    extra = 0
    can_delete = False
    fields = ["cashback_points", "stamps", "level_points", "roulette_visits_since_last_spin", "last_visit"]
    readonly_fields = fields


class RecentVisitInline(admin.TabularInline):
    model = VisitRecord
    fk_name = "customer"
    extra = 0
    fields = ["amount_spent", "cashback_earned", "stamps_earned", "processed_by", "notes", "created_at"]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 10
    verbose_name_plural = "Visitas (últimas 10)"

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class RewardInline(admin.TabularInline):
    model = Reward
    extra = 0
    fields = ["type", "description", "source", "redeemed", "earned_at", "expires_at"]
    readonly_fields = ["earned_at"]


# ===========================================
# Profile Admin
# ===========================================


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ["name", "role", "user", "created_at"]
    list_filter = ["role"]
    search_fields = ["name", "user__username", "user__email"]
    raw_id_fields = ["user"]
    readonly_fields = ["id", "created_at"]
    inlines = [CustomerLedgerInline, RecentVisitInline, RewardInline]


# ===========================================
# CustomerLedger Admin
# ===========================================


@admin.register(CustomerLedger)
class CustomerLedgerAdmin(admin.ModelAdmin):
    list_display = [
        "customer",
        "cashback_points",
        "stamps_display",
        "tier_badge",
        "roulette_visits_since_last_spin",
        "last_visit",
    ]
    search_fields = ["customer__name", "customer__id"]
    raw_id_fields = ["customer"]
    readonly_fields = [
        "cashback_points",
        "stamps",
        "level_points",
        "roulette_visits_since_last_spin",
        "last_visit",
        "created_at",
        "updated_at",
    ]

    def stamps_display(self, obj):
        return f"{obj.card_progress}/{stampman_settings.STAMPS_PER_CARD}"

    stamps_display.short_description = "Sellos"

    def tier_badge(self, obj):
        if obj.level == stampman_settings.ELEVATED_TIER_NAME:
            color = stampman_settings.ELEVATED_TIER_COLOR
        else:
            color = stampman_settings.BASE_TIER_COLOR
        return format_html(
            '<span style="background: {}; color: white; padding: 2px 6px; border-radius: 3px;">{}</span>',
            color,
            obj.level,
        )

    tier_badge.short_description = "Nivel"


# ===========================================
# VisitRecord Admin (append-only)
# ===========================================


@admin.register(VisitRecord)
class VisitRecordAdmin(admin.ModelAdmin):
    list_display = ["customer", "amount_spent", "cashback_earned", "stamps_earned", "processed_by", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["customer__name", "notes"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Reward Admin
# ===========================================


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    list_display = ["customer", "type", "description", "source", "redeemed_badge", "earned_at", "expires_at"]
    list_filter = ["type", "source", "redeemed"]
    search_fields = ["customer__name", "description"]
    raw_id_fields = ["customer"]
    readonly_fields = ["earned_at", "redeemed_at"]

    def redeemed_badge(self, obj):
        if obj.redeemed:
            return format_html('<span style="color: gray;">canjeado</span>')
        return format_html('<span style="color: green;">pendiente</span>')

    redeemed_badge.short_description = "Estado"


# ===========================================
# WalletDevice Admin
# ===========================================


@admin.register(WalletDevice)
class WalletDeviceAdmin(admin.ModelAdmin):
    list_display = ["customer", "device_library_identifier", "serial_number", "updated_at"]
    search_fields = ["customer__name", "serial_number", "device_library_identifier"]
    raw_id_fields = ["customer"]
    readonly_fields = ["created_at", "updated_at"]

    def has_add_permission(self, request):
        return False
