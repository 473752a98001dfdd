"""
Stampman configuration.

Usage in settings.py:
    STAMPMAN = {
        "CURRENCY_UNITS_PER_POINT": 10,
        "STAMPS_PER_CARD": 8,
        "GOOGLE_WALLET_ISSUER_ID": "3388000000012345678",
    }

Wallet secrets default to environment variables so they never have to live in
settings files.
"""

import os
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


def _env(name: str):
    return field(default_factory=lambda: os.environ.get(name, ""))


_SPRITE_BASE = "https://eohpjvbbrvktqyacpcmn.supabase.co/storage/v1/object/public/wallet-images"


@dataclass
class StampmanSettings:
    """Stampman configuration settings."""

    # Purchase policy
    CURRENCY_UNITS_PER_POINT: int = 10
    STAMPS_PER_CARD: int = 8
    LEVEL_POINTS_THRESHOLD: int = 150
    REWARD_EXPIRY_DAYS: int = 90

    # Pass content
    DEFAULT_DISPLAY_NAME: str = "Cliente LeDuo"
    PROGRAM_NAME: str = "LeDuo Rewards"
    OBJECT_ID_PREFIX: str = "LEDUO"
    BASE_TIER_NAME: str = "Cliente Le Duo"
    ELEVATED_TIER_NAME: str = "Leduo Leyend"
    BASE_TIER_COLOR: str = "#D4C5B9"
    ELEVATED_TIER_COLOR: str = "#2C3E50"
    LOGO_URL: str = "https://i.ibb.co/YFJgZLMs/Le-Duo-Logo.png"
    PASS_LINKS: list = field(
        default_factory=lambda: [
            {"uri": "https://maps.app.goo.gl/j1VUSDoehyfLLZUUA", "description": "Cómo llegar a LeDuo", "id": "location"},
            {"uri": "tel:+7711295938", "description": "Llamar a LeDuo", "id": "phone"},
            {"uri": "https://leduo.mx", "description": "Sitio web", "id": "website"},
        ]
    )

    # Stamp card artwork
    STAMP_SLOTS: list = field(
        default_factory=lambda: [
            (180, 220, 62), (420, 220, 62), (660, 220, 62), (900, 220, 62),
            (180, 460, 62), (420, 460, 62), (660, 460, 62), (900, 460, 62),
        ]
    )
    LOCKED_IMAGE_URL: str = "https://i.ibb.co/spTjj1x4/le-Duo-Stamps.png"
    REVEALED_IMAGE_URL: str = "https://i.ibb.co/3YRsZfBC/le-Duo-Stamps-1.png"
    SPRITE_URLS: list = field(
        default_factory=lambda: [f"{_SPRITE_BASE}/{n}-sellos.png" for n in range(9)]
    )

    # Outbound HTTP
    HTTP_TIMEOUT: float = 10.0

    # Wallet sync
    WALLET_SYNC_ASYNC: bool = True
    WALLET_MIRRORS: list = field(
        default_factory=lambda: [
            "stampman.wallet.google.GoogleWalletUpdater",
            "stampman.adapters.apns.ApplePassPushNotifier",
        ]
    )

    # Google Wallet
    GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL: str = _env("WALLET_SERVICE_ACCOUNT_EMAIL")
    GOOGLE_WALLET_PRIVATE_KEY: str = _env("WALLET_PRIVATE_KEY")
    GOOGLE_WALLET_ISSUER_ID: str = _env("GOOGLE_WALLET_ISSUER_ID")
    GOOGLE_WALLET_CLASS_ID: str = _env("GOOGLE_WALLET_CLASS_ID")
    GOOGLE_WALLET_ORIGINS: list = field(default_factory=list)
    GOOGLE_WALLET_SAVE_URL: str = "https://pay.google.com/gp/v/save"
    GOOGLE_WALLET_OBJECT_URL: str = "https://walletobjects.googleapis.com/walletobjects/v1/genericObject"
    GOOGLE_OAUTH_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_WALLET_SCOPE: str = "https://www.googleapis.com/auth/wallet_object.issuer"

    # Apple Wallet
    APPLE_PASS_TYPE_ID: str = _env("APPLE_PASS_TYPE_ID")
    APPLE_TEAM_ID: str = _env("APPLE_TEAM_ID")
    APPLE_WWDR_CERT: str = _env("APPLE_WWDR_CERT_B64")
    APPLE_SIGNER_CERT: str = _env("APPLE_SIGNER_CERT_B64")
    APPLE_SIGNER_KEY: str = _env("APPLE_SIGNER_KEY_B64")
    APPLE_SIGNER_KEY_PASSPHRASE: str = _env("APPLE_SIGNER_KEY_PASSPHRASE")
    APPLE_WEB_SERVICE_URL: str = _env("APPLE_WALLET_SERVER_URL")
    APPLE_AUTH_TOKEN_SECRET: str = _env("WALLET_TOKEN_SECRET")
    APPLE_APNS_URL: str = "https://api.push.apple.com"
    APPLE_ORGANIZATION_NAME: str = "Le Duo"


def get_stampman_settings() -> StampmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STAMPMAN", {})
    return StampmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stampman_settings(), name)


stampman_settings = _LazySettings()
