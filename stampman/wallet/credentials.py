"""Wallet provider credentials, loaded from STAMPMAN settings."""

import base64
import binascii
from dataclasses import dataclass

from stampman.conf import stampman_settings


def normalize_pem(value: str | None) -> str:
    """Turn an env-provided PEM (escaped newlines, CRLF) into a real PEM."""
    key = (value or "").strip()
    if "\\n" in key:
        key = key.replace("\\n", "\n")
    if "\r\n" in key:
        key = key.replace("\r\n", "\n")
    return key.strip()


def decode_pem_or_base64(value: str | None) -> bytes:
    """
    Accept either a PEM string or a base64-encoded PEM (as stored in env vars).

    Returns empty bytes when nothing usable is configured.
    """
    text = normalize_pem(value)
    if not text:
        return b""
    if "-----BEGIN" in text:
        return text.encode()
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return b""


@dataclass(frozen=True)
class GoogleWalletCredentials:
    service_account_email: str
    private_key: str
    issuer_id: str
    class_id: str

    @classmethod
    def from_settings(cls) -> "GoogleWalletCredentials":
        return cls(
            service_account_email=(stampman_settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL or "").strip(),
            private_key=normalize_pem(stampman_settings.GOOGLE_WALLET_PRIVATE_KEY),
            issuer_id=(stampman_settings.GOOGLE_WALLET_ISSUER_ID or "").strip(),
            class_id=(stampman_settings.GOOGLE_WALLET_CLASS_ID or "").strip(),
        )

    def object_id(self, suffix: str) -> str:
        return f"{self.issuer_id}.{suffix}"


@dataclass(frozen=True)
class AppleWalletCredentials:
    pass_type_id: str
    team_id: str
    wwdr_cert: bytes
    signer_cert: bytes
    signer_key: bytes
    signer_key_passphrase: str
    web_service_url: str
    auth_token_secret: str

    @classmethod
    def from_settings(cls) -> "AppleWalletCredentials":
        return cls(
            pass_type_id=(stampman_settings.APPLE_PASS_TYPE_ID or "").strip(),
            team_id=(stampman_settings.APPLE_TEAM_ID or "").strip(),
            wwdr_cert=decode_pem_or_base64(stampman_settings.APPLE_WWDR_CERT),
            signer_cert=decode_pem_or_base64(stampman_settings.APPLE_SIGNER_CERT),
            signer_key=decode_pem_or_base64(stampman_settings.APPLE_SIGNER_KEY),
            signer_key_passphrase=stampman_settings.APPLE_SIGNER_KEY_PASSPHRASE or "",
            web_service_url=(stampman_settings.APPLE_WEB_SERVICE_URL or "").rstrip("/"),
            auth_token_secret=stampman_settings.APPLE_AUTH_TOKEN_SECRET or "",
        )


def pass_object_suffix(customer_id) -> str:
    """Deterministic pass object suffix for a customer."""
    return f"{stampman_settings.OBJECT_ID_PREFIX}-{customer_id}"
