"""
Google Wallet: save links for new passes and PATCH updates for existing ones.

Issuing:
    link = GoogleWalletIssuer().issue({"id": "abc", "stamps": 3})
    link.save_url  # https://pay.google.com/gp/v/save/<jwt>

Updating (never raises):
    result = GoogleWalletUpdater().push(PassUpdate(...))
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass

import jwt
import requests

from stampman.conf import stampman_settings
from stampman.exceptions import ConfigurationError, UpstreamError, ValidationError
from stampman.gates import Gates
from stampman.protocols.wallet import PassUpdate, WalletUpdateResult
from stampman.render import StampSpriteSpec, clamp_stamps, sprite_url
from stampman.wallet.content import (
    CustomerCard,
    normalize_customer_data,
    stamps_header,
    stamps_progress_text,
    tier_for,
)
from stampman.wallet.credentials import GoogleWalletCredentials, pass_object_suffix

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME = 3600
LANGUAGE = "es"


def _localized(value: str) -> dict:
    return {"defaultValue": {"language": LANGUAGE, "value": value}}


def _sign(claims: dict, private_key: str, code: str) -> str:
    try:
        return jwt.encode(claims, private_key, algorithm="RS256")
    except (ValueError, TypeError, jwt.PyJWTError) as exc:
        logger.error("Google Wallet JWT signing failed: %s", exc)
        raise UpstreamError(code, details=str(exc)) from exc


@dataclass(frozen=True)
class SaveLink:
    save_url: str
    object_id: str


# =============================================================================
# Issuer
# =============================================================================


class GoogleWalletIssuer:
    """Builds and signs the "save to Google Wallet" link for a customer."""

    def __init__(
        self,
        credentials: GoogleWalletCredentials | None = None,
        spec: StampSpriteSpec | None = None,
    ):
        self._credentials = credentials
        self.spec = spec or StampSpriteSpec.from_settings()

    @property
    def credentials(self) -> GoogleWalletCredentials:
        return self._credentials or GoogleWalletCredentials.from_settings()

    def check_configuration(self) -> GoogleWalletCredentials:
        """Raise ConfigurationError listing every missing/malformed secret."""
        credentials = self.credentials
        Gates.google_wallet_credentials(credentials)
        return credentials

    def issue(self, customer_data: dict | None, object_id_suffix: str | None = None) -> SaveLink:
        """
        Sign a save link for the customer's current state.

        Args:
            customer_data: {id, name?, cashbackPoints?, stamps?}
            object_id_suffix: Explicit object suffix; derived from the id when omitted

        Raises:
            ConfigurationError: Credentials missing or malformed (checked first)
            ValidationError: customer id missing
            UpstreamError: Signing failed
        """
        credentials = self.check_configuration()

        card = normalize_customer_data(customer_data)
        if not card.id:
            raise ValidationError(
                "MISSING_FIELDS",
                required=["customerData.id"],
                received={"customerId": None},
            )

        object_id = credentials.object_id(object_id_suffix or pass_object_suffix(card.id))
        issued_at = int(time.time())
        loyalty_object = self.build_loyalty_object(card, object_id, credentials.class_id, issued_at)
        claims = {
            "iss": credentials.service_account_email,
            "aud": "google",
            "typ": "savetowallet",
            "iat": issued_at,
            "origins": list(stampman_settings.GOOGLE_WALLET_ORIGINS),
            "payload": {"loyaltyObjects": [loyalty_object]},
        }

        token = _sign(claims, credentials.private_key, "WALLET_SIGNING_FAILED")
        logger.info("Google Wallet save link issued for %s", object_id)
        return SaveLink(
            save_url=f"{stampman_settings.GOOGLE_WALLET_SAVE_URL}/{token}",
            object_id=object_id,
        )

    def build_loyalty_object(
        self,
        card: CustomerCard,
        object_id: str,
        class_id: str,
        issued_at: int,
    ) -> dict:
        per_card = stampman_settings.STAMPS_PER_CARD
        shown = clamp_stamps(card.stamps, per_card)
        return {
            "id": object_id,
            "classId": class_id,
            "state": "ACTIVE",
            "accountId": card.id,
            "accountName": card.name,
            "hexBackgroundColor": stampman_settings.BASE_TIER_COLOR,
            "logo": {"sourceUri": {"uri": stampman_settings.LOGO_URL}},
            "loyaltyPoints": {
                "label": "Puntos",
                "balance": {"string": str(card.cashback_points)},
            },
            "barcode": {
                "type": "QR_CODE",
                "value": f"leduo:{card.id}",
                "alternateText": card.id[:8],
            },
            "textModulesData": [
                {"id": "stamps_progress", "header": "Sellos", "body": f"{shown}/{per_card}"},
                {"id": "program_name", "header": "Programa", "body": stampman_settings.PROGRAM_NAME},
            ],
            "imageModulesData": [
                {
                    "id": "stamps_grid_big",
                    "mainImage": {
                        # Query string busts the provider's image cache per stamp count.
                        "sourceUri": {"uri": f"{sprite_url(shown, self.spec)}?v={shown}-{issued_at}"},
                        "contentDescription": _localized("Progreso de sellos"),
                    },
                }
            ],
            "linksModuleData": {"uris": list(stampman_settings.PASS_LINKS)},
        }


# =============================================================================
# Access token (service-account assertion exchange)
# =============================================================================


class TokenState(enum.Enum):
    NEED_CREDENTIAL = "need_credential"
    SIGNING = "signing"
    EXCHANGING = "exchanging"
    AUTHORIZED = "authorized"


class ServiceAccountTokenProvider:
    """
    Exchanges a signed service-account assertion for a short-lived bearer token.

    NEED_CREDENTIAL -> SIGNING -> EXCHANGING -> AUTHORIZED. The token is reused
    until REFRESH_MARGIN seconds before it expires; any failure drops back to
    NEED_CREDENTIAL.
    """

    REFRESH_MARGIN = 60

    def __init__(self, credentials: GoogleWalletCredentials, timeout: float | None = None):
        self.credentials = credentials
        self.timeout = timeout if timeout is not None else stampman_settings.HTTP_TIMEOUT
        self.state = TokenState.NEED_CREDENTIAL
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_token(self) -> str:
        """
        Raises:
            UpstreamError: Signing or exchange failed
        """
        with self._lock:
            if self.state is TokenState.AUTHORIZED and time.time() < self._expires_at - self.REFRESH_MARGIN:
                return self._token

            self.state = TokenState.NEED_CREDENTIAL
            try:
                self.state = TokenState.SIGNING
                assertion = self._sign_assertion()
                self.state = TokenState.EXCHANGING
                token, expires_in = self._exchange(assertion)
            except UpstreamError:
                self.state = TokenState.NEED_CREDENTIAL
                self._token = None
                raise

            self._token = token
            self._expires_at = time.time() + expires_in
            self.state = TokenState.AUTHORIZED
            return token

    def _sign_assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self.credentials.service_account_email,
            "scope": stampman_settings.GOOGLE_WALLET_SCOPE,
            "aud": stampman_settings.GOOGLE_OAUTH_TOKEN_URL,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME,
        }
        return _sign(claims, self.credentials.private_key, "WALLET_TOKEN_EXCHANGE_FAILED")

    def _exchange(self, assertion: str) -> tuple[str, int]:
        try:
            response = requests.post(
                stampman_settings.GOOGLE_OAUTH_TOKEN_URL,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError("WALLET_TOKEN_EXCHANGE_FAILED", details=str(exc)) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not response.ok or not token:
            logger.error(
                "Google token exchange failed: HTTP %s %s",
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                "WALLET_TOKEN_EXCHANGE_FAILED",
                status=response.status_code,
                details=response.text,
            )
        return token, int(payload.get("expires_in") or ASSERTION_LIFETIME)


_providers: dict[tuple[str, str], ServiceAccountTokenProvider] = {}
_providers_lock = threading.Lock()


def get_token_provider(credentials: GoogleWalletCredentials) -> ServiceAccountTokenProvider:
    """Shared provider per service account, so tokens are reused across pushes."""
    key = (credentials.service_account_email, credentials.private_key)
    with _providers_lock:
        provider = _providers.get(key)
        if provider is None:
            provider = _providers[key] = ServiceAccountTokenProvider(credentials)
        return provider


# =============================================================================
# Updater
# =============================================================================


class GoogleWalletUpdater:
    """
    Best-effort PATCH of a customer's pass object.

    Implements WalletMirror: push() logs and reports every failure instead of
    raising.
    """

    name = "google_wallet"

    def __init__(
        self,
        credentials: GoogleWalletCredentials | None = None,
        token_provider: ServiceAccountTokenProvider | None = None,
        spec: StampSpriteSpec | None = None,
        timeout: float | None = None,
    ):
        self._credentials = credentials
        self._token_provider = token_provider
        self.spec = spec or StampSpriteSpec.from_settings()
        self.timeout = timeout if timeout is not None else stampman_settings.HTTP_TIMEOUT

    def build_patch(self, update: PassUpdate) -> dict:
        """Only the fields that track ledger state."""
        level, color = tier_for(update.level_points)
        text_modules = [
            {
                "header": "Tu Nivel LeDuo",
                "body": f"{update.level_points} puntos • {level}",
                "id": "level",
            },
            {
                "header": "Progreso de Sellos",
                "body": stamps_progress_text(update.stamps),
                "id": "stamps",
            },
        ]
        if update.promotion_title and update.promotion_message:
            text_modules.append(
                {"header": update.promotion_title, "body": update.promotion_message, "id": "promotion"}
            )
        if update.is_birthday:
            text_modules.append(
                {
                    "header": "🎂 ¡Feliz Cumpleaños!",
                    "body": update.promotion_message or "Hoy es tu día especial. ¡Disfruta tu regalo!",
                    "id": "birthday",
                }
            )

        return {
            "hexBackgroundColor": color,
            "subheader": _localized(f"{update.customer_name} • {level}"),
            "header": _localized(stamps_header(update.stamps)),
            "heroImage": {"sourceUri": {"uri": sprite_url(update.stamps, self.spec)}},
            "textModulesData": text_modules,
        }

    def push(self, update: PassUpdate) -> WalletUpdateResult:
        credentials = self._credentials or GoogleWalletCredentials.from_settings()
        object_id = credentials.object_id(pass_object_suffix(update.customer_id))

        try:
            Gates.google_wallet_credentials(credentials, require_class=False)
        except ConfigurationError as exc:
            logger.error(
                "Google Wallet update skipped, credentials missing %s (customer=%s)",
                exc.missing,
                update.customer_id,
            )
            return WalletUpdateResult(
                ok=False, mirror=self.name, object_id=object_id, skipped=True, detail="missing_credentials"
            )

        provider = self._token_provider or get_token_provider(credentials)
        try:
            token = provider.get_token()
            response = requests.patch(
                f"{stampman_settings.GOOGLE_WALLET_OBJECT_URL}/{object_id}",
                json=self.build_patch(update),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except UpstreamError as exc:
            logger.error(
                "Google Wallet update failed for %s (customer=%s): %s %s",
                object_id,
                update.customer_id,
                exc.message,
                exc.data,
            )
            return WalletUpdateResult(
                ok=False,
                mirror=self.name,
                object_id=object_id,
                status=exc.data.get("status"),
                detail=str(exc.data.get("details", "")),
            )
        except requests.RequestException as exc:
            logger.error(
                "Google Wallet update failed for %s (customer=%s): %s",
                object_id,
                update.customer_id,
                exc,
            )
            return WalletUpdateResult(ok=False, mirror=self.name, object_id=object_id, detail=str(exc))

        if response.status_code == 404:
            logger.warning(
                "Google Wallet object %s not found (customer=%s has not saved the pass)",
                object_id,
                update.customer_id,
            )
            return WalletUpdateResult(
                ok=True, mirror=self.name, object_id=object_id, skipped=True, status=404
            )

        if not response.ok:
            logger.error(
                "Google Wallet API error for %s (customer=%s): HTTP %s %s",
                object_id,
                update.customer_id,
                response.status_code,
                response.text,
            )
            return WalletUpdateResult(
                ok=False,
                mirror=self.name,
                object_id=object_id,
                status=response.status_code,
                detail=response.text,
            )

        logger.info("Google Wallet updated: %s", object_id)
        return WalletUpdateResult(ok=True, mirror=self.name, object_id=object_id, status=response.status_code)
