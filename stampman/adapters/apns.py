"""Apple Wallet pass update notifier (APNs)."""

import logging
import os
import ssl
import tempfile

import httpx
from django.db import DatabaseError

from stampman.conf import stampman_settings
from stampman.exceptions import ConfigurationError
from stampman.gates import Gates
from stampman.protocols.wallet import PassUpdate, WalletUpdateResult
from stampman.wallet.credentials import AppleWalletCredentials
from stampman.wallet.passkit import PassRegistry

logger = logging.getLogger(__name__)

# APNs answers for push tokens that will never be valid again.
GONE_REASONS = {"BadDeviceToken", "Unregistered", "DeviceTokenNotForTopic"}


class ApplePassPushNotifier:
    """
    WalletMirror that tells every registered device to re-download the pass.

    Wallet pulls the new pass from the PassKit web service after an empty
    push sent over HTTP/2 with the pass type certificate. Skipped when the
    Apple signing material is not configured or the customer has no devices.

    Configuration in settings.py:
        STAMPMAN = {
            "APPLE_PASS_TYPE_ID": "pass.mx.leduo.loyalty",
            "APPLE_SIGNER_CERT": "...",
            "APPLE_SIGNER_KEY": "...",
            "APPLE_APNS_URL": "https://api.push.apple.com",
        }
    """

    name = "apple_wallet"

    def __init__(
        self,
        credentials: AppleWalletCredentials | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self._credentials = credentials
        self.base_url = (base_url or stampman_settings.APPLE_APNS_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else stampman_settings.HTTP_TIMEOUT

    @property
    def credentials(self) -> AppleWalletCredentials:
        return self._credentials or AppleWalletCredentials.from_settings()

    def push(self, update: PassUpdate) -> WalletUpdateResult:
        credentials = self.credentials
        try:
            Gates.apple_wallet_credentials(credentials)
        except ConfigurationError as exc:
            logger.debug("Apple Wallet not configured (%s), skipping push", ", ".join(exc.missing))
            return WalletUpdateResult(ok=True, mirror=self.name, skipped=True, detail="not_configured")

        try:
            tokens = PassRegistry.touch(update.customer_id)
        except DatabaseError as exc:
            logger.error("Apple Wallet devices unavailable (customer=%s): %s", update.customer_id, exc)
            return WalletUpdateResult(ok=False, mirror=self.name, detail=str(exc))

        if not tokens:
            logger.info("Customer %s has no Apple Wallet devices", update.customer_id)
            return WalletUpdateResult(ok=True, mirror=self.name, skipped=True, detail="no_devices")

        try:
            context = self._ssl_context(credentials)
        except (ssl.SSLError, OSError) as exc:
            logger.error("APNs certificate could not be loaded: %s", exc)
            return WalletUpdateResult(ok=False, mirror=self.name, detail=str(exc))

        sent, failed = 0, 0
        with httpx.Client(http2=True, verify=context, timeout=self.timeout) as client:
            for token in tokens:
                if self._notify(client, token, credentials.pass_type_id, update.customer_id):
                    sent += 1
                else:
                    failed += 1

        logger.info(
            "APNs pass update for customer %s: sent=%s failed=%s",
            update.customer_id,
            sent,
            failed,
        )
        return WalletUpdateResult(
            ok=failed == 0,
            mirror=self.name,
            object_id=update.customer_id,
            detail=f"sent={sent} failed={failed}",
        )

    def _notify(self, client: httpx.Client, token: str, topic: str, customer_id: str) -> bool:
        try:
            response = client.post(
                f"{self.base_url}/3/device/{token}",
                json={},
                headers={"apns-topic": topic},
            )
        except httpx.HTTPError as exc:
            logger.error("APNs request failed (customer=%s): %s", customer_id, exc)
            return False

        if response.status_code == 200:
            return True

        reason = _reason(response)
        logger.error(
            "APNs rejected push (customer=%s): HTTP %s %s",
            customer_id,
            response.status_code,
            reason,
        )
        if response.status_code == 410 or reason in GONE_REASONS:
            try:
                PassRegistry.forget_push_token(token)
            except DatabaseError as exc:
                logger.error("Stale Apple Wallet device not removed (customer=%s): %s", customer_id, exc)
        return False

    @staticmethod
    def _ssl_context(credentials: AppleWalletCredentials) -> ssl.SSLContext:
        """TLS context presenting the pass type certificate to APNs."""
        context = ssl.create_default_context()
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "apns.pem")
            with open(path, "wb") as handle:
                handle.write(credentials.signer_cert.strip() + b"\n" + credentials.signer_key.strip() + b"\n")
            context.load_cert_chain(path, password=credentials.signer_key_passphrase or None)
        return context


def _reason(response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    return data.get("reason", "") if isinstance(data, dict) else ""
