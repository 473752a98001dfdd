"""
Apple PassKit web service bookkeeping.

Wallet registers every device that adds a pass, asks which of its passes
changed, and downloads the latest version. Passes carry
``authenticationToken = HMAC(APPLE_AUTH_TOKEN_SECRET, customer_id)`` and
``serialNumber = f"{OBJECT_ID_PREFIX}-{customer_id}"``, so both sides of a
request can be checked without storing issued tokens.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone as dt_timezone

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from stampman.exceptions import AuthorizationError, NotFoundError
from stampman.models import Profile, WalletDevice
from stampman.wallet.apple import authentication_token
from stampman.wallet.credentials import AppleWalletCredentials, pass_object_suffix

logger = logging.getLogger(__name__)

AUTH_SCHEME = "ApplePass"
EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)


def update_tag(moment: datetime) -> str:
    """Opaque passesUpdatedSince tag: microseconds since the epoch."""
    return str((moment - EPOCH) // timedelta(microseconds=1))


def parse_update_tag(tag) -> datetime | None:
    try:
        return EPOCH + timedelta(microseconds=int(tag))
    except (TypeError, ValueError, OverflowError):
        return None


def customer_id_from_serial(serial_number: str) -> str | None:
    """Customer id encoded in a pass serial number, or None for foreign serials."""
    prefix = pass_object_suffix("")
    if not serial_number or not serial_number.startswith(prefix):
        return None
    return serial_number[len(prefix):] or None


class PassRegistry:
    """Device registrations for Apple Wallet passes."""

    @classmethod
    def check_pass_type(cls, pass_type_id: str, credentials: AppleWalletCredentials | None = None) -> None:
        credentials = credentials or AppleWalletCredentials.from_settings()
        if not credentials.pass_type_id or pass_type_id != credentials.pass_type_id:
            raise NotFoundError("UNKNOWN_PASS_TYPE", pass_type_id=pass_type_id)

    @classmethod
    def authenticate(
        cls,
        authorization: str | None,
        serial_number: str,
        credentials: AppleWalletCredentials | None = None,
    ) -> str:
        """
        Check an ``Authorization: ApplePass <token>`` header for a serial number.

        Returns:
            The customer id behind the pass

        Raises:
            AuthorizationError: UNAUTHENTICATED (401)
        """
        credentials = credentials or AppleWalletCredentials.from_settings()
        scheme, _, token = (authorization or "").strip().partition(" ")
        customer_id = customer_id_from_serial(serial_number)

        if scheme != AUTH_SCHEME or not token or not customer_id or not credentials.auth_token_secret:
            raise AuthorizationError("UNAUTHENTICATED", serial_number=serial_number)

        expected = authentication_token(credentials.auth_token_secret, customer_id)
        if not hmac.compare_digest(token.strip(), expected):
            logger.warning("PassKit token rejected for %s", serial_number)
            raise AuthorizationError("UNAUTHENTICATED", serial_number=serial_number)
        return customer_id

    @classmethod
    def register(cls, device_id: str, pass_type_id: str, serial_number: str, push_token: str, customer_id: str) -> bool:
        """
        Store (or refresh) a device registration.

        Returns:
            True when the registration is new

        Raises:
            NotFoundError: The pass belongs to an unknown customer
        """
        try:
            customer = Profile.objects.filter(pk=customer_id).first()
        except (DjangoValidationError, ValueError):
            customer = None
        if customer is None:
            raise NotFoundError("CUSTOMER_NOT_FOUND", customer_id=customer_id)

        with transaction.atomic():
            _, created = WalletDevice.objects.update_or_create(
                device_library_identifier=device_id,
                serial_number=serial_number,
                defaults={
                    "push_token": push_token,
                    "pass_type_id": pass_type_id,
                    "customer": customer,
                },
            )
        logger.info("Wallet device %s %s for %s", device_id, "registered" if created else "refreshed", serial_number)
        return created

    @classmethod
    def unregister(cls, device_id: str, serial_number: str) -> int:
        deleted, _ = WalletDevice.objects.filter(
            device_library_identifier=device_id,
            serial_number=serial_number,
        ).delete()
        logger.info("Wallet device %s unregistered from %s", device_id, serial_number)
        return deleted

    @classmethod
    def updated_serials(cls, device_id: str, pass_type_id: str, since: str | None = None) -> dict | None:
        """
        Serial numbers registered on a device that changed after ``since``.

        Args:
            since: ``passesUpdatedSince``, the ``lastUpdated`` tag of an earlier answer

        Returns:
            ``{"serialNumbers": [...], "lastUpdated": <tag>}`` or None
        """
        devices = WalletDevice.objects.filter(
            device_library_identifier=device_id,
            pass_type_id=pass_type_id,
        )
        moment = parse_update_tag(since) if since else None
        if moment is not None:
            devices = devices.filter(updated_at__gt=moment)

        serials = sorted(set(devices.values_list("serial_number", flat=True)))
        if not serials:
            return None
        last_updated = devices.aggregate(last=Max("updated_at"))["last"]
        return {"serialNumbers": serials, "lastUpdated": update_tag(last_updated)}

    @classmethod
    def touch(cls, customer_id: str) -> list[str]:
        """Mark a customer's passes as changed; returns the device push tokens."""
        devices = WalletDevice.objects.filter(customer_id=customer_id)
        tokens = sorted(set(devices.values_list("push_token", flat=True)))
        if tokens:
            devices.update(updated_at=timezone.now())
        return tokens

    @classmethod
    def forget_push_token(cls, push_token: str) -> int:
        """Drop registrations whose push token Apple reports as gone."""
        deleted, _ = WalletDevice.objects.filter(push_token=push_token).delete()
        return deleted
