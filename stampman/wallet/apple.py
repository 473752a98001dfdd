"""
Apple Wallet: signed .pkpass store cards.

A pass is a zip of pass.json, its images, a manifest of SHA-1 digests and a
detached PKCS#7 signature of the manifest made with the pass type certificate.
"""

import hashlib
import hmac
import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass

import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from stampman.conf import stampman_settings
from stampman.exceptions import ConfigurationError, UpstreamError, ValidationError
from stampman.gates import Gates
from stampman.render import StampSpriteSpec, clamp_stamps, sprite_url
from stampman.wallet.content import normalize_customer_data
from stampman.wallet.credentials import AppleWalletCredentials, pass_object_suffix

logger = logging.getLogger(__name__)

PKPASS_CONTENT_TYPE = "application/vnd.apple.pkpass"
STRIP_SIZE = (980, 400)
LOGO_SIZE = (100, 100)
PASS_BACKGROUND = (212, 197, 185)

_ID_PREFIXES = re.compile(r"leduo_customer_|LEDUO-|leduo-|:")


def clean_customer_id(raw) -> str:
    """Strip the prefixes older clients put in front of the customer id."""
    return _ID_PREFIXES.sub("", str(raw or "")).strip()


def authentication_token(secret: str, customer_id: str) -> str:
    """Deterministic web-service token, so re-issued passes keep registering."""
    return hmac.new(secret.encode(), customer_id.encode(), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class PassArtifact:
    content: bytes
    filename: str
    serial_number: str
    content_type: str = PKPASS_CONTENT_TYPE


class ApplePassIssuer:
    """Builds a signed Apple Wallet store card for a customer."""

    def __init__(
        self,
        credentials: AppleWalletCredentials | None = None,
        spec: StampSpriteSpec | None = None,
        timeout: float | None = None,
    ):
        self._credentials = credentials
        self.spec = spec or StampSpriteSpec.from_settings()
        self.timeout = timeout if timeout is not None else stampman_settings.HTTP_TIMEOUT

    @property
    def credentials(self) -> AppleWalletCredentials:
        return self._credentials or AppleWalletCredentials.from_settings()

    def issue(self, customer_data: dict | None) -> PassArtifact:
        """
        Build the .pkpass for the customer's current state.

        Raises:
            ConfigurationError: Signing material missing or unreadable
            ValidationError: customer id missing
            UpstreamError: An image asset could not be fetched (remote body forwarded)
        """
        credentials = self.credentials
        Gates.apple_wallet_credentials(credentials)
        signer = _load_signer(credentials)

        card = normalize_customer_data(customer_data)
        customer_id = clean_customer_id(card.id)
        if not customer_id:
            raise ValidationError(
                "MISSING_FIELDS",
                required=["customerData.id"],
                received={"customerId": card.id},
            )

        stamps = clamp_stamps(card.stamps, stampman_settings.STAMPS_PER_CARD)
        serial_number = pass_object_suffix(customer_id)
        logger.info("Apple pass requested for %s (stamps=%s)", customer_id, stamps)

        logo = self._circular_logo(self._fetch_asset(stampman_settings.LOGO_URL))
        strip = self._padded_strip(self._fetch_asset(sprite_url(stamps, self.spec)))

        pass_json = self.build_pass_json(
            credentials,
            customer_id=customer_id,
            name=card.name,
            stamps=stamps,
            serial_number=serial_number,
        )
        files = {
            "pass.json": json.dumps(pass_json, ensure_ascii=False).encode(),
            "icon.png": logo,
            "icon@2x.png": logo,
            "logo.png": logo,
            "logo@2x.png": logo,
            "strip.png": strip,
            "strip@2x.png": strip,
        }
        content = _package(files, signer)

        prefix = stampman_settings.OBJECT_ID_PREFIX.lower()
        return PassArtifact(
            content=content,
            filename=f"{prefix}-{customer_id}.pkpass",
            serial_number=serial_number,
        )

    def build_pass_json(
        self,
        credentials: AppleWalletCredentials,
        customer_id: str,
        name: str,
        stamps: int,
        serial_number: str,
    ) -> dict:
        per_card = stampman_settings.STAMPS_PER_CARD
        data = {
            "formatVersion": 1,
            "passTypeIdentifier": credentials.pass_type_id,
            "teamIdentifier": credentials.team_id,
            "organizationName": stampman_settings.APPLE_ORGANIZATION_NAME,
            "description": f"Tarjeta de Lealtad {stampman_settings.APPLE_ORGANIZATION_NAME}",
            "serialNumber": serial_number,
            "backgroundColor": "rgb(212, 197, 185)",
            "foregroundColor": "rgb(60, 40, 20)",
            "labelColor": "rgb(80, 60, 40)",
            "logoText": "Tarjeta de Lealtad",
            "storeCard": {
                "headerFields": [],
                "primaryFields": [],
                "secondaryFields": [
                    {
                        "key": "balance",
                        "label": "SELLOS",
                        "value": f"{stamps} / {per_card}",
                        "textAlignment": "PKTextAlignmentLeft",
                    },
                    {
                        "key": "name",
                        "label": "CLIENTE",
                        "value": name,
                        "textAlignment": "PKTextAlignmentRight",
                    },
                ],
                "backFields": [
                    {
                        "key": "program",
                        "label": "Programa",
                        "value": stampman_settings.PROGRAM_NAME,
                    },
                ],
            },
            "barcodes": [
                {
                    "message": serial_number,
                    "format": "PKBarcodeFormatQR",
                    "messageEncoding": "iso-8859-1",
                    "altText": customer_id[:8].upper(),
                }
            ],
        }
        if credentials.web_service_url:
            data["webServiceURL"] = credentials.web_service_url
            data["authenticationToken"] = authentication_token(
                credentials.auth_token_secret, customer_id
            )
        return data

    def _fetch_asset(self, url: str) -> Image.Image:
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Apple pass asset fetch failed: %s (%s)", url, exc)
            raise UpstreamError("WALLET_ASSET_FETCH_FAILED", url=url, details=str(exc)) from exc

        if not response.ok:
            logger.error("Apple pass asset fetch failed: %s HTTP %s", url, response.status_code)
            raise UpstreamError(
                "WALLET_ASSET_FETCH_FAILED",
                url=url,
                status=response.status_code,
                details=response.text,
            )

        try:
            image = Image.open(io.BytesIO(response.content))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise UpstreamError(
                "WALLET_ASSET_FETCH_FAILED", url=url, details="not a decodable image"
            ) from exc
        return image

    @staticmethod
    def _padded_strip(image: Image.Image) -> bytes:
        strip = ImageOps.pad(image.convert("RGB"), STRIP_SIZE, color=PASS_BACKGROUND)
        return _png(strip)

    @staticmethod
    def _circular_logo(image: Image.Image) -> bytes:
        logo = ImageOps.fit(image.convert("RGBA"), LOGO_SIZE)
        mask = Image.new("L", LOGO_SIZE, 0)
        ImageDraw.Draw(mask).ellipse((0, 0, LOGO_SIZE[0] - 1, LOGO_SIZE[1] - 1), fill=255)
        logo.putalpha(mask)
        return _png(logo)


def _png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@dataclass(frozen=True)
class _Signer:
    certificate: x509.Certificate
    key: object
    wwdr: x509.Certificate


def _load_signer(credentials: AppleWalletCredentials) -> _Signer:
    malformed = []
    certificate = key = wwdr = None
    try:
        certificate = x509.load_pem_x509_certificate(credentials.signer_cert)
    except ValueError:
        malformed.append("APPLE_SIGNER_CERT")
    try:
        password = credentials.signer_key_passphrase.encode() or None
        key = serialization.load_pem_private_key(credentials.signer_key, password=password)
    except (ValueError, TypeError):
        malformed.append("APPLE_SIGNER_KEY")
    try:
        wwdr = x509.load_pem_x509_certificate(credentials.wwdr_cert)
    except ValueError:
        malformed.append("APPLE_WWDR_CERT")

    if malformed:
        raise ConfigurationError("WALLET_NOT_CONFIGURED", malformed)
    return _Signer(certificate=certificate, key=key, wwdr=wwdr)


def _package(files: dict[str, bytes], signer: _Signer) -> bytes:
    manifest = json.dumps(
        {name: hashlib.sha1(data).hexdigest() for name, data in files.items()},
        sort_keys=True,
    ).encode()
    signature = (
        pkcs7.PKCS7SignatureBuilder()
        .set_data(manifest)
        .add_signer(signer.certificate, signer.key, hashes.SHA256())
        .add_certificate(signer.wwdr)
        .sign(
            serialization.Encoding.DER,
            [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary],
        )
    )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in files.items():
            archive.writestr(name, data)
        archive.writestr("manifest.json", manifest)
        archive.writestr("signature", signature)
    return buffer.getvalue()
