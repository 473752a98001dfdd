"""Pytest fixtures for Stampman tests."""

import datetime
import io
from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from django.contrib.auth import get_user_model
from PIL import Image

from stampman.models import CustomerLedger, Profile, Role

ISSUER_ID = "3388000000012345678"
CLASS_ID = f"{ISSUER_ID}.leduo_loyalty"
SERVICE_ACCOUNT = "wallet@leduo-test.iam.gserviceaccount.com"


# ═══════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════


def png_bytes(size=(40, 20), color=(0, 0, 0, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def http_response(status_code=200, content=b"", text="", json_data=None):
    """Stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = content
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_data
    return response


def _self_signed(common_name: str):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return certificate, key


# ═══════════════════════════════════════════════════════════════════
# Profiles and ledgers
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def staff_user(db):
    user = get_user_model().objects.create_user(username="barista", password="x")
    Profile.objects.create(user=user, name="Barista", role=Role.STAFF)
    return user


@pytest.fixture
def customer_user(db):
    user = get_user_model().objects.create_user(username="cliente", password="x")
    Profile.objects.create(user=user, name="Ana", role=Role.CUSTOMER)
    return user


@pytest.fixture
def customer(customer_user):
    return customer_user.stampman_profile


@pytest.fixture
def ledger(customer):
    return CustomerLedger.objects.create(customer=customer)


# ═══════════════════════════════════════════════════════════════════
# Wallet credentials
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_pem(rsa_key):
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def google_settings(settings, rsa_private_pem):
    """Configure Google Wallet with a freshly generated service-account key."""
    settings.STAMPMAN = {
        **settings.STAMPMAN,
        "GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL": SERVICE_ACCOUNT,
        "GOOGLE_WALLET_PRIVATE_KEY": rsa_private_pem,
        "GOOGLE_WALLET_ISSUER_ID": ISSUER_ID,
        "GOOGLE_WALLET_CLASS_ID": CLASS_ID,
    }
    return settings


@pytest.fixture(scope="session")
def apple_signing_material():
    signer_cert, signer_key = _self_signed("Pass Type ID: pass.mx.leduo.test")
    wwdr_cert, _ = _self_signed("Apple WWDR Test CA")
    return {
        "APPLE_SIGNER_CERT": signer_cert.public_bytes(serialization.Encoding.PEM).decode(),
        "APPLE_SIGNER_KEY": signer_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode(),
        "APPLE_WWDR_CERT": wwdr_cert.public_bytes(serialization.Encoding.PEM).decode(),
    }


@pytest.fixture
def apple_settings(settings, apple_signing_material):
    settings.STAMPMAN = {
        **settings.STAMPMAN,
        **apple_signing_material,
        "APPLE_PASS_TYPE_ID": "pass.mx.leduo.test",
        "APPLE_TEAM_ID": "TEAM123456",
        "APPLE_AUTH_TOKEN_SECRET": "token-secret",
    }
    return settings


@pytest.fixture(autouse=True)
def _fresh_token_providers():
    """Token providers are cached per service account; start each test empty."""
    from stampman.wallet import google

    google._providers.clear()
    yield
    google._providers.clear()
