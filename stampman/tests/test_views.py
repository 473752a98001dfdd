"""
Tests for the HTTP endpoints.

Each view is called through RequestFactory; wallet providers and image hosts
are patched out.
"""

import json
from unittest.mock import patch

import pytest
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory

from stampman.conf import stampman_settings
from stampman.exceptions import PersistenceError, UpstreamError
from stampman.protocols.wallet import WalletUpdateResult
from stampman.services.ledger import PurchaseService
from stampman.tests.conftest import ISSUER_ID, http_response, png_bytes
from stampman.views import (
    AppleWalletPassView,
    GoogleWalletSaveView,
    GoogleWalletUpdateView,
    PunchImageView,
    RegisterPurchaseView,
    StampSpriteView,
)
from stampman.wallet.apple import ApplePassIssuer, PassArtifact
from stampman.wallet.google import GoogleWalletUpdater


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def _enable_db(db):
    """Enable DB access for all tests."""


@pytest.fixture
def factory():
    return RequestFactory()


def _post(factory, view, data, user=None, raw=None):
    request = factory.post(
        "/",
        data=raw if raw is not None else json.dumps(data),
        content_type="application/json",
    )
    request.user = user or AnonymousUser()
    return view.as_view()(request)


def _json(response):
    return json.loads(response.content)


# ═══════════════════════════════════════════════════════════════════
# Images
# ═══════════════════════════════════════════════════════════════════


class TestPunchImageView:
    def test_returns_cacheable_png(self, factory):
        image = http_response(content=png_bytes((1080, 680)))

        with patch("stampman.render.requests.get", return_value=image):
            response = PunchImageView.as_view()(factory.get("/", {"stamps": "3"}))

        assert response.status_code == 200
        assert response["Content-Type"] == "image/png"
        assert response["Cache-Control"] == "public, max-age=300, s-maxage=300"
        assert response.content.startswith(b"\x89PNG")

    def test_garbage_count_still_renders(self, factory):
        image = http_response(content=png_bytes((1080, 680)))

        with patch("stampman.render.requests.get", return_value=image):
            response = PunchImageView.as_view()(factory.get("/", {"stamps": "lots"}))

        assert response.status_code == 200

    def test_source_failure_is_502(self, factory):
        with patch("stampman.render.requests.get", return_value=http_response(404, text="gone")):
            response = PunchImageView.as_view()(factory.get("/", {"stamps": "3"}))

        assert response.status_code == 502
        body = _json(response)
        assert body["error"] == "No se pudo generar la imagen dinámica"
        assert "HTTP 404" in body["details"]


class TestStampSpriteView:
    def test_redirects_to_clamped_sprite(self, factory):
        response = StampSpriteView.as_view()(factory.get("/", {"stamps": "12"}))

        assert response.status_code == 302
        assert response["Location"] == stampman_settings.SPRITE_URLS[8]


# ═══════════════════════════════════════════════════════════════════
# Google Wallet
# ═══════════════════════════════════════════════════════════════════


class TestGoogleWalletSaveView:
    def test_not_configured_is_500_with_missing_keys(self, factory):
        response = _post(factory, GoogleWalletSaveView, {"objectIdSuffix": "x", "customerData": {"id": "x"}})

        assert response.status_code == 500
        assert "GOOGLE_WALLET_PRIVATE_KEY" in _json(response)["details"]

    def test_missing_fields_is_400(self, factory, google_settings):
        response = _post(factory, GoogleWalletSaveView, {"customerData": {"name": "Ana"}})

        assert response.status_code == 400
        body = _json(response)
        assert body["required"] == ["objectIdSuffix", "customerData.id"]
        assert body["received"] == {"objectIdSuffix": None, "customerId": None}

    def test_unparseable_body_is_missing_fields(self, factory, google_settings):
        response = _post(factory, GoogleWalletSaveView, None, raw="{not json")

        assert response.status_code == 400
        assert _json(response)["required"] == ["objectIdSuffix", "customerData.id"]

    def test_issues_save_link(self, factory, google_settings):
        response = _post(
            factory,
            GoogleWalletSaveView,
            {"objectIdSuffix": "LEDUO-abc", "customerData": {"id": "abc", "stamps": 2}},
        )

        assert response.status_code == 200
        body = _json(response)
        assert body["ok"] is True
        assert body["objectId"] == f"{ISSUER_ID}.LEDUO-abc"
        assert body["saveUrl"].startswith("https://pay.google.com/gp/v/save/")


class TestGoogleWalletUpdateView:
    def test_anonymous_is_401(self, factory, google_settings, ledger):
        response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)})

        assert response.status_code == 401

    def test_customer_is_403(self, factory, google_settings, ledger, customer_user):
        response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)}, customer_user)

        assert response.status_code == 403

    def test_not_configured_is_500(self, factory, staff_user, ledger):
        response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)}, staff_user)

        assert response.status_code == 500
        assert "GOOGLE_WALLET_ISSUER_ID" in _json(response)["details"]

    @pytest.mark.parametrize("user_id", ["0b7c7f44-1f35-4d2f-9f52-1d2b2ab0c001", "nope"])
    def test_unknown_customer_is_404(self, factory, google_settings, staff_user, user_id):
        response = _post(factory, GoogleWalletUpdateView, {"userId": user_id}, staff_user)

        assert response.status_code == 404

    def test_pushes_promotion(self, factory, google_settings, staff_user, ledger):
        result = WalletUpdateResult(ok=True, mirror="google_wallet", object_id="obj-1", status=200)

        with patch.object(GoogleWalletUpdater, "push", return_value=result) as push:
            response = _post(
                factory,
                GoogleWalletUpdateView,
                {
                    "userId": str(ledger.customer_id),
                    "promotionTitle": "2x1",
                    "promotionMessage": "Martes de café",
                    "isBirthday": True,
                },
                staff_user,
            )

        assert response.status_code == 200
        assert _json(response) == {"success": True, "objectId": "obj-1"}
        update = push.call_args.args[0]
        assert update.customer_id == str(ledger.customer_id)
        assert update.promotion_title == "2x1"
        assert update.promotion_message == "Martes de café"
        assert update.is_birthday is True

    def test_not_saved_yet_is_skipped(self, factory, google_settings, staff_user, ledger):
        result = WalletUpdateResult(ok=True, mirror="google_wallet", object_id="obj-1", skipped=True, status=404)

        with patch.object(GoogleWalletUpdater, "push", return_value=result):
            response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)}, staff_user)

        assert response.status_code == 200
        assert _json(response)["skipped"] is True

    def test_provider_error_status_is_forwarded(self, factory, google_settings, staff_user, ledger):
        result = WalletUpdateResult(ok=False, mirror="google_wallet", status=500, detail="backend error")

        with patch.object(GoogleWalletUpdater, "push", return_value=result):
            response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)}, staff_user)

        assert response.status_code == 500
        assert _json(response)["details"] == "backend error"

    def test_network_failure_is_502(self, factory, google_settings, staff_user, ledger):
        result = WalletUpdateResult(ok=False, mirror="google_wallet", detail="timed out")

        with patch.object(GoogleWalletUpdater, "push", return_value=result):
            response = _post(factory, GoogleWalletUpdateView, {"userId": str(ledger.customer_id)}, staff_user)

        assert response.status_code == 502


# ═══════════════════════════════════════════════════════════════════
# Apple Wallet
# ═══════════════════════════════════════════════════════════════════


class TestAppleWalletPassView:
    def test_download_headers(self, factory):
        artifact = PassArtifact(content=b"PK\x03\x04", filename="leduo-abc.pkpass", serial_number="LEDUO-abc")

        with patch.object(ApplePassIssuer, "issue", return_value=artifact) as issue:
            response = _post(factory, AppleWalletPassView, {"objectIdSuffix": "abc", "customerData": {"stamps": 2}})

        assert response.status_code == 200
        assert response["Content-Type"] == "application/vnd.apple.pkpass"
        assert response["Content-Disposition"] == "attachment; filename=leduo-abc.pkpass"
        assert response["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert response.content == b"PK\x03\x04"
        assert issue.call_args.args[0] == {"stamps": 2, "id": "abc"}

    def test_not_configured_is_500(self, factory):
        response = _post(factory, AppleWalletPassView, {"customerData": {"id": "abc"}})

        assert response.status_code == 500
        assert "APPLE_PASS_TYPE_ID" in _json(response)["details"]

    def test_upstream_body_is_forwarded(self, factory):
        error = UpstreamError("WALLET_ASSET_FETCH_FAILED", status=403, details="<Error>AccessDenied</Error>")

        with patch.object(ApplePassIssuer, "issue", side_effect=error):
            response = _post(factory, AppleWalletPassView, {"customerData": {"id": "abc"}})

        assert response.status_code == 502
        assert _json(response)["details"] == "<Error>AccessDenied</Error>"


# ═══════════════════════════════════════════════════════════════════
# Purchases
# ═══════════════════════════════════════════════════════════════════


class TestRegisterPurchaseView:
    def test_registers_purchase(self, factory, staff_user, ledger):
        response = _post(
            factory,
            RegisterPurchaseView,
            {"userId": str(ledger.customer_id), "amount": 97, "notes": "mesa 4"},
            staff_user,
        )

        assert response.status_code == 200
        assert _json(response) == {
            "success": True,
            "points": {"earned": 9, "total": 9},
            "stamps": {"earned": 1, "total": 1},
            "rouletteVisits": 1,
            "rewardCreated": False,
        }

    def test_anonymous_is_401(self, factory, ledger):
        response = _post(factory, RegisterPurchaseView, {"userId": str(ledger.customer_id), "amount": 45})

        assert response.status_code == 401
        assert _json(response)["error"] == "Authentication required"

    def test_customer_is_403(self, factory, customer_user, ledger):
        response = _post(factory, RegisterPurchaseView, {"userId": str(ledger.customer_id), "amount": 45}, customer_user)

        assert response.status_code == 403

    def test_invalid_json_is_400(self, factory, staff_user):
        response = _post(factory, RegisterPurchaseView, None, staff_user, raw="amount=45")

        assert response.status_code == 400
        assert _json(response)["error"] == "Invalid JSON"

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, "1e30"])
    def test_invalid_amount_is_400(self, factory, staff_user, ledger, amount):
        response = _post(factory, RegisterPurchaseView, {"userId": str(ledger.customer_id), "amount": amount}, staff_user)

        assert response.status_code == 400

    def test_unknown_customer_is_404(self, factory, staff_user):
        response = _post(
            factory,
            RegisterPurchaseView,
            {"userId": "0b7c7f44-1f35-4d2f-9f52-1d2b2ab0c001", "amount": 45},
            staff_user,
        )

        assert response.status_code == 404

    def test_write_failure_is_500(self, factory, staff_user, ledger):
        with patch.object(PurchaseService, "register_purchase", side_effect=PersistenceError("LEDGER_WRITE_FAILED")):
            response = _post(factory, RegisterPurchaseView, {"userId": str(ledger.customer_id), "amount": 45}, staff_user)

        assert response.status_code == 500
        assert _json(response)["error"] == "Could not update customer state"

    def test_unexpected_error_is_500(self, factory, staff_user, ledger):
        with patch.object(PurchaseService, "register_purchase", side_effect=RuntimeError("bug")):
            response = _post(factory, RegisterPurchaseView, {"userId": str(ledger.customer_id), "amount": 45}, staff_user)

        assert response.status_code == 500
        assert _json(response) == {"error": "Internal error"}
