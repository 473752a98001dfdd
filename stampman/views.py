"""
Stampman HTTP endpoints.

- GET  punch-image/           Composited stamp card PNG
- GET  stamp-sprite/          Redirect to the pre-rendered card image
- POST wallet/google/save/    Signed "save to Google Wallet" link
- POST wallet/google/update/  Push current state to a Google Wallet pass (staff)
- POST wallet/apple/pass/     Signed .pkpass download
- POST purchases/             Register a purchase (staff)

Apple PassKit web service (APPLE_WEB_SERVICE_URL points at wallet/apple/):

- POST/DELETE wallet/apple/v1/devices/<device>/registrations/<passType>/<serial>
- GET  wallet/apple/v1/devices/<device>/registrations/<passType>
- GET  wallet/apple/v1/passes/<passType>/<serial>
- POST wallet/apple/v1/log

Errors are JSON: {"error": ..., "details"?: ...} with the status carried by the
StampmanError subclass.
"""

from __future__ import annotations

import json
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import HttpResponse, HttpResponseRedirect, JsonResponse
from django.utils.decorators import method_decorator
from django.utils.http import http_date, parse_http_date_safe
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from stampman.exceptions import NotFoundError, StampmanError, ValidationError
from stampman.gates import Gates
from stampman.models import CustomerLedger
from stampman.render import StampCardRenderer, StampSpriteSpec, clamp_stamps, sprite_url
from stampman.services.ledger import PurchaseService
from stampman.wallet.apple import ApplePassIssuer
from stampman.wallet.credentials import GoogleWalletCredentials
from stampman.wallet.google import GoogleWalletIssuer, GoogleWalletUpdater
from stampman.wallet.passkit import PassRegistry
from stampman.wallet.sync import update_from_ledger

logger = logging.getLogger("stampman.views")

IMAGE_CACHE_CONTROL = "public, max-age=300, s-maxage=300"


def _json_body(request) -> dict:
    try:
        data = json.loads(request.body or b"{}")
    except (json.JSONDecodeError, ValueError):
        raise ValidationError("INVALID_JSON")
    if not isinstance(data, dict):
        raise ValidationError("INVALID_JSON")
    return data


class StampmanView(View):
    """Renders StampmanError as JSON; anything else is logged as a 500."""

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except StampmanError as exc:
            if exc.status_code >= 500:
                logger.error("%s %s failed: %s %s", request.method, request.path, exc.code, exc.data)
            return JsonResponse(exc.as_response(), status=exc.status_code)
        except Exception:
            logger.exception("%s %s failed", request.method, request.path)
            return JsonResponse({"error": "Internal error"}, status=500)


class PunchImageView(StampmanView):
    """GET ?stamps=N - composited card with the first N stamps revealed."""

    renderer_class = StampCardRenderer

    def get(self, request):
        renderer = self.renderer_class()
        stamps = clamp_stamps(request.GET.get("stamps", 0), renderer.spec.max_slots)
        try:
            png = renderer.render(stamps)
        except StampmanError as exc:
            return JsonResponse(
                {"error": "No se pudo generar la imagen dinámica", "details": exc.data.get("details", exc.message)},
                status=exc.status_code,
            )
        response = HttpResponse(png, content_type="image/png")
        response["Cache-Control"] = IMAGE_CACHE_CONTROL
        return response


class StampSpriteView(StampmanView):
    """GET ?stamps=N - redirect to the pre-rendered card for N stamps."""

    def get(self, request):
        return HttpResponseRedirect(sprite_url(request.GET.get("stamps", 0), StampSpriteSpec.from_settings()))


@method_decorator(csrf_exempt, name="dispatch")
class GoogleWalletSaveView(StampmanView):
    """
    POST {objectIdSuffix, customerData: {id, name?, cashbackPoints?, stamps?}}

    Returns {ok, saveUrl, objectId}.
    """

    def post(self, request):
        issuer = GoogleWalletIssuer()
        issuer.check_configuration()

        try:
            data = _json_body(request)
        except ValidationError:
            data = {}
        suffix = data.get("objectIdSuffix")
        customer_data = data.get("customerData")
        if not isinstance(customer_data, dict):
            customer_data = {}

        if not suffix or not customer_data.get("id"):
            raise ValidationError(
                "MISSING_FIELDS",
                required=["objectIdSuffix", "customerData.id"],
                received={"objectIdSuffix": suffix, "customerId": customer_data.get("id")},
            )

        link = issuer.issue(customer_data, object_id_suffix=str(suffix))
        return JsonResponse({"ok": True, "saveUrl": link.save_url, "objectId": link.object_id})


@method_decorator(csrf_exempt, name="dispatch")
class GoogleWalletUpdateView(StampmanView):
    """
    POST {userId, promotionTitle?, promotionMessage?, isBirthday?} (staff only)

    Pushes the customer's current ledger to their Google Wallet pass and waits
    for the result.
    """

    def post(self, request):
        Gates.staff_role(getattr(request, "user", None))
        Gates.google_wallet_credentials(GoogleWalletCredentials.from_settings(), require_class=False)

        data = _json_body(request)
        customer_id = data.get("userId")
        if not customer_id:
            raise ValidationError("MISSING_FIELDS", required=["userId"])

        try:
            ledger = CustomerLedger.objects.select_related("customer").get(customer_id=customer_id)
        except (CustomerLedger.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("LEDGER_NOT_FOUND", customer_id=str(customer_id))

        update = update_from_ledger(
            ledger,
            promotion_title=str(data.get("promotionTitle") or ""),
            promotion_message=str(data.get("promotionMessage") or ""),
            is_birthday=bool(data.get("isBirthday")),
        )
        result = GoogleWalletUpdater().push(update)

        if not result.ok:
            return JsonResponse(
                {"error": "Error actualizando Google Wallet", "details": result.detail},
                status=result.status if result.status and result.status >= 400 else 502,
            )
        body = {"success": True, "objectId": result.object_id}
        if result.skipped:
            body["skipped"] = True
        return JsonResponse(body)


@method_decorator(csrf_exempt, name="dispatch")
class AppleWalletPassView(StampmanView):
    """POST {objectIdSuffix?, customerData: {id, name?, stamps?}} - .pkpass download."""

    def post(self, request):
        data = _json_body(request)
        customer_data = data.get("customerData")
        if not isinstance(customer_data, dict):
            customer_data = {}
        customer_data = {**customer_data, "id": customer_data.get("id") or data.get("objectIdSuffix")}

        artifact = ApplePassIssuer().issue(customer_data)

        response = HttpResponse(artifact.content, content_type=artifact.content_type)
        response["Content-Disposition"] = f"attachment; filename={artifact.filename}"
        response["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response["Pragma"] = "no-cache"
        response["Expires"] = "0"
        return response


@method_decorator(csrf_exempt, name="dispatch")
class RegisterPurchaseView(StampmanView):
    """
    POST {userId, amount, notes?} (staff/admin only)

    Returns {success, points: {earned, total}, stamps: {earned, total},
    rouletteVisits, rewardCreated}.
    """

    def post(self, request):
        user = getattr(request, "user", None)
        Gates.staff_role(user)

        data = _json_body(request)
        result = PurchaseService.register_purchase(
            user,
            data.get("userId"),
            data.get("amount"),
            notes=str(data.get("notes") or ""),
        )
        return JsonResponse(result.as_dict())


# ===========================================
# Apple PassKit web service
# ===========================================


@method_decorator(csrf_exempt, name="dispatch")
class PassKitRegistrationView(StampmanView):
    """
    POST   v1/devices/<device>/registrations/<passType>/<serial>  {pushToken}
    DELETE v1/devices/<device>/registrations/<passType>/<serial>

    Both require ``Authorization: ApplePass <authenticationToken>``.
    """

    def post(self, request, device_id, pass_type_id, serial_number):
        PassRegistry.check_pass_type(pass_type_id)
        customer_id = PassRegistry.authenticate(request.headers.get("Authorization"), serial_number)

        push_token = _json_body(request).get("pushToken")
        if not push_token:
            raise ValidationError("MISSING_FIELDS", required=["pushToken"])

        created = PassRegistry.register(device_id, pass_type_id, serial_number, str(push_token), customer_id)
        return HttpResponse(status=201 if created else 200)

    def delete(self, request, device_id, pass_type_id, serial_number):
        PassRegistry.check_pass_type(pass_type_id)
        PassRegistry.authenticate(request.headers.get("Authorization"), serial_number)
        PassRegistry.unregister(device_id, serial_number)
        return HttpResponse(status=200)


class PassKitSerialsView(StampmanView):
    """GET v1/devices/<device>/registrations/<passType>?passesUpdatedSince=<tag>"""

    def get(self, request, device_id, pass_type_id):
        PassRegistry.check_pass_type(pass_type_id)
        updated = PassRegistry.updated_serials(
            device_id, pass_type_id, since=request.GET.get("passesUpdatedSince")
        )
        if updated is None:
            return HttpResponse(status=204)
        return JsonResponse(updated)


class PassKitLatestPassView(StampmanView):
    """GET v1/passes/<passType>/<serial> - the customer's current .pkpass."""

    def get(self, request, pass_type_id, serial_number):
        PassRegistry.check_pass_type(pass_type_id)
        customer_id = PassRegistry.authenticate(request.headers.get("Authorization"), serial_number)

        try:
            ledger = CustomerLedger.objects.select_related("customer").get(customer_id=customer_id)
        except (CustomerLedger.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("LEDGER_NOT_FOUND", customer_id=customer_id)

        last_modified = int(ledger.updated_at.timestamp())
        since = parse_http_date_safe(request.headers.get("If-Modified-Since") or "")
        if since is not None and last_modified <= since:
            return HttpResponse(status=304)

        artifact = ApplePassIssuer().issue(
            {
                "id": customer_id,
                "name": ledger.customer.name,
                "stamps": ledger.stamps,
                "cashbackPoints": ledger.cashback_points,
            }
        )
        logger.info("PassKit served %s (stamps=%s)", serial_number, ledger.stamps)

        response = HttpResponse(artifact.content, content_type=artifact.content_type)
        response["Last-Modified"] = http_date(last_modified)
        return response


@method_decorator(csrf_exempt, name="dispatch")
class PassKitLogView(StampmanView):
    """POST v1/log {logs: [...]} - diagnostics reported by Wallet."""

    def post(self, request):
        try:
            messages = _json_body(request).get("logs") or []
        except ValidationError:
            messages = []
        if not isinstance(messages, list):
            messages = [messages]
        for message in messages:
            logger.warning("Apple Wallet device log: %s", message)
        return HttpResponse(status=200)
