"""Stampman exceptions."""


class StampmanError(Exception):
    """
    Structured exception for loyalty and wallet operations.

    Carries a stable ``code``, a human-readable ``message`` and free-form
    ``data``. Views render it with ``as_response()`` and ``status_code``.

    Usage:
        try:
            PurchaseService.register_purchase(staff, "abc", 45)
        except StampmanError as e:
            if e.code == "CUSTOMER_NOT_FOUND":
                handle_not_found()
    """

    status_code = 500

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}

    def as_response(self) -> dict:
        """JSON body for HTTP responses."""
        return {"error": self.message, **self.data}


class ValidationError(StampmanError):
    status_code = 400

    _default_messages = {
        "INVALID_AMOUNT": "Amount must be a positive number",
        "MISSING_FIELDS": "Missing required fields",
        "INVALID_JSON": "Invalid JSON",
    }


class AuthorizationError(StampmanError):
    status_code = 403

    _default_messages = {
        "UNAUTHENTICATED": "Authentication required",
        "FORBIDDEN": "Staff or admin role required",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        super().__init__(code, message, **data)
        if code == "UNAUTHENTICATED":
            self.status_code = 401


class NotFoundError(StampmanError):
    status_code = 404

    _default_messages = {
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "LEDGER_NOT_FOUND": "Customer state not found",
    }


class ConfigurationError(StampmanError):
    """Missing or malformed server-side secrets. ``details`` lists the keys."""

    _default_messages = {
        "WALLET_NOT_CONFIGURED": "Wallet credentials missing or malformed",
    }

    def __init__(self, code: str, missing: list[str], message: str | None = None):
        super().__init__(code, message, details=list(missing))

    @property
    def missing(self) -> list[str]:
        return self.data["details"]


class UpstreamError(StampmanError):
    """Third-party failure. ``status`` and ``details`` are forwarded as-is."""

    status_code = 502

    _default_messages = {
        "WALLET_SIGNING_FAILED": "Could not generate the wallet token",
        "WALLET_TOKEN_EXCHANGE_FAILED": "Could not obtain a wallet access token",
        "WALLET_ASSET_FETCH_FAILED": "Could not fetch wallet pass assets",
        "IMAGE_FETCH_FAILED": "Could not generate the stamp image",
    }


class FetchError(UpstreamError):
    """A source image could not be retrieved or decoded."""

    def __init__(self, url: str, reason: str):
        super().__init__("IMAGE_FETCH_FAILED", details=f"{url}: {reason}")
        self.url = url


class PersistenceError(StampmanError):
    _default_messages = {
        "LEDGER_WRITE_FAILED": "Could not update customer state",
        "APPEND_ONLY": "Record is append-only",
    }
