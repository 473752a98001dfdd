"""
Stampman Gates - Validation rules.

G1: StaffRole - Caller must resolve to a staff or admin profile
G2: PurchaseAmount - Amount must be a positive, finite number that fits the ledger
G3: GoogleWalletCredentials - Issuer secrets present and well-formed
G4: AppleWalletCredentials - Pass signing material present
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from stampman.exceptions import AuthorizationError, ConfigurationError, ValidationError

PEM_PRIVATE_KEY_MARKER = "BEGIN PRIVATE KEY"

# Largest amount VisitRecord.amount_spent can hold (max_digits=10, decimal_places=2).
MAX_PURCHASE_AMOUNT = Decimal("99999999.99")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


def resolve_profile(user):
    """Return the Profile linked to a Django user, or None."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    from stampman.models import Profile

    try:
        return user.stampman_profile
    except Profile.DoesNotExist:
        return None


def parse_amount(amount) -> Decimal | None:
    """Decimal value of a purchase amount, or None when it is not a number."""
    if isinstance(amount, bool) or amount is None:
        return None
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


class Gates:
    """Stampman validation gates."""

    # =========================================================================
    # G1: Staff Role
    # =========================================================================

    @classmethod
    def staff_role(cls, user):
        """
        G1: Caller must be authenticated and have a staff or admin profile.

        Args:
            user: Django user (or AnonymousUser / None)

        Returns:
            The staff Profile

        Raises:
            AuthorizationError: UNAUTHENTICATED (401) or FORBIDDEN (403)
        """
        if user is None or not getattr(user, "is_authenticated", False):
            raise AuthorizationError("UNAUTHENTICATED", gate="G1_StaffRole")

        profile = resolve_profile(user)
        if profile is None or not profile.is_staff_member:
            raise AuthorizationError(
                "FORBIDDEN",
                gate="G1_StaffRole",
                role=profile.role if profile else None,
            )
        return profile

    @classmethod
    def check_staff_role(cls, user) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.staff_role(user)
            return True
        except AuthorizationError:
            return False

    # =========================================================================
    # G2: Purchase Amount
    # =========================================================================

    @classmethod
    def purchase_amount(cls, amount) -> GateResult:
        """
        G2: Amount must be a positive number no larger than MAX_PURCHASE_AMOUNT.

        Booleans, NaN, infinities and non-numeric strings are rejected.

        Raises:
            ValidationError: INVALID_AMOUNT
        """
        value = parse_amount(amount)
        if value is None or value <= 0 or value > MAX_PURCHASE_AMOUNT:
            raise ValidationError(
                "INVALID_AMOUNT",
                gate="G2_PurchaseAmount",
                received=amount if isinstance(amount, (int, float, str)) else None,
            )
        return GateResult(True, "G2_PurchaseAmount")

    @classmethod
    def check_purchase_amount(cls, amount) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.purchase_amount(amount)
            return True
        except ValidationError:
            return False

    # =========================================================================
    # G3: Google Wallet Credentials
    # =========================================================================

    @classmethod
    def google_wallet_credentials(cls, credentials, require_class: bool = True) -> GateResult:
        """
        G3: Google Wallet secrets are present and well-formed.

        Checked before any signing or network work so the caller gets the
        exact list of offending settings.

        Args:
            credentials: GoogleWalletCredentials
            require_class: Whether the pass class id is needed (issuing only)

        Raises:
            ConfigurationError: WALLET_NOT_CONFIGURED with the missing keys
        """
        missing = []
        if not credentials.service_account_email:
            missing.append("GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL")
        if not credentials.private_key or PEM_PRIVATE_KEY_MARKER not in credentials.private_key:
            missing.append("GOOGLE_WALLET_PRIVATE_KEY")
        if not credentials.issuer_id:
            missing.append("GOOGLE_WALLET_ISSUER_ID")
        if require_class:
            if not credentials.class_id:
                missing.append("GOOGLE_WALLET_CLASS_ID")
            elif credentials.issuer_id and not credentials.class_id.startswith(
                f"{credentials.issuer_id}."
            ):
                missing.append("GOOGLE_WALLET_CLASS_ID")

        if missing:
            raise ConfigurationError("WALLET_NOT_CONFIGURED", missing)
        return GateResult(True, "G3_GoogleWalletCredentials")

    # =========================================================================
    # G4: Apple Wallet Credentials
    # =========================================================================

    @classmethod
    def apple_wallet_credentials(cls, credentials) -> GateResult:
        """
        G4: Apple pass signing material is present.

        Raises:
            ConfigurationError: WALLET_NOT_CONFIGURED with the missing keys
        """
        missing = [
            key
            for key, value in (
                ("APPLE_PASS_TYPE_ID", credentials.pass_type_id),
                ("APPLE_TEAM_ID", credentials.team_id),
                ("APPLE_WWDR_CERT", credentials.wwdr_cert),
                ("APPLE_SIGNER_CERT", credentials.signer_cert),
                ("APPLE_SIGNER_KEY", credentials.signer_key),
                ("APPLE_AUTH_TOKEN_SECRET", credentials.auth_token_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError("WALLET_NOT_CONFIGURED", missing)
        return GateResult(True, "G4_AppleWalletCredentials")
