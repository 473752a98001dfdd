"""Purchase ledger service - the single write path for "a purchase happened".

The ledger row is locked and updated with F() arithmetic inside
transaction.atomic(), so concurrent purchases for the same customer always add
up. Wallet mirroring is announced only after commit.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from stampman.conf import stampman_settings
from stampman.exceptions import NotFoundError, PersistenceError, ValidationError
from stampman.gates import Gates, parse_amount
from stampman.models import CustomerLedger, Reward, RewardSource, RewardType, VisitRecord
from stampman.signals import purchase_registered

logger = logging.getLogger(__name__)

STAMPS_PER_PURCHASE = 1


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a registered purchase."""

    customer_id: str
    points_earned: int
    points_total: int
    stamps_earned: int
    stamps_total: int
    roulette_visits: int
    reward_created: bool

    def as_dict(self) -> dict:
        return {
            "success": True,
            "points": {"earned": self.points_earned, "total": self.points_total},
            "stamps": {"earned": self.stamps_earned, "total": self.stamps_total},
            "rouletteVisits": self.roulette_visits,
            "rewardCreated": self.reward_created,
        }


class PurchaseService:
    """
    Service for purchase registration.

    Uses @classmethod for extensibility (consistent with other services).
    """

    @classmethod
    def register_purchase(cls, staff_user, customer_id, amount, notes: str = "") -> PurchaseResult:
        """
        Register a purchase for a customer.

        Args:
            staff_user: Django user registering the purchase (staff or admin)
            customer_id: Profile id of the customer
            amount: Amount spent (positive number)
            notes: Free-text note for the visit record

        Returns:
            PurchaseResult

        Raises:
            AuthorizationError: Caller is not authenticated staff/admin
            ValidationError: Missing customer id or invalid amount
            NotFoundError: Customer has no ledger
            PersistenceError: Ledger write failed
        """
        staff = Gates.staff_role(staff_user)
        if not customer_id:
            raise ValidationError("MISSING_FIELDS", required=["userId", "amount"])
        Gates.purchase_amount(amount)
        value = parse_amount(amount)

        points_earned = cls.points_for(value)
        stamps_earned = STAMPS_PER_PURCHASE

        try:
            with transaction.atomic():
                ledger = cls._get_ledger_for_update(customer_id)
                ledger = cls._apply(ledger, points_earned, stamps_earned)
                cls._record_visit(ledger, value, points_earned, stamps_earned, notes, staff)
                reward_created = cls._maybe_unlock_reward(ledger)
                transaction.on_commit(lambda: cls._announce(ledger))
        except DatabaseError as exc:
            logger.exception("Purchase registration failed for customer %s", customer_id)
            raise PersistenceError("LEDGER_WRITE_FAILED", details=str(exc)) from exc

        logger.info(
            "Purchase registered: customer=%s amount=%s points=+%s stamps=%s",
            customer_id,
            value,
            points_earned,
            ledger.stamps,
        )
        return PurchaseResult(
            customer_id=str(ledger.customer_id),
            points_earned=points_earned,
            points_total=ledger.cashback_points,
            stamps_earned=stamps_earned,
            stamps_total=ledger.stamps,
            roulette_visits=ledger.roulette_visits_since_last_spin,
            reward_created=reward_created,
        )

    @classmethod
    def points_for(cls, amount) -> int:
        """Cashback points for an amount: one per CURRENCY_UNITS_PER_POINT spent."""
        return int(amount // stampman_settings.CURRENCY_UNITS_PER_POINT)

    @classmethod
    def unlocks_reward(cls, stamps: int) -> bool:
        """True when ``stamps`` lands exactly on a completed card."""
        per_card = stampman_settings.STAMPS_PER_CARD
        return stamps >= per_card and stamps % per_card == 0

    @classmethod
    def _get_ledger_for_update(cls, customer_id) -> CustomerLedger:
        """
        Get the customer's ledger with a row-level lock.

        MUST be called inside transaction.atomic().
        """
        try:
            return (
                CustomerLedger.objects
                .select_for_update()
                .select_related("customer")
                .get(customer_id=customer_id)
            )
        except (CustomerLedger.DoesNotExist, DjangoValidationError, ValueError):
            # Malformed ids cannot match any customer either.
            raise NotFoundError("CUSTOMER_NOT_FOUND", customer_id=str(customer_id))

    @classmethod
    def _apply(cls, ledger: CustomerLedger, points: int, stamps: int) -> CustomerLedger:
        """Commit point: add the deltas in the database and re-read the row."""
        now = timezone.now()
        CustomerLedger.objects.filter(pk=ledger.pk).update(
            cashback_points=F("cashback_points") + points,
            stamps=F("stamps") + stamps,
            roulette_visits_since_last_spin=F("roulette_visits_since_last_spin") + 1,
            last_visit=now,
            updated_at=now,
        )
        ledger.refresh_from_db()
        return ledger

    @classmethod
    def _record_visit(cls, ledger, amount, points, stamps, notes, staff) -> None:
        """Audit entry. Failure is logged and does not undo the ledger write."""
        try:
            with transaction.atomic():
                VisitRecord.objects.create(
                    customer_id=ledger.customer_id,
                    amount_spent=amount,
                    cashback_earned=points,
                    stamps_earned=stamps,
                    notes=(notes or "")[:500],
                    processed_by=staff,
                )
        except DatabaseError:
            logger.exception("Visit record failed for customer %s", ledger.customer_id)

    @classmethod
    def _maybe_unlock_reward(cls, ledger: CustomerLedger) -> bool:
        """Create the card reward. Failure is logged and reported as False."""
        if not cls.unlocks_reward(ledger.stamps):
            return False
        per_card = stampman_settings.STAMPS_PER_CARD
        try:
            with transaction.atomic():
                Reward.objects.create(
                    customer_id=ledger.customer_id,
                    type=RewardType.PRODUCT,
                    value="1",
                    description=f"¡Producto gratis por completar {per_card} sellos!",
                    source=RewardSource.STAMPS,
                    expires_at=timezone.now() + timedelta(days=stampman_settings.REWARD_EXPIRY_DAYS),
                )
        except DatabaseError:
            logger.exception(
                "Reward creation failed for customer %s at %s stamps",
                ledger.customer_id,
                ledger.stamps,
            )
            return False
        logger.info("Reward unlocked for customer %s at %s stamps", ledger.customer_id, ledger.stamps)
        return True

    @classmethod
    def _announce(cls, ledger: CustomerLedger) -> None:
        for receiver, response in purchase_registered.send_robust(
            sender=CustomerLedger, ledger=ledger
        ):
            if isinstance(response, Exception):
                logger.error(
                    "purchase_registered receiver %r failed for customer %s: %s",
                    receiver,
                    ledger.customer_id,
                    response,
                )
