"""Pass content shared by the wallet issuers and updaters."""

import math
from dataclasses import dataclass

from stampman.conf import stampman_settings


@dataclass(frozen=True)
class CustomerCard:
    """Customer data as it appears on a pass, with safe defaults applied."""

    id: str | None
    name: str
    cashback_points: int
    stamps: int


def _to_count(value) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


def normalize_customer_data(data: dict | None) -> CustomerCard:
    """
    Coerce partial client input into a CustomerCard.

    Missing or non-finite numbers become 0, a missing name becomes
    DEFAULT_DISPLAY_NAME. Only the id is left empty for the caller to reject.
    """
    data = data or {}
    raw_id = data.get("id")
    customer_id = str(raw_id).strip() if raw_id not in (None, "") else None
    name = data.get("name")
    return CustomerCard(
        id=customer_id or None,
        name=str(name).strip() if name else stampman_settings.DEFAULT_DISPLAY_NAME,
        cashback_points=_to_count(data.get("cashbackPoints")),
        stamps=_to_count(data.get("stamps")),
    )


def tier_for(level_points: int) -> tuple[str, str]:
    """(tier name, background colour) for a level point balance."""
    if level_points > stampman_settings.LEVEL_POINTS_THRESHOLD:
        return stampman_settings.ELEVATED_TIER_NAME, stampman_settings.ELEVATED_TIER_COLOR
    return stampman_settings.BASE_TIER_NAME, stampman_settings.BASE_TIER_COLOR


def stamps_header(stamps: int) -> str:
    per_card = stampman_settings.STAMPS_PER_CARD
    if stamps >= per_card:
        return "🎁 ¡Canjea tu bebida!"
    return f"{stamps}/{per_card} sellos"


def stamps_progress_text(stamps: int) -> str:
    per_card = stampman_settings.STAMPS_PER_CARD
    if stamps >= per_card:
        return (
            f"¡Completaste {per_card} sellos! "
            "Muestra este pase para canjear tu bebida gratis."
        )
    return f"{stamps} de {per_card} sellos. {per_card - stamps} para tu recompensa."
