"""Stampman models."""

from stampman.models.profile import Profile, Role
from stampman.models.ledger import CustomerLedger
from stampman.models.visit import VisitRecord
from stampman.models.reward import Reward, RewardSource, RewardType
from stampman.models.device import WalletDevice

__all__ = [
    "Profile",
    "Role",
    "CustomerLedger",
    "VisitRecord",
    "Reward",
    "RewardSource",
    "RewardType",
    "WalletDevice",
]
