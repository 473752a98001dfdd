"""Wallet mirror protocol for pushing ledger state to wallet providers."""

from dataclasses import asdict, dataclass, fields
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class PassUpdate:
    """Loyalty state to mirror onto a customer's wallet pass."""

    customer_id: str
    points: int
    stamps: int
    level_points: int
    customer_name: str
    promotion_title: str = ""
    promotion_message: str = ""
    is_birthday: bool = False

    def as_payload(self) -> dict:
        """Plain dict for queueing."""
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict) -> "PassUpdate":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in known})


@dataclass(frozen=True)
class WalletUpdateResult:
    """Outcome of a mirror push. Observed for logging only."""

    ok: bool
    mirror: str
    object_id: str = ""
    skipped: bool = False
    status: int | None = None
    detail: str = ""

    @property
    def outcome(self) -> str:
        if self.skipped:
            return "skipped"
        return "updated" if self.ok else "failed"


@runtime_checkable
class WalletMirror(Protocol):
    """
    Something that mirrors ledger state onto an external wallet pass.

    Implementations must not raise: every failure is reported through the
    returned WalletUpdateResult.

    Configuration in settings.py:
        STAMPMAN = {
            "WALLET_MIRRORS": [
                "stampman.wallet.google.GoogleWalletUpdater",
                "stampman.adapters.apns.ApplePassPushNotifier",
            ],
        }
    """

    def push(self, update: PassUpdate) -> WalletUpdateResult:
        """Push ``update`` to the provider."""
        ...
