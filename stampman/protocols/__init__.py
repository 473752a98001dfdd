"""Stampman protocols."""

from stampman.protocols.wallet import PassUpdate, WalletMirror, WalletUpdateResult

__all__ = ["PassUpdate", "WalletMirror", "WalletUpdateResult"]
