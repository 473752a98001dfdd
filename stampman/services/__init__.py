"""Stampman services."""

from stampman.services.ledger import PurchaseResult, PurchaseService

__all__ = ["PurchaseService", "PurchaseResult"]
