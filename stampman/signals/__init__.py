"""
Stampman signals - public event API.

Emitted signals:
- purchase_registered: Emitted by PurchaseService.register_purchase() after
  the ledger transaction commits. Receivers run via send_robust(), so a
  failing receiver never affects the purchase.
"""

from django.dispatch import Signal

# sender=CustomerLedger, ledger=CustomerLedger
purchase_registered = Signal()
