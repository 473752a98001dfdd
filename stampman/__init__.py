"""
Django Stampman - Restaurant loyalty ledger with wallet pass sync.

Usage:
    from stampman import PurchaseService
    from stampman.gates import Gates
    from stampman.render import StampCardRenderer

    result = PurchaseService.register_purchase(request.user, customer_id, 45)
    result.as_dict()  # {"success": True, "points": {...}, "stamps": {...}, ...}

    png = StampCardRenderer().render(stamps=3)
"""


def __getattr__(name):
    if name == "PurchaseService":
        from stampman.services.ledger import PurchaseService

        return PurchaseService
    if name == "Gates":
        from stampman.gates import Gates

        return Gates
    if name == "StampCardRenderer":
        from stampman.render import StampCardRenderer

        return StampCardRenderer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PurchaseService", "Gates", "StampCardRenderer"]
__version__ = "0.1.0"
