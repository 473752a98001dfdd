"""
Stampman Wallet - Google Wallet and Apple Wallet passes.

Usage:
    from stampman.wallet import GoogleWalletIssuer, ApplePassIssuer, WalletSync

    link = GoogleWalletIssuer().issue({"id": customer_id, "stamps": 3})
    artifact = ApplePassIssuer().issue({"id": customer_id})
    WalletSync.dispatch(update)
"""


def __getattr__(name):
    if name in ("GoogleWalletIssuer", "GoogleWalletUpdater"):
        from stampman.wallet import google

        return getattr(google, name)
    if name == "ApplePassIssuer":
        from stampman.wallet.apple import ApplePassIssuer

        return ApplePassIssuer
    if name == "WalletSync":
        from stampman.wallet.sync import WalletSync

        return WalletSync
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["GoogleWalletIssuer", "GoogleWalletUpdater", "ApplePassIssuer", "WalletSync"]
