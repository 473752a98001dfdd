from django.urls import path

from .views import (
    AppleWalletPassView,
    GoogleWalletSaveView,
    GoogleWalletUpdateView,
    PassKitLatestPassView,
    PassKitLogView,
    PassKitRegistrationView,
    PassKitSerialsView,
    PunchImageView,
    RegisterPurchaseView,
    StampSpriteView,
)

app_name = "stampman"

urlpatterns = [
    path("punch-image/", PunchImageView.as_view(), name="punch-image"),
    path("stamp-sprite/", StampSpriteView.as_view(), name="stamp-sprite"),
    path("wallet/google/save/", GoogleWalletSaveView.as_view(), name="google-wallet-save"),
    path("wallet/google/update/", GoogleWalletUpdateView.as_view(), name="google-wallet-update"),
    path("wallet/apple/pass/", AppleWalletPassView.as_view(), name="apple-wallet-pass"),
    path("purchases/", RegisterPurchaseView.as_view(), name="register-purchase"),
    # Apple PassKit web service; Wallet appends these to the pass webServiceURL.
    path(
        "wallet/apple/v1/devices/<str:device_id>/registrations/<str:pass_type_id>/<str:serial_number>",
        PassKitRegistrationView.as_view(),
        name="passkit-registration",
    ),
    path(
        "wallet/apple/v1/devices/<str:device_id>/registrations/<str:pass_type_id>",
        PassKitSerialsView.as_view(),
        name="passkit-serials",
    ),
    path(
        "wallet/apple/v1/passes/<str:pass_type_id>/<str:serial_number>",
        PassKitLatestPassView.as_view(),
        name="passkit-latest-pass",
    ),
    path("wallet/apple/v1/log", PassKitLogView.as_view(), name="passkit-log"),
]
