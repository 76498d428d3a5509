import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from wallets.exceptions import InsufficientBalance
from wallets.serializers import (
    LedgerOperationSerializer,
    PaymentSerializer,
    TopUpSerializer,
    WalletSerializer,
)
from wallets.services import WalletService

logger = logging.getLogger(__name__)


class LedgerOperationView(APIView):
    """
    Base for endpoints that append one ledger entry for a user.

    Subclasses choose the serializer, the WalletService operation and the
    default description.
    """

    serializer_class = LedgerOperationSerializer
    operation = None
    default_description = ""
    success_message = ""

    def get_target_user(self, request, **kwargs):
        return request.user

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            wallet = self.operation(
                self.get_target_user(request, **kwargs),
                amount=data["amount"],
                description=data.get("description", self.default_description),
                reference=data.get("reference", ""),
                metadata=data.get("metadata"),
            )
        except InsufficientBalance as exc:
            return Response(
                {"error": str(exc), "code": exc.code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except ValueError as exc:
            return Response(
                {"error": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {"message": self.success_message, "wallet": WalletSerializer(wallet).data},
            status=status.HTTP_200_OK,
        )


class DepositView(LedgerOperationView):
    """
    POST /api/wallet/deposit — Add funds to the caller's wallet.

    Request body: {"amount": <decimal > 0>, "description"?, "reference"?}
    """

    operation = staticmethod(WalletService.deposit)
    default_description = "Wallet deposit"
    success_message = "Funds added successfully."


class WithdrawView(LedgerOperationView):
    """
    POST /api/wallet/withdraw — Request a withdrawal.

    The funds are held immediately; the entry stays pending until approved.
    """

    operation = staticmethod(WalletService.withdraw)
    default_description = "Wallet withdrawal"
    success_message = "Withdrawal request submitted successfully."


class PaymentView(LedgerOperationView):
    """POST /api/wallet/payment — Pay from the caller's wallet."""

    serializer_class = PaymentSerializer
    operation = staticmethod(WalletService.pay)
    success_message = "Payment completed successfully."


class BonusView(LedgerOperationView):
    """POST /api/wallet/users/<user_id>/bonus — Admin grant of promotional credit."""

    permission_classes = [IsAdminUser]
    serializer_class = PaymentSerializer
    operation = staticmethod(WalletService.bonus)
    success_message = "Bonus added successfully."

    def get_target_user(self, request, **kwargs):
        return get_object_or_404(get_user_model(), pk=kwargs["user_id"])


class TopUpView(APIView):
    """
    POST /api/wallet/top-up — Fund the wallet through a payment gateway.

    Gateways are stubbed: the charge is assumed to succeed and is recorded
    as a completed credit.
    """

    def post(self, request, *args, **kwargs):
        serializer = TopUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        amount = serializer.validated_data["amount"]
        method = serializer.validated_data["payment_method"]

        wallet = WalletService.deposit(
            request.user,
            amount=amount,
            description=f"Wallet top-up via {method}",
            reference=f"TOPUP-{int(timezone.now().timestamp() * 1000)}",
            metadata={"payment_method": method},
        )
        return Response(
            {
                "message": "Wallet topped up successfully.",
                "amount_added": amount,
                "wallet": WalletSerializer(wallet).data,
            },
            status=status.HTTP_200_OK,
        )
