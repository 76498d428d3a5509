import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from predictions.exceptions import UnknownLottery
from predictions.models import Prediction
from predictions.serializers import (
    MyPurchaseSerializer,
    PurchaseRequestSerializer,
    PurchaseSerializer,
)
from predictions.services import PurchaseService
from predictions.views.base import client_meta, error_response
from wallets.serializers import WalletSerializer

logger = logging.getLogger(__name__)


class PurchasePredictionView(APIView):
    """
    POST /api/predictions/<lottery_code>/<id>/purchase — Buy a prediction.

    Request body: {"payment_method": "wallet" | "stripe" | "paypal"}
    Wallet purchases complete immediately; gateway purchases stay pending.
    """

    def post(self, request, lottery_code, pk, *args, **kwargs):
        prediction = get_object_or_404(Prediction, pk=pk)
        serializer = PurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            purchase, wallet = PurchaseService.purchase(
                request.user,
                prediction,
                lottery_code,
                payment_method=serializer.validated_data["payment_method"],
                **client_meta(request),
            )
        except (UnknownLottery, ValueError) as exc:
            # Covers LotteryMismatch, AlreadyPurchased and InsufficientBalance.
            return error_response(exc, status.HTTP_400_BAD_REQUEST)

        body = {
            "message": "Prediction purchased successfully."
            if purchase.payment_status == purchase.PaymentStatus.COMPLETED
            else "Purchase created; awaiting payment confirmation.",
            "purchase": PurchaseSerializer(purchase).data,
        }
        if wallet is not None:
            body["wallet"] = WalletSerializer(wallet).data
        return Response(body, status=status.HTTP_201_CREATED)


class MyPurchasesView(ListAPIView):
    """
    GET /api/predictions/my-purchases/ — The caller's unlocked predictions.

    Completed and trial purchases, with their viable numbers. Purchases of
    deleted predictions are left out.
    """

    serializer_class = MyPurchaseSerializer

    def get_queryset(self):
        return PurchaseService.visible_purchases(self.request.user)
