import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import (
    ListAPIView,
    ListCreateAPIView,
    RetrieveUpdateDestroyAPIView,
)
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from predictions.exceptions import InvalidTransition
from predictions.models import Prediction, Purchase
from predictions.serializers import (
    AdminPredictionSerializer,
    AdminPurchaseSerializer,
    BulkDeleteSerializer,
    RefundSerializer,
    ResultSerializer,
)
from predictions.services import PredictionService, PurchaseService
from predictions.views.base import error_response

logger = logging.getLogger(__name__)


class AdminPredictionListCreateView(ListCreateAPIView):
    """
    GET/POST /api/admin/predictions/ — All predictions, or enter a new one.

    Query params:
        - lottery: Filter by lottery code
        - active: "true" or "false"
    """

    permission_classes = [IsAdminUser]
    serializer_class = AdminPredictionSerializer

    def get_queryset(self):
        queryset = Prediction.objects.all()

        lottery = self.request.query_params.get("lottery")
        if lottery:
            queryset = queryset.filter(lottery_code=lottery.lower())

        active = self.request.query_params.get("active")
        if active in ("true", "false"):
            queryset = queryset.filter(is_active=active == "true")

        return queryset


class AdminPredictionDetailView(RetrieveUpdateDestroyAPIView):
    """GET/PUT/PATCH/DELETE /api/admin/predictions/<id>/"""

    permission_classes = [IsAdminUser]
    serializer_class = AdminPredictionSerializer
    queryset = Prediction.objects.all()

    def perform_destroy(self, instance):
        PredictionService.delete(instance)


class AdminResultListCreateView(ListCreateAPIView):
    """GET/POST /api/admin/predictions/<id>/results/ — Record the official draw."""

    permission_classes = [IsAdminUser]
    serializer_class = ResultSerializer

    def get_prediction(self):
        if not hasattr(self, "_prediction"):
            self._prediction = get_object_or_404(Prediction, pk=self.kwargs["pk"])
        return self._prediction

    def get_queryset(self):
        return self.get_prediction().results.all()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["prediction"] = self.get_prediction()
        return context


class AdminPaymentListView(ListAPIView):
    """
    GET /api/admin/payments/ — Every purchase, newest first.

    Query params:
        - status: Filter by payment status
        - method: Filter by payment method
        - lottery: Filter by the prediction's lottery code
    """

    permission_classes = [IsAdminUser]
    serializer_class = AdminPurchaseSerializer

    def get_queryset(self):
        queryset = Purchase.objects.select_related("user", "prediction")

        payment_status = self.request.query_params.get("status")
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status.lower())

        method = self.request.query_params.get("method")
        if method:
            queryset = queryset.filter(payment_method=method.lower())

        lottery = self.request.query_params.get("lottery")
        if lottery:
            queryset = queryset.filter(prediction__lottery_code=lottery.lower())

        return queryset


class AdminPaymentStatsView(APIView):
    """GET /api/admin/payments/stats/ — Revenue and status counts; trials excluded from revenue."""

    permission_classes = [IsAdminUser]

    def get(self, request, *args, **kwargs):
        return Response(PurchaseService.stats())


class AdminBulkDeletePurchasesView(APIView):
    """POST /api/admin/payments/bulk-delete — Remove purchases by transaction id."""

    permission_classes = [IsAdminUser]

    def post(self, request, *args, **kwargs):
        serializer = BulkDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        deleted = PurchaseService.delete_by_transaction_ids(
            serializer.validated_data["transaction_ids"]
        )
        return Response({"message": f"Deleted {deleted} purchase(s).", "deleted": deleted})


class AdminRefundPurchaseView(APIView):
    """
    POST /api/admin/purchases/<id>/refund — Refund a completed purchase.

    Request body: {"reason"?}
    """

    permission_classes = [IsAdminUser]

    def post(self, request, pk, *args, **kwargs):
        get_object_or_404(Purchase, pk=pk)
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            purchase = PurchaseService.refund(
                pk, reason=serializer.validated_data.get("reason", "")
            )
        except InvalidTransition as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "message": "Purchase refunded.",
                "purchase": AdminPurchaseSerializer(purchase).data,
            }
        )
