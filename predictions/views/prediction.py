import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from predictions.catalog import get_lottery
from predictions.exceptions import (
    AccessDenied,
    DenialReason,
    LotteryMismatch,
    UnknownLottery,
)
from predictions.models import Prediction, Purchase
from predictions.serializers import PredictionSummarySerializer, ResultSerializer
from predictions.services import AccessService, AccountService
from predictions.views.base import client_meta, error_response

logger = logging.getLogger(__name__)


class PredictionListView(APIView):
    """
    GET /api/predictions/<lottery_code>/ — Upcoming predictions for a lottery.

    Public; returns metadata only, never numbers.
    """

    permission_classes = [AllowAny]

    def get(self, request, lottery_code, *args, **kwargs):
        try:
            lottery = get_lottery(lottery_code)
        except UnknownLottery as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST)

        predictions = Prediction.upcoming(lottery.code, timezone.localdate())
        return Response(
            {
                "lottery": lottery.code,
                "lottery_name": lottery.name,
                "predictions": PredictionSummarySerializer(predictions, many=True).data,
            }
        )


class TrialPredictionListView(APIView):
    """
    GET /api/predictions/trial/<lottery_code>/ — Predictions open to the caller's trial.

    Lists upcoming predictions for the caller's selected lottery while the
    trial window is open. Viewing one still goes through the detail endpoint.
    """

    def get(self, request, lottery_code, *args, **kwargs):
        try:
            lottery = get_lottery(lottery_code)
        except UnknownLottery as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST)

        profile = AccountService.get_profile(request.user)
        trial = AccessService.trial_eligibility(profile, lottery.code)
        if not trial.active:
            return Response(
                {"error": DenialReason(trial.reason).label, "code": trial.reason},
                status=status.HTTP_403_FORBIDDEN,
            )

        last = profile.last_trial_prediction_at
        predictions = Prediction.upcoming(lottery.code, timezone.localdate())
        return Response(
            {
                "lottery": lottery.code,
                "days_remaining": trial.days_remaining,
                "viewed_today": bool(
                    last and timezone.localdate(last) == timezone.localdate()
                ),
                "predictions": PredictionSummarySerializer(predictions, many=True).data,
            }
        )


class PredictionDetailView(APIView):
    """
    GET /api/predictions/<lottery_code>/<id>/ — A prediction's viable numbers.

    Granted through a completed purchase or the free trial. A denial is a
    403 whose `code` says why.
    """

    def get(self, request, lottery_code, pk, *args, **kwargs):
        prediction = get_object_or_404(Prediction, pk=pk)
        try:
            grant = AccessService.open_prediction(
                request.user,
                prediction,
                lottery_code=lottery_code,
                **client_meta(request),
            )
        except (UnknownLottery, LotteryMismatch) as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST)
        except AccessDenied as exc:
            return error_response(exc, status.HTTP_403_FORBIDDEN)

        return Response(
            {
                "prediction": PredictionSummarySerializer(grant.prediction).data,
                "viable_numbers": grant.viable.as_dict(),
                "access": {
                    "via": grant.via,
                    "newly_granted": grant.newly_granted,
                    "transaction_id": grant.purchase.transaction_id,
                },
            }
        )


class PredictionResultView(APIView):
    """GET /api/predictions/result/<id>/ — Draw results for a prediction the caller holds."""

    def get(self, request, pk, *args, **kwargs):
        prediction = get_object_or_404(Prediction, pk=pk)
        entitled = request.user.is_staff or Purchase.objects.filter(
            user=request.user,
            prediction=prediction,
            payment_status__in=Purchase.ENTITLING_STATUSES,
        ).exists()
        if not entitled:
            return Response(
                {
                    "error": "Purchase this prediction to see its results.",
                    "code": DenialReason.MUST_PURCHASE.value,
                },
                status=status.HTTP_403_FORBIDDEN,
            )

        return Response(
            {
                "prediction": PredictionSummarySerializer(prediction).data,
                "results": ResultSerializer(prediction.results.all(), many=True).data,
            }
        )
