from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from predictions.catalog import LOTTERIES
from predictions.serializers import LotterySerializer


class LotteryListView(APIView):
    """GET /api/lotteries/ — Supported games with ranges, prices and next draw."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response(LotterySerializer(list(LOTTERIES.values()), many=True).data)
