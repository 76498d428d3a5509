import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from predictions.serializers import ProfileSerializer, RegisterSerializer
from predictions.services import AccountService
from predictions.views.base import error_response

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    POST /api/auth/register — Create an account and start the free trial.

    Request body: {"username", "password", "selected_lottery", "email"?, "phone"?}
    """

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AccountService.register(**serializer.validated_data)
        return Response(
            {
                "message": "Registration successful.",
                "user_id": user.pk,
                "profile": ProfileSerializer(user.profile).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ProfileView(APIView):
    """GET/PATCH /api/profile/ — The caller's profile and notification settings."""

    def get(self, request, *args, **kwargs):
        profile = AccountService.get_profile(request.user)
        return Response(ProfileSerializer(profile).data)

    def patch(self, request, *args, **kwargs):
        profile = AccountService.get_profile(request.user)
        serializer = ProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            profile = AccountService.update_profile(
                request.user, **serializer.validated_data
            )
        except ValueError as exc:
            return error_response(exc, status.HTTP_400_BAD_REQUEST)
        return Response(ProfileSerializer(profile).data)
