"""Users app API views.

Endpoints include:
- profile: returns the current authenticated user's profile.
- signin: JWT obtain by email or phone; links the guest cart to the user.
- refresh: JWT refresh; re-fires the guest cart link (a no-op once done).
- signout: blacklists the refresh token.
"""

from datetime import datetime
from datetime import timezone as dt_timezone

from cart.identity import get_session_key
from cart.services import on_sign_in
from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken, TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .logging import log_auth_event
from .serializers import EmailOrPhoneTokenObtainPairSerializer, SignOutSerializer, UserMeSerializer


def link_guest_cart(request, user, token) -> None:
    """Fire the cart sign-in hook for the authenticated session behind `token`."""

    on_sign_in(
        session_key=get_session_key(request),
        user=user,
        auth_session=str(token[api_settings.JTI_CLAIM]),
        expires_at=datetime.fromtimestamp(int(token["exp"]), tz=dt_timezone.utc),
    )


@extend_schema(
    operation_id="users_current_user",
    summary="Get current user profile",
    description=(
        "Returns the current authenticated user's profile.\n\n"
        "Auth: Requires JWT (Authorization: Bearer <token>) or session auth.\n\n"
        "Errors: 401 if authentication credentials are missing or invalid."
    ),
    tags=["User Endpoints"],
    responses={
        200: OpenApiResponse(description="User profile", response=UserMeSerializer),
        401: OpenApiResponse(description="Unauthorized"),
    },
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def current_user(request):
    """Return the authenticated user's basic profile fields."""
    log_auth_event("profile", request, user=request.user)
    serializer = UserMeSerializer(request.user)
    return Response(serializer.data)


# Throttle scope for profile endpoint
current_user.throttle_scope = "profile"


class SignInView(TokenObtainPairView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "signin"
    serializer_class = EmailOrPhoneTokenObtainPairSerializer

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            log_auth_event("signin", request, status="failed")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        link_guest_cart(request, serializer.user, serializer.token)
        log_auth_event("signin", request, user=serializer.user, status="success")
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class RefreshView(TokenRefreshView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "token_refresh"

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        try:
            token = RefreshToken(request.data.get("refresh", ""))
        except TokenError:
            token = None
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("token_refresh", request, status=status_label)
        if resp.status_code == 200 and token is not None:
            user = get_user_model().objects.filter(pk=token[api_settings.USER_ID_CLAIM]).first()
            if user is not None:
                link_guest_cart(request, user, token)
        return resp


class SignOutView(APIView):
    """Blacklist the refresh token to end the authenticated session."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "signout"
    permission_classes = [AllowAny]

    @extend_schema(tags=["User Endpoints"], request=SignOutSerializer)
    def post(self, request):
        refresh = request.data.get("refresh")
        if not refresh:
            return Response({"detail": "Refresh token is required."}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(refresh)
            token.blacklist()
        except TokenError:
            log_auth_event("signout", request, status="invalid_token")
            return Response({"detail": "Invalid token."}, status=status.HTTP_400_BAD_REQUEST)
        log_auth_event("signout", request, status="success")
        return Response({"detail": "Signed out."}, status=status.HTTP_205_RESET_CONTENT)
