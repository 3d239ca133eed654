"""Serializers for the current user profile and JWT sign-in."""

from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User


class UserMeSerializer(serializers.ModelSerializer):
    """Serializer returning basic profile fields for the current user."""

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name"]


class SignOutSerializer(serializers.Serializer):
    """Request body for signing out (blacklisting refresh token)."""

    refresh = serializers.CharField()


class EmailOrPhoneTokenObtainPairSerializer(serializers.Serializer):
    """Obtain JWTs by authenticating with either email or phone.

    Accepts a single `identifier` field which may be an email address
    (case-insensitive) or an E.164 phone number, and a `password`.
    On success `user` and `token` (the refresh token object) are kept on
    the serializer so the view can fire the sign-in hook.
    """

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True)

    user = None
    token = None

    def validate(self, attrs):
        identifier = (attrs.get("identifier") or "").strip()
        password = attrs.get("password") or ""

        if not identifier or not password:
            raise serializers.ValidationError({"detail": "identifier and password are required."})

        user = None
        if "@" in identifier:
            try:
                user = User.objects.get(email=identifier.lower())
            except User.DoesNotExist:
                pass
        else:
            try:
                user = User.objects.get(phone=identifier)
            except User.DoesNotExist:
                pass

        if not user or not user.check_password(password) or not user.is_active:
            raise serializers.ValidationError({"detail": "Invalid credentials."})

        self.user = user
        self.token = RefreshToken.for_user(user)
        return {"access": str(self.token.access_token), "refresh": str(self.token)}
