"""Resolve who owns the cart for a request.

Guests are identified by an opaque session key sent in the `X-Session-Id`
header or the `cart_session` cookie; `CartSessionMiddleware` issues that
cookie on first visit. Authenticated users are identified by their id.
"""

import uuid
from typing import Optional

from django.conf import settings

# Matches Cart.session_key; longer keys are treated as missing
MAX_SESSION_KEY_LENGTH = 64


class CartIdentity:
    """Owner key for a cart: exactly one of `session_key` or `user_id`."""

    def __init__(self, *, session_key: Optional[str] = None, user_id=None):
        if bool(session_key) == (user_id is not None):
            raise ValueError("Provide exactly one of session_key or user_id")
        self.session_key = session_key
        self.user_id = user_id

    @classmethod
    def anonymous(cls, session_key: str) -> "CartIdentity":
        return cls(session_key=session_key)

    @classmethod
    def authenticated(cls, user_id) -> "CartIdentity":
        return cls(user_id=user_id)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def owner_filter(self) -> dict:
        """Lookup kwargs selecting this identity's cart."""
        if self.is_authenticated:
            return {"user_id": self.user_id}
        return {"session_key": self.session_key}

    def log_fields(self) -> dict:
        if self.is_authenticated:
            return {"user_id": self.user_id, "guest": False}
        return {"session_key": self.session_key, "guest": True}

    def __repr__(self) -> str:  # pragma: no cover
        if self.is_authenticated:
            return f"CartIdentity(user_id={self.user_id!r})"
        return f"CartIdentity(session_key={self.session_key!r})"


def _cookie_name() -> str:
    return getattr(settings, "CART_SESSION_COOKIE_NAME", "cart_session")


def _header_name() -> str:
    return getattr(settings, "CART_SESSION_HEADER", "X-Session-Id")


def get_session_key(request) -> Optional[str]:
    """Return the guest session key carried by the request, if any."""

    key = request.headers.get(_header_name()) or request.COOKIES.get(_cookie_name())
    if not key:
        key = getattr(request, "cart_session_key", None)
    key = (key or "").strip()
    if not key or len(key) > MAX_SESSION_KEY_LENGTH:
        return None
    return key


def resolve_identity(request) -> Optional[CartIdentity]:
    """Authenticated users own their cart by id; guests by session key."""

    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return CartIdentity.authenticated(user.id)
    session_key = get_session_key(request)
    if session_key:
        return CartIdentity.anonymous(session_key)
    return None


class CartSessionMiddleware:
    """Issue a guest cart session cookie to visitors that lack one."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        issued = None
        if not get_session_key(request):
            issued = uuid.uuid4().hex
            request.cart_session_key = issued
        response = self.get_response(request)
        if issued:
            response.set_cookie(
                _cookie_name(),
                issued,
                httponly=True,
                samesite="Lax",
                secure=getattr(settings, "SESSION_COOKIE_SECURE", False),
            )
        return response
