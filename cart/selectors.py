"""Selectors for read-only cart queries."""

from typing import Optional

from .identity import CartIdentity
from .models import Cart, CartMergeMarker


def get_cart(*, identity: Optional[CartIdentity]) -> Optional[Cart]:
    """Return the identity's cart, or None when it has none yet."""

    if identity is None:
        return None
    return Cart.objects.filter(**identity.owner_filter()).prefetch_related("lines").first()


def merge_already_attempted(*, auth_session: str) -> bool:
    """Whether the guest cart merge already ran for this authenticated session."""

    return CartMergeMarker.objects.filter(auth_session=auth_session).exists()
