"""Cart services: line mutations, guest-to-user merge, and the sign-in hook.

`add_item` and `remove_item` return a result dict instead of raising so the
storefront can always render a message. `on_sign_in` never raises: a failed
merge must not block authentication.
"""

import logging
from typing import Optional

from catalog.selectors import get_product
from catalog.signals import product_page_stale
from django.db import DatabaseError, transaction

from .identity import CartIdentity
from .models import Cart, CartLine, CartMergeMarker
from .pricing import ZERO, calculate_totals
from .selectors import merge_already_attempted
from .serializers import CartItemInputSerializer

logger = logging.getLogger("storefront.cart")

GENERIC_FAILURE_MESSAGE = "Something went wrong, please try again."


class CartError(Exception):
    """Raised for cart mutation failures with a user-facing message."""

    code = "cart_error"
    default_message = "Unable to update cart."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SessionNotFound(CartError):
    code = "session_not_found"
    default_message = "Cart session not found"


class ProductNotFound(CartError):
    code = "product_not_found"
    default_message = "Product not found"


class CartNotFound(CartError):
    code = "cart_not_found"
    default_message = "Cart not found"


class ItemNotFound(CartError):
    code = "item_not_found"
    default_message = "Item not found"


class CartValidationError(CartError):
    code = "validation_error"
    default_message = "Invalid cart item"

    def __init__(self, fields: dict):
        self.fields = fields
        messages = [str(msg) for errors in fields.values() for msg in errors]
        super().__init__(", ".join(messages) or None)


def _failure(exc: CartError) -> dict:
    result = {"success": False, "error": exc.code, "message": exc.message}
    if isinstance(exc, CartValidationError):
        result["fields"] = exc.fields
    return result


def _server_failure() -> dict:
    return {"success": False, "error": "server_error", "message": GENERIC_FAILURE_MESSAGE}


def _lock_cart(identity: CartIdentity) -> Optional[Cart]:
    return Cart.objects.select_for_update().filter(**identity.owner_filter()).first()


def _recalculate(cart: Cart) -> Cart:
    """Rewrite the cart's stored totals from its current lines."""

    totals = calculate_totals(cart.lines.all())
    for field, value in totals.items():
        setattr(cart, field, value)
    cart.save(update_fields=[*totals.keys(), "updated_at"])
    return cart


def _notify_product_page(slug: str) -> None:
    transaction.on_commit(lambda: product_page_stale.send(sender=Cart, slug=slug))


@transaction.atomic
def _add_item(*, identity: Optional[CartIdentity], data: dict):
    if identity is None:
        raise SessionNotFound()
    product = get_product(data["product_id"])
    if product is None:
        raise ProductNotFound()

    cart = _lock_cart(identity)
    if cart is None:
        cart = Cart.objects.create(**identity.owner_filter())

    line = CartLine.objects.filter(cart=cart, product_id=data["product_id"]).first()
    created = line is None
    if created:
        # Snapshot the catalog's current display fields and price
        line = CartLine.objects.create(
            cart=cart,
            product_id=data["product_id"],
            name=product.name,
            slug=product.slug,
            image=product.image,
            quantity=1,
            unit_price=product.price,
        )
    else:
        line.quantity = int(line.quantity) + 1
        line.save(update_fields=["quantity", "updated_at"])

    _recalculate(cart)
    _notify_product_page(product.slug)
    event = "cart.item_added" if created else "cart.item_updated"
    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "product_id": line.product_id,
            "quantity": line.quantity,
            **identity.log_fields(),
        },
    )
    return cart, line, created


def add_item(*, identity: Optional[CartIdentity], item: dict) -> dict:
    """Add one unit of a product to the identity's cart.

    Creates the cart on first use. A product already in the cart has its
    line bumped by one; otherwise a new line is appended.
    """

    if identity is None:
        return _failure(SessionNotFound())
    serializer = CartItemInputSerializer(data=item)
    if not serializer.is_valid():
        return _failure(CartValidationError(fields=serializer.errors))
    try:
        cart, line, created = _add_item(identity=identity, data=serializer.validated_data)
    except CartError as exc:
        return _failure(exc)
    except DatabaseError:
        logger.exception("cart.add_item_failed", extra={"event": "cart.add_item_failed"})
        return _server_failure()
    verb = "added to" if created else "updated in"
    return {"success": True, "message": f"{line.name} {verb} cart", "cart_id": cart.id}


@transaction.atomic
def _remove_item(*, identity: Optional[CartIdentity], product_id: str):
    if identity is None:
        raise SessionNotFound()
    cart = _lock_cart(identity)
    if cart is None:
        raise CartNotFound()
    line = CartLine.objects.filter(cart=cart, product_id=str(product_id)).first()
    if line is None:
        raise ItemNotFound()

    if int(line.quantity) == 1:
        line.delete()
    else:
        line.quantity = int(line.quantity) - 1
        line.save(update_fields=["quantity", "updated_at"])

    _recalculate(cart)
    _notify_product_page(line.slug)
    logger.info(
        "cart.item_removed",
        extra={
            "event": "cart.item_removed",
            "cart_id": cart.id,
            "product_id": line.product_id,
            **identity.log_fields(),
        },
    )
    return cart, line


def remove_item(*, identity: Optional[CartIdentity], product_id: str) -> dict:
    """Remove one unit of a product; the line goes away when it reaches zero."""

    try:
        cart, line = _remove_item(identity=identity, product_id=product_id)
    except CartError as exc:
        return _failure(exc)
    except DatabaseError:
        logger.exception("cart.remove_item_failed", extra={"event": "cart.remove_item_failed"})
        return _server_failure()
    return {"success": True, "message": f"{line.name} was removed from cart", "cart_id": cart.id}


@transaction.atomic
def clear_cart(*, identity: CartIdentity) -> Optional[Cart]:
    """Empty the cart after an order is placed; the record itself is kept."""

    cart = _lock_cart(identity)
    if cart is None:
        return None
    CartLine.objects.filter(cart=cart).delete()
    cart.items_total = cart.shipping_total = cart.tax_total = cart.grand_total = ZERO
    cart.save(update_fields=["items_total", "shipping_total", "tax_total", "grand_total", "updated_at"])
    logger.info("cart.cleared", extra={"event": "cart.cleared", "cart_id": cart.id, **identity.log_fields()})
    return cart


@transaction.atomic
def merge_carts(*, session_key: str, user) -> Optional[Cart]:
    """Fold the guest session's cart into the user's cart.

    - No guest cart: nothing happens and None is returned.
    - No user cart: the guest cart is claimed by the user as-is.
    - Both exist: quantities are summed per product, totals recalculated and
      the guest cart deleted.
    """

    src = Cart.objects.select_for_update().filter(session_key=session_key).first()
    if src is None:
        return None
    dest = Cart.objects.select_for_update().filter(user=user).first()

    if dest is None:
        src.user = user
        src.session_key = None
        src.save(update_fields=["user", "session_key", "updated_at"])
        logger.info(
            "cart.claimed",
            extra={"event": "cart.claimed", "cart_id": src.id, "user_id": user.id, "session_key": session_key},
        )
        return src

    if src.id == dest.id:
        return dest

    existing = {line.product_id: line for line in CartLine.objects.select_for_update().filter(cart=dest)}
    for s_line in CartLine.objects.select_for_update().filter(cart=src):
        d_line = existing.get(s_line.product_id)
        if d_line is None:
            s_line.cart = dest
            s_line.save(update_fields=["cart", "updated_at"])
        else:
            d_line.quantity = int(d_line.quantity) + int(s_line.quantity)
            d_line.save(update_fields=["quantity", "updated_at"])
    src_id = src.id
    src.delete()
    _recalculate(dest)
    logger.info(
        "cart.merged",
        extra={
            "event": "cart.merged",
            "src_cart_id": src_id,
            "dest_cart_id": dest.id,
            "user_id": user.id,
            "session_key": session_key,
        },
    )
    return dest


def on_sign_in(*, session_key: Optional[str], user, auth_session: str, expires_at=None) -> Optional[Cart]:
    """Authentication hook: merge the guest cart once per authenticated session.

    Safe to call repeatedly (token refreshes re-fire it). Failures are logged
    and swallowed; without a recorded marker the next call retries.
    """

    try:
        if merge_already_attempted(auth_session=auth_session):
            logger.debug(
                "cart.merge_skipped",
                extra={"event": "cart.merge_skipped", "user_id": user.id, "auth_session": auth_session},
            )
            return None
        with transaction.atomic():
            cart = merge_carts(session_key=session_key, user=user) if session_key else None
            CartMergeMarker.objects.get_or_create(
                auth_session=auth_session,
                defaults={"user": user, "expires_at": expires_at},
            )
    except Exception:
        logger.exception(
            "cart.merge_failed",
            extra={
                "event": "cart.merge_failed",
                "user_id": getattr(user, "id", None),
                "session_key": session_key,
                "auth_session": auth_session,
            },
        )
        return None
    return cart
