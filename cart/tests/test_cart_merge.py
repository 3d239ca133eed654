from datetime import timedelta
from decimal import Decimal

import pytest
from cart import services
from cart.models import Cart, CartLine, CartMergeMarker
from cart.services import merge_carts, on_sign_in
from django.db import DatabaseError
from django.utils import timezone
from users.tests.factories import UserFactory


def make_cart(lines, **owner):
    cart = Cart.objects.create(**owner)
    for product_id, quantity in lines.items():
        CartLine.objects.create(
            cart=cart,
            product_id=product_id,
            name=f"Product {product_id}",
            slug=f"product-{product_id.lower()}",
            image=f"/images/{product_id}.jpg",
            quantity=quantity,
            unit_price=Decimal("100.00"),
        )
    services._recalculate(cart)
    return cart


def quantities(cart):
    return {line.product_id: line.quantity for line in CartLine.objects.filter(cart=cart)}


@pytest.mark.django_db
def test_merge_without_guest_cart_leaves_user_cart_unchanged():
    user = UserFactory()
    user_cart = make_cart({"A": 2}, user=user)
    before = (user_cart.items_total, user_cart.grand_total)

    assert merge_carts(session_key="sess-empty", user=user) is None

    user_cart.refresh_from_db()
    assert quantities(user_cart) == {"A": 2}
    assert (user_cart.items_total, user_cart.grand_total) == before


@pytest.mark.django_db
def test_merge_sums_quantities_and_deletes_guest_cart():
    user = UserFactory()
    user_cart = make_cart({"A": 1, "C": 3}, user=user)
    guest_cart = make_cart({"A": 2, "B": 1}, session_key="sess-merge")

    merged = merge_carts(session_key="sess-merge", user=user)

    assert merged.id == user_cart.id
    assert quantities(merged) == {"A": 3, "B": 1, "C": 3}
    assert not Cart.objects.filter(id=guest_cart.id).exists()
    merged.refresh_from_db()
    assert merged.items_total == Decimal("700.00")
    assert merged.shipping_total == Decimal("150.00")
    assert merged.grand_total == Decimal("850.00")


@pytest.mark.django_db
def test_merge_claims_guest_cart_when_user_has_none():
    user = UserFactory()
    guest_cart = make_cart({"A": 2}, session_key="sess-claim")
    totals = (guest_cart.items_total, guest_cart.shipping_total, guest_cart.grand_total)

    claimed = merge_carts(session_key="sess-claim", user=user)

    assert claimed.id == guest_cart.id
    claimed.refresh_from_db()
    assert claimed.user_id == user.id
    assert claimed.session_key is None
    assert quantities(claimed) == {"A": 2}
    assert (claimed.items_total, claimed.shipping_total, claimed.grand_total) == totals
    assert Cart.objects.count() == 1


@pytest.mark.django_db
def test_on_sign_in_merges_once_per_auth_session():
    user = UserFactory()
    make_cart({"A": 1}, user=user)
    make_cart({"A": 2}, session_key="sess-hook")

    on_sign_in(session_key="sess-hook", user=user, auth_session="jti-1")
    # A new guest cart under the same key must not be folded in again
    make_cart({"A": 5}, session_key="sess-hook")
    assert on_sign_in(session_key="sess-hook", user=user, auth_session="jti-1") is None

    user_cart = Cart.objects.get(user=user)
    assert quantities(user_cart) == {"A": 3}
    assert CartMergeMarker.objects.filter(auth_session="jti-1", user=user).count() == 1


@pytest.mark.django_db
def test_on_sign_in_new_auth_session_merges_again():
    user = UserFactory()
    make_cart({"A": 1}, session_key="sess-first")
    on_sign_in(session_key="sess-first", user=user, auth_session="jti-a")
    make_cart({"B": 1}, session_key="sess-second")

    on_sign_in(session_key="sess-second", user=user, auth_session="jti-b")

    assert quantities(Cart.objects.get(user=user)) == {"A": 1, "B": 1}


@pytest.mark.django_db
def test_on_sign_in_without_session_key_records_marker():
    user = UserFactory()
    expires = timezone.now() + timedelta(days=7)

    assert on_sign_in(session_key=None, user=user, auth_session="jti-none", expires_at=expires) is None

    marker = CartMergeMarker.objects.get(auth_session="jti-none")
    assert marker.user_id == user.id
    assert marker.expires_at == expires


@pytest.mark.django_db
def test_on_sign_in_swallows_failures_and_retries(monkeypatch):
    user = UserFactory()
    make_cart({"A": 2}, session_key="sess-fail")

    def boom(**kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(services, "merge_carts", boom)
    assert on_sign_in(session_key="sess-fail", user=user, auth_session="jti-fail") is None
    assert not CartMergeMarker.objects.filter(auth_session="jti-fail").exists()
    assert Cart.objects.get(session_key="sess-fail").user_id is None

    monkeypatch.undo()
    cart = on_sign_in(session_key="sess-fail", user=user, auth_session="jti-fail")
    assert cart.user_id == user.id
    assert CartMergeMarker.objects.filter(auth_session="jti-fail").exists()


@pytest.mark.django_db
def test_merge_same_record_is_a_no_op():
    user = UserFactory()
    cart = make_cart({"A": 2}, user=user, session_key="sess-same")

    merged = merge_carts(session_key="sess-same", user=user)

    assert merged.id == cart.id
    assert quantities(merged) == {"A": 2}
    assert Cart.objects.count() == 1


@pytest.mark.django_db
def test_on_sign_in_swallows_marker_lookup_failure(monkeypatch):
    user = UserFactory()
    make_cart({"A": 1}, session_key="sess-lookup")

    def lookup_down(**kwargs):
        raise DatabaseError("db down")

    monkeypatch.setattr(services, "merge_already_attempted", lookup_down)

    assert on_sign_in(session_key="sess-lookup", user=user, auth_session="jti-lookup") is None
    assert Cart.objects.get(session_key="sess-lookup").user_id is None
    assert not CartMergeMarker.objects.exists()
