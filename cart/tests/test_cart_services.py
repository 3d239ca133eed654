from decimal import Decimal

import pytest
from cart import services
from cart.identity import CartIdentity
from cart.models import Cart, CartLine
from cart.selectors import get_cart
from cart.services import add_item, clear_cart, remove_item
from catalog.tests.factories import ProductFactory
from django.db import DatabaseError
from users.tests.factories import UserFactory


def payload(product, **overrides):
    data = {
        "product_id": str(product.id),
        "name": product.name,
        "slug": product.slug,
        "image": product.image,
        "unit_price": str(product.price),
        "quantity": 1,
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
def test_add_item_creates_cart_and_line():
    product = ProductFactory(name="Beaded Necklace", price=Decimal("250.00"))
    identity = CartIdentity.anonymous("sess-add")

    result = add_item(identity=identity, item=payload(product))

    assert result["success"] is True
    assert result["message"] == "Beaded Necklace added to cart"
    cart = Cart.objects.get(session_key="sess-add")
    assert result["cart_id"] == cart.id
    line = cart.lines.get()
    assert line.quantity == 1
    assert line.unit_price == Decimal("250.00")
    assert cart.items_total == Decimal("250.00")
    assert cart.shipping_total == Decimal("150.00")
    assert cart.grand_total == Decimal("400.00")


@pytest.mark.django_db
def test_adding_same_product_twice_bumps_quantity():
    product = ProductFactory(name="Clay Pot")
    identity = CartIdentity.anonymous("sess-twice")

    add_item(identity=identity, item=payload(product))
    result = add_item(identity=identity, item=payload(product, quantity=5))

    assert result["success"] is True
    assert result["message"] == "Clay Pot updated in cart"
    cart = Cart.objects.get(session_key="sess-twice")
    assert cart.lines.count() == 1
    assert cart.lines.get().quantity == 2
    assert cart.items_total == Decimal("500.00")


@pytest.mark.django_db
def test_line_keeps_snapshot_when_catalog_price_changes():
    product = ProductFactory(price=Decimal("100.00"))
    identity = CartIdentity.anonymous("sess-snap")
    add_item(identity=identity, item=payload(product))

    product.price = Decimal("120.00")
    product.save()
    add_item(identity=identity, item=payload(product))

    line = CartLine.objects.get(cart__session_key="sess-snap")
    assert line.quantity == 2
    assert line.unit_price == Decimal("100.00")
    assert line.cart.items_total == Decimal("200.00")


@pytest.mark.django_db
def test_snapshot_comes_from_catalog_not_payload():
    product = ProductFactory(name="Woven Basket", price=Decimal("80.00"))
    identity = CartIdentity.anonymous("sess-trust")

    add_item(identity=identity, item=payload(product, name="Free Basket", unit_price="0.01"))

    line = CartLine.objects.get(cart__session_key="sess-trust")
    assert line.name == "Woven Basket"
    assert line.unit_price == Decimal("80.00")


@pytest.mark.django_db
def test_add_item_requires_session():
    product = ProductFactory()
    result = add_item(identity=None, item=payload(product))
    assert result == {"success": False, "error": "session_not_found", "message": "Cart session not found"}
    assert Cart.objects.count() == 0


@pytest.mark.django_db
def test_add_item_unknown_or_inactive_product():
    identity = CartIdentity.anonymous("sess-missing")
    product = ProductFactory(status="inactive")

    result = add_item(identity=identity, item=payload(product))
    assert result["success"] is False
    assert result["error"] == "product_not_found"
    assert result["message"] == "Product not found"

    result = add_item(identity=identity, item=payload(product, product_id="not-a-product"))
    assert result["error"] == "product_not_found"
    assert Cart.objects.count() == 0


@pytest.mark.django_db
def test_add_item_validation_errors_are_reported():
    product = ProductFactory()
    identity = CartIdentity.anonymous("sess-invalid")

    result = add_item(identity=identity, item=payload(product, unit_price="12.345", name=""))

    assert result["success"] is False
    assert result["error"] == "validation_error"
    assert set(result["fields"]) == {"unit_price", "name"}
    assert "Name is required" in result["message"]
    assert "Price must be a number with up to two decimal places" in result["message"]
    assert Cart.objects.count() == 0


@pytest.mark.django_db
def test_remove_item_decrements_then_deletes():
    product = ProductFactory(name="Clay Pot")
    identity = CartIdentity.anonymous("sess-remove")
    add_item(identity=identity, item=payload(product))
    add_item(identity=identity, item=payload(product))

    result = remove_item(identity=identity, product_id=str(product.id))
    assert result["success"] is True
    assert result["message"] == "Clay Pot was removed from cart"
    cart = Cart.objects.get(session_key="sess-remove")
    assert cart.lines.get().quantity == 1
    assert cart.items_total == Decimal("250.00")

    remove_item(identity=identity, product_id=str(product.id))
    cart.refresh_from_db()
    assert cart.lines.count() == 0
    assert cart.items_total == Decimal("0.00")
    assert cart.shipping_total == Decimal("0.00")
    assert cart.grand_total == Decimal("0.00")


@pytest.mark.django_db
def test_remove_item_errors():
    product = ProductFactory()
    assert remove_item(identity=None, product_id=str(product.id))["error"] == "session_not_found"

    identity = CartIdentity.anonymous("sess-remove-missing")
    assert remove_item(identity=identity, product_id=str(product.id))["error"] == "cart_not_found"

    add_item(identity=identity, item=payload(product))
    other = ProductFactory()
    result = remove_item(identity=identity, product_id=str(other.id))
    assert result == {"success": False, "error": "item_not_found", "message": "Item not found"}


@pytest.mark.django_db
def test_user_and_guest_carts_are_separate():
    user = UserFactory()
    product = ProductFactory()
    add_item(identity=CartIdentity.authenticated(user.id), item=payload(product))
    add_item(identity=CartIdentity.anonymous("sess-other"), item=payload(product))

    assert Cart.objects.count() == 2
    user_cart = get_cart(identity=CartIdentity.authenticated(user.id))
    assert user_cart.user_id == user.id
    assert user_cart.session_key is None


@pytest.mark.django_db
def test_get_cart_without_identity_or_cart():
    assert get_cart(identity=None) is None
    assert get_cart(identity=CartIdentity.anonymous("sess-none")) is None


@pytest.mark.django_db
def test_clear_cart_empties_lines_and_totals():
    product = ProductFactory()
    identity = CartIdentity.anonymous("sess-clear")
    add_item(identity=identity, item=payload(product))

    cart = clear_cart(identity=identity)

    cart.refresh_from_db()
    assert cart.lines.count() == 0
    assert cart.items_total == Decimal("0.00")
    assert cart.grand_total == Decimal("0.00")
    assert Cart.objects.filter(id=cart.id).exists()
    assert clear_cart(identity=CartIdentity.anonymous("sess-clear-none")) is None


@pytest.mark.django_db
def test_mutation_invalidates_product_page_cache(django_capture_on_commit_callbacks):
    from catalog.signals import product_page_cache_key
    from django.core.cache import cache

    product = ProductFactory()
    cache.set(product_page_cache_key(product.slug), {"cached": True})

    with django_capture_on_commit_callbacks(execute=True):
        add_item(identity=CartIdentity.anonymous("sess-cache"), item=payload(product))

    assert cache.get(product_page_cache_key(product.slug)) is None


def test_identity_requires_exactly_one_owner():
    with pytest.raises(ValueError):
        CartIdentity()
    with pytest.raises(ValueError):
        CartIdentity(session_key="s", user_id=1)
    assert CartIdentity.anonymous("s").owner_filter() == {"session_key": "s"}
    assert CartIdentity.authenticated(3).owner_filter() == {"user_id": 3}
    assert CartIdentity.authenticated(3).is_authenticated


@pytest.mark.django_db
def test_missing_session_wins_over_invalid_payload():
    product = ProductFactory()
    result = add_item(identity=None, item=payload(product, unit_price="abc"))
    assert result == {"success": False, "error": "session_not_found", "message": "Cart session not found"}


def _fail_recalculate(cart):
    raise DatabaseError("db down")


@pytest.mark.django_db
def test_add_item_database_failure_returns_server_error(monkeypatch):
    product = ProductFactory()
    identity = CartIdentity.anonymous("sess-db-add")
    add_item(identity=identity, item=payload(product))

    monkeypatch.setattr(services, "_recalculate", _fail_recalculate)
    result = add_item(identity=identity, item=payload(product))

    assert result == {
        "success": False,
        "error": "server_error",
        "message": "Something went wrong, please try again.",
    }
    line = CartLine.objects.get(cart__session_key="sess-db-add")
    assert line.quantity == 1


@pytest.mark.django_db
def test_remove_item_database_failure_returns_server_error(monkeypatch):
    product = ProductFactory()
    identity = CartIdentity.anonymous("sess-db-remove")
    add_item(identity=identity, item=payload(product))
    add_item(identity=identity, item=payload(product))

    monkeypatch.setattr(services, "_recalculate", _fail_recalculate)
    result = remove_item(identity=identity, product_id=str(product.id))

    assert result["success"] is False
    assert result["error"] == "server_error"
    line = CartLine.objects.get(cart__session_key="sess-db-remove")
    assert line.quantity == 2
    assert line.cart.items_total == Decimal("500.00")
