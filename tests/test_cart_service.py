"""Cart use cases against a real (in-memory) database."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storefront.domain.schemas import OwnerKey
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService
from storefront.services.lock_service import cart_lock_key


@pytest.fixture
def svc(db, lock_service, revalidator):
    return CartService(db=db, lock_service=lock_service, revalidation_service=revalidator)


def _payload(product, **overrides):
    data = {
        "product_id": product.id,
        "name": product.name,
        "slug": product.slug,
        "image": "/images/p1.jpg",
        "price": str(product.price),
        "qty": 1,
    }
    data.update(overrides)
    return data


ANON = OwnerKey(session_cart_id="sess-1")


class TestAddItemToCart:
    def test_first_add_creates_cart_with_totals(self, svc, make_product):
        product = make_product(price=Decimal("19.99"), stock=5)

        result = svc.add_item_to_cart(ANON, _payload(product))

        assert result.success is True
        assert result.message == f"{product.name} added to cart"
        cart = result.cart
        assert [(i.product_id, i.qty) for i in cart.items] == [(product.id, 1)]
        assert cart.items_price == Decimal("19.99")
        assert cart.shipping_price == Decimal("10.00")
        assert cart.tax_price == Decimal("3.00")
        assert cart.total_price == Decimal("32.99")

    def test_second_add_bumps_quantity(self, svc, make_product):
        product = make_product(price=Decimal("10.00"), stock=5)
        svc.add_item_to_cart(ANON, _payload(product))

        result = svc.add_item_to_cart(ANON, _payload(product, qty=4))

        assert result.success is True
        assert result.message == f"{product.name} updated in cart"
        assert result.cart.items[0].qty == 2
        assert result.cart.items_price == Decimal("20.00")

    def test_two_products_keep_insertion_order(self, svc, make_product):
        first = make_product()
        second = make_product()
        svc.add_item_to_cart(ANON, _payload(first))

        result = svc.add_item_to_cart(ANON, _payload(second))

        assert [i.product_id for i in result.cart.items] == [first.id, second.id]

    def test_out_of_stock_leaves_cart_unchanged(self, svc, make_product):
        product = make_product(stock=1)
        before = svc.add_item_to_cart(ANON, _payload(product)).cart

        result = svc.add_item_to_cart(ANON, _payload(product))

        assert result.success is False
        assert result.error == "OutOfStock"
        after = svc.get_cart(ANON)
        assert after.items[0].qty == 1
        assert after.total_price == before.total_price

    def test_zero_stock_on_empty_cart(self, svc, make_product):
        product = make_product(stock=0)

        result = svc.add_item_to_cart(ANON, _payload(product))

        assert result.success is False
        assert result.error == "OutOfStock"
        assert svc.get_cart(ANON) is None

    def test_unknown_product(self, svc, make_product):
        product = make_product()

        result = svc.add_item_to_cart(ANON, _payload(product, product_id="missing"))

        assert result.success is False
        assert result.error == "NotFound"
        assert result.message == "Product not found"

    def test_invalid_price_is_a_validation_error(self, svc, make_product):
        product = make_product()

        result = svc.add_item_to_cart(ANON, _payload(product, price="19.999"))

        assert result.success is False
        assert result.error == "ValidationError"
        assert result.message == "Price must exactly have two decimal places"

    def test_price_snapshot_comes_from_catalogue(self, svc, make_product):
        product = make_product(price=Decimal("19.99"))

        result = svc.add_item_to_cart(ANON, _payload(product, price="0.01", name="Cheap"))

        assert result.cart.items[0].price == Decimal("19.99")
        assert result.cart.items[0].name == product.name

    def test_held_lock_is_a_conflict(self, svc, make_product, lock_service):
        product = make_product()
        lock_service.held.add(cart_lock_key(ANON.lookup_key))

        result = svc.add_item_to_cart(ANON, _payload(product))

        assert result.success is False
        assert result.error == "ConflictError"

    def test_stale_version_is_a_conflict(self, svc, db, make_product, monkeypatch):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))
        monkeypatch.setattr(CartRepo, "update_cart_version", lambda self, **kw: 0)

        result = svc.add_item_to_cart(ANON, _payload(product))

        assert result.success is False
        assert result.error == "ConflictError"
        monkeypatch.undo()
        assert svc.get_cart(ANON).items[0].qty == 1

    def test_revalidates_product_page(self, svc, make_product, revalidator):
        product = make_product()

        svc.add_item_to_cart(ANON, _payload(product))

        assert revalidator.paths == [f"/product/{product.slug}"]

    def test_add_refreshes_expiry(self, svc, make_product):
        product = make_product()

        cart = svc.add_item_to_cart(ANON, _payload(product)).cart

        stored = CartRepo(svc.repo.db).get_cart(cart.id)
        assert stored.expires_at is not None


class TestOwnership:
    def test_user_adopts_anonymous_cart_of_session(self, svc, make_product):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))
        user = OwnerKey(session_cart_id="sess-1", user_id="user-1")

        result = svc.add_item_to_cart(user, _payload(product))

        assert result.cart.user_id == "user-1"
        assert result.cart.items[0].qty == 2
        # the session alone no longer reaches the claimed cart
        assert svc.get_cart(ANON) is None

    def test_user_cart_wins_over_session(self, svc, make_product):
        product = make_product()
        user = OwnerKey(session_cart_id="sess-1", user_id="user-1")
        svc.add_item_to_cart(user, _payload(product))

        other_session = OwnerKey(session_cart_id="sess-2", user_id="user-1")
        cart = svc.get_cart(other_session)

        assert cart is not None
        assert cart.user_id == "user-1"

    def test_anonymous_carts_are_per_session(self, svc, make_product):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))

        assert svc.get_cart(OwnerKey(session_cart_id="sess-other")) is None


class TestRemoveItemFromCart:
    def test_remove_undoes_add(self, svc, make_product):
        kept = make_product(price=Decimal("42.00"))
        extra = make_product(price=Decimal("70.00"))
        before = svc.add_item_to_cart(ANON, _payload(kept)).cart
        svc.add_item_to_cart(ANON, _payload(extra))

        result = svc.remove_item_from_cart(ANON, extra.id)

        assert result.success is True
        assert result.message == f"{extra.name} was removed from cart"
        after = result.cart
        assert [i.product_id for i in after.items] == [kept.id]
        assert (after.items_price, after.shipping_price, after.tax_price, after.total_price) == (
            before.items_price,
            before.shipping_price,
            before.tax_price,
            before.total_price,
        )

    def test_decrements_quantity(self, svc, make_product):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))
        svc.add_item_to_cart(ANON, _payload(product))

        result = svc.remove_item_from_cart(ANON, product.id)

        assert result.cart.items[0].qty == 1

    def test_unknown_product(self, svc):
        result = svc.remove_item_from_cart(ANON, "missing")

        assert result.error == "NotFound"
        assert result.message == "Could not find the product"

    def test_no_cart(self, svc, make_product):
        product = make_product()

        result = svc.remove_item_from_cart(ANON, product.id)

        assert result.error == "NotFound"
        assert result.message == "Could not find the cart"

    def test_item_not_in_cart(self, svc, make_product):
        in_cart = make_product()
        other = make_product()
        svc.add_item_to_cart(ANON, _payload(in_cart))

        result = svc.remove_item_from_cart(ANON, other.id)

        assert result.error == "NotFound"
        assert result.message == "Item not found"

    def test_removing_last_item_keeps_empty_cart(self, svc, make_product):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))

        result = svc.remove_item_from_cart(ANON, product.id)

        assert result.cart.items == []
        assert result.cart.total_price == Decimal("10.00")


class TestDeleteCart:
    def test_delete_existing(self, svc, make_product):
        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))

        assert svc.delete_cart(ANON) is True
        assert svc.get_cart(ANON) is None

    def test_delete_missing(self, svc):
        assert svc.delete_cart(ANON) is False


class TestExpiry:
    def test_only_expired_anonymous_carts_go(self, svc, db, make_product):
        from storefront.tasks.expire import expire_carts

        product = make_product()
        svc.add_item_to_cart(ANON, _payload(product))
        svc.add_item_to_cart(OwnerKey(session_cart_id="sess-2", user_id="user-1"), _payload(product))

        later = datetime.now(timezone.utc) + timedelta(days=365)
        assert expire_carts(db, now=later) == 1

        assert svc.get_cart(ANON) is None
        assert svc.get_cart(OwnerKey(session_cart_id="sess-2", user_id="user-1")) is not None

    def test_fresh_carts_stay(self, svc, db, make_product):
        from storefront.tasks.expire import expire_carts

        svc.add_item_to_cart(ANON, _payload(make_product()))

        assert expire_carts(db) == 0
        assert svc.get_cart(ANON) is not None
