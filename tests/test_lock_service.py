import pytest
import redis

from storefront.domain.errors import ConflictError
from storefront.domain.schemas import OwnerKey
from storefront.services.cart_service import CartService
from storefront.services.lock_service import LockService, cart_lock_key


class StubRedis:
    """Just enough of redis-py for SET NX and the compare-and-delete script."""

    def __init__(self):
        self.store = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


@pytest.fixture
def locks():
    return LockService(client=StubRedis())


class TestLockService:
    def test_key_layout(self):
        assert cart_lock_key("user:42") == "cart:user:42:lock"

    def test_hold_releases_on_exit(self, locks):
        with locks.hold("k"):
            assert "k" in locks.redis.store
        assert "k" not in locks.redis.store

    def test_hold_releases_on_error(self, locks):
        with pytest.raises(RuntimeError):
            with locks.hold("k"):
                raise RuntimeError("boom")
        assert "k" not in locks.redis.store

    def test_busy_lock_is_a_conflict(self, locks):
        with locks.hold("k"):
            with pytest.raises(ConflictError):
                with locks.hold("k"):
                    pass

    def test_only_the_holder_releases(self, locks):
        assert locks.acquire("k", "mine") is True
        assert locks.release("k", "someone-else") is False
        assert locks.release("k", "mine") is True


class UnreachableOnRelease(StubRedis):
    def eval(self, script, numkeys, key, token):
        raise redis.RedisError("connection lost")


class TestReleaseFailure:
    def test_release_error_does_not_escape(self):
        locks = LockService(client=UnreachableOnRelease())

        with locks.hold("k"):
            pass

        # left for the TTL to expire
        assert "k" in locks.redis.store

    def test_body_error_is_not_masked(self):
        locks = LockService(client=UnreachableOnRelease())

        with pytest.raises(ConflictError, match="from the body"):
            with locks.hold("k"):
                raise ConflictError("from the body")

    def test_committed_cart_add_is_reported_as_success(self, db, make_product, revalidator):
        product = make_product()
        svc = CartService(
            db=db,
            lock_service=LockService(client=UnreachableOnRelease()),
            revalidation_service=revalidator,
        )
        owner = OwnerKey(session_cart_id="sess-lock")
        payload = {
            "product_id": product.id,
            "name": product.name,
            "slug": product.slug,
            "image": "/images/p1.jpg",
            "price": str(product.price),
        }

        result = svc.add_item_to_cart(owner, payload)

        assert result.success is True
        assert [(i.product_id, i.qty) for i in svc.get_cart(owner).items] == [(product.id, 1)]
