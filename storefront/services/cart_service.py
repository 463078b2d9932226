# storefront/services/cart_service.py
from datetime import datetime, timezone, timedelta
from typing import Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.product import ProductModel
from storefront.domain.cart_rules import MergeOutcome, merge_line_item, remove_line_item
from storefront.domain.errors import ConflictError, NotFound, StorefrontError, error_kind, format_error
from storefront.domain.pricing import calc_price
from storefront.domain.schemas import CartActionResult, CartItem, CartOut, OwnerKey
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.lock_service import LockService, cart_lock_key
from storefront.services.revalidation_service import RevalidationService
from storefront.utils.settings import CART_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_USER_ERRORS = (StorefrontError, PydanticValidationError)


class CartService:
    """
    Cart use cases.

    Commands (add, remove, delete) run as lock -> read -> pure transform ->
    versioned write -> commit, and report their outcome as a CartActionResult.
    The query (get) only reads.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        revalidation_service: RevalidationService,
    ):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service
        self.revalidation = revalidation_service

    # query
    def get_cart(self, owner: OwnerKey) -> CartOut | None:
        cart = self.repo.get_cart_for_owner(owner)
        if not cart:
            return None
        return CartOut.model_validate(cart)

    # commands
    def add_item_to_cart(self, owner: OwnerKey, data) -> CartActionResult:
        try:
            item = data if isinstance(data, CartItem) else CartItem.model_validate(data)

            product = self.products.get_product(item.product_id)
            if not product:
                raise NotFound("Product not found")

            with self.lock_service.hold(cart_lock_key(owner.lookup_key)):
                cart, outcome = self._add(owner, item, product)
        except _USER_ERRORS as e:
            return self._failure("add", owner, e)

        logger.info(
            "cart.item_added",
            cart_id=cart.id,
            product_id=product.id,
            outcome=outcome.value,
            owner=owner.lookup_key,
        )
        self.revalidation.revalidate_product(product.slug)

        verb = "updated in" if outcome is MergeOutcome.UPDATED else "added to"
        return CartActionResult(
            success=True,
            message=f"{product.name} {verb} cart",
            cart=CartOut.model_validate(cart),
        )

    def remove_item_from_cart(self, owner: OwnerKey, product_id: str) -> CartActionResult:
        try:
            product = self.products.get_product(product_id)
            if not product:
                raise NotFound("Could not find the product")

            with self.lock_service.hold(cart_lock_key(owner.lookup_key)):
                cart = self.repo.get_cart_for_owner(owner)
                if not cart:
                    raise NotFound("Could not find the cart")

                items = remove_line_item(self._items_of(cart), product_id)
                self._write(cart, items)
        except _USER_ERRORS as e:
            return self._failure("remove", owner, e)

        logger.info("cart.item_removed", cart_id=cart.id, product_id=product_id, owner=owner.lookup_key)
        self.revalidation.revalidate_product(product.slug)

        return CartActionResult(
            success=True,
            message=f"{product.name} was removed from cart",
            cart=CartOut.model_validate(cart),
        )

    def delete_cart(self, owner: OwnerKey) -> bool:
        """Drop the owner's cart (sign-out). Returns whether there was one."""
        with self.lock_service.hold(cart_lock_key(owner.lookup_key)):
            cart = self.repo.get_cart_for_owner(owner)
            if not cart:
                return False
            try:
                self.repo.delete_cart(cart)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info("cart.deleted", cart_id=cart.id, owner=owner.lookup_key)
        return True

    # internals
    @staticmethod
    def _items_of(cart: CartModel) -> Tuple[CartItem, ...]:
        return tuple(CartItem.model_validate(i) for i in cart.items)

    @staticmethod
    def _expiry() -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=CART_TTL_SECONDS)

    def _add(self, owner: OwnerKey, item: CartItem, product: ProductModel) -> Tuple[CartModel, MergeOutcome]:
        # the line snapshots the catalogue's name, slug and price, not the client's
        snapshot = item.model_copy(update={"name": product.name, "slug": product.slug, "price": product.price})

        cart = self.repo.get_cart_for_owner(owner)
        if cart is None and owner.is_authenticated:
            cart = self.repo.get_cart_by_session(owner.session_cart_id)

        if cart is None:
            items, outcome = merge_line_item((), snapshot, product.stock)
            return self._create(owner, items), outcome

        items, outcome = merge_line_item(self._items_of(cart), snapshot, product.stock)
        self._write(cart, items, claim_for=owner.user_id if cart.user_id is None else None)
        return cart, outcome

    def _create(self, owner: OwnerKey, items: Sequence[CartItem]) -> CartModel:
        cart = CartModel(
            user_id=owner.user_id,
            session_cart_id=owner.session_cart_id,
            version=1,
            expires_at=self._expiry(),
            **calc_price(items).as_dict(),
        )
        try:
            self.repo.create_cart(cart)
            self.repo.replace_items(cart, items)
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another request") from e
        except Exception:
            self.repo.rollback()
            logger.exception("cart.create_failed", owner=owner.lookup_key)
            raise
        return self.repo.refresh(cart)

    def _write(self, cart: CartModel, items: Sequence[CartItem], claim_for: str | None = None) -> CartModel:
        new_data = {
            "version": cart.version + 1,
            "expires_at": self._expiry(),
            **calc_price(items).as_dict(),
        }
        if claim_for:
            # a signed-in visitor takes over the anonymous cart of their session
            new_data["user_id"] = claim_for

        try:
            rowcount = self.repo.update_cart_version(
                cart_id=cart.id,
                old_version=cart.version,
                new_data=new_data,
            )
            # UPDATE ... WHERE id = :id AND version = :old matched nothing
            if rowcount == 0:
                raise ConflictError("Cart was modified by another request")

            self.repo.replace_items(cart, items)
            self.repo.commit()
        except StorefrontError:
            self.repo.rollback()
            raise
        except Exception:
            self.repo.rollback()
            logger.exception("cart.write_failed", cart_id=cart.id)
            raise

        return self.repo.refresh(cart)

    @staticmethod
    def _failure(action: str, owner: OwnerKey, exc: Exception) -> CartActionResult:
        kind = error_kind(exc)
        message = format_error(exc)
        logger.warning(f"cart.{action}_failed", error=kind, reason=message, owner=owner.lookup_key)
        return CartActionResult(success=False, message=message, error=kind)
