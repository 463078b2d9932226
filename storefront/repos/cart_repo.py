# storefront/repos/cart_repo.py
import uuid
from datetime import datetime
from typing import Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.schemas import CartItem, OwnerKey


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        # always re-read: a cart may have changed since this session last saw it
        return (
            select(CartModel)
            .options(selectinload(CartModel.items))
            .execution_options(populate_existing=True)
        )

    def get_cart(self, cart_id: str) -> CartModel | None:
        return self.db.execute(self._query().where(CartModel.id == cart_id)).scalar_one_or_none()

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        return self.db.execute(
            self._query().where(CartModel.user_id == user_id).order_by(CartModel.created_at.desc())
        ).scalars().first()

    def get_cart_by_session(self, session_cart_id: str) -> CartModel | None:
        """Anonymous cart of a session; carts owned by a user are never returned."""
        return self.db.execute(
            self._query()
            .where(CartModel.session_cart_id == session_cart_id, CartModel.user_id.is_(None))
            .order_by(CartModel.created_at.desc())
        ).scalars().first()

    def get_cart_for_owner(self, owner: OwnerKey) -> CartModel | None:
        #user id wins over the session cookie
        if owner.user_id:
            return self.get_cart_by_user(owner.user_id)
        return self.get_cart_by_session(owner.session_cart_id)

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def replace_items(self, cart: CartModel, items: Iterable[CartItem]) -> None:
        # rows are rewritten with plain statements so the old ones are gone
        # before the new ones hit the unique (cart_id, product_id) index
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart.id)
            .execution_options(synchronize_session=False)
        )
        rows = [
            {
                "id": str(uuid.uuid4()),
                "cart_id": cart.id,
                "position": position,
                "product_id": item.product_id,
                "name": item.name,
                "slug": item.slug,
                "image": item.image,
                "price": item.price,
                "qty": item.qty,
            }
            for position, item in enumerate(items)
        ]
        if rows:
            self.db.execute(insert(CartItemModel), rows)
        self.db.expire(cart, ["items"])

    def update_cart_version(self, cart_id: str, old_version: int, new_data: dict) -> int:
        """UPDATE carts SET ... WHERE id = :cart_id AND version = :old_version"""
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_cart(self, cart: CartModel) -> None:
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart.id)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(CartModel).where(CartModel.id == cart.id).execution_options(synchronize_session=False)
        )

    def delete_expired_anonymous(self, now: datetime) -> int:
        expired = select(CartModel.id).where(CartModel.user_id.is_(None), CartModel.expires_at < now)
        cart_ids = list(self.db.execute(expired).scalars())
        if not cart_ids:
            return 0
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id.in_(cart_ids))
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(CartModel).where(CartModel.id.in_(cart_ids)).execution_options(synchronize_session=False)
        )
        return len(cart_ids)

    def refresh(self, cart: CartModel) -> CartModel:
        self.db.refresh(cart)
        return cart

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
