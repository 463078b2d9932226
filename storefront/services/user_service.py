# storefront/services/user_service.py
import math
from typing import List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.domain.errors import (
    ConflictError,
    NotFound,
    StorefrontError,
    Unauthorized,
    ValidationError,
    error_kind,
    format_error,
)
from storefront.domain.schemas import (
    ActionResult,
    PaymentMethodIn,
    ProfileIn,
    ShippingAddressIn,
    UserCreate,
    UserPage,
    UserRead,
    UserUpdateIn,
)
from storefront.repos.product_repo import ProductRepo
from storefront.repos.review_repo import ReviewRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.revalidation_service import RevalidationService
from storefront.services.review_service import recompute_product_rating
from storefront.utils.logging import get_logger
from storefront.utils.settings import PAGE_SIZE

logger = get_logger(__name__)

ADMIN_USERS_PATH = "/admin/users"
ROLES = ("user", "admin")

_USER_ERRORS = (StorefrontError, PydanticValidationError)


class UserService:
    def __init__(self, db: Session, revalidation_service: RevalidationService | None = None):
        self.repo = UserRepo(db)
        self.reviews = ReviewRepo(db)
        self.products = ProductRepo(db)
        self.revalidation = revalidation_service

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        user = UserModel(id=payload.id, name=payload.name, email=payload.email, role=payload.role)
        try:
            created = self.repo.create_user(user)
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError("A user with this email already exists") from e
        logger.info("user.created", user_id=created.id)
        return UserRead.model_validate(created)

    def get_user_by_id(self, user_id: str) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return UserRead.model_validate(user)

    # settings of the signed-in user
    def _current_user(self, user_id: str | None) -> UserModel:
        if not user_id:
            raise Unauthorized("User is not authenticated")
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_profile(self, user_id: str | None, data) -> ActionResult:
        try:
            user = self._current_user(user_id)
            profile = data if isinstance(data, ProfileIn) else ProfileIn.model_validate(data)
            # the email is part of the form but stays as registered
            user.name = profile.name
            self.repo.save(user)
        except _USER_ERRORS as e:
            return self._failure("update_profile", e)

        logger.info("user.profile_updated", user_id=user_id)
        return ActionResult(success=True, message="User updated successfully")

    def update_user_address(self, user_id: str | None, data) -> ActionResult:
        try:
            user = self._current_user(user_id)
            address = data if isinstance(data, ShippingAddressIn) else ShippingAddressIn.model_validate(data)
            user.address = address.model_dump()
            self.repo.save(user)
        except _USER_ERRORS as e:
            return self._failure("update_address", e)

        logger.info("user.address_updated", user_id=user_id)
        return ActionResult(success=True, message="User updated successfully")

    def update_user_payment_method(self, user_id: str | None, data) -> ActionResult:
        try:
            user = self._current_user(user_id)
            method = data if isinstance(data, PaymentMethodIn) else PaymentMethodIn.model_validate(data)
            user.payment_method = method.type
            self.repo.save(user)
        except _USER_ERRORS as e:
            return self._failure("update_payment_method", e)

        logger.info("user.payment_method_updated", user_id=user_id, payment_method=method.type)
        return ActionResult(success=True, message="User updated successfully")

    # admin
    def get_all_users(self, *, page: int = 1, query: str | None = None, limit: int = PAGE_SIZE) -> UserPage:
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")
        if query == "all":
            query = None
        users = self.repo.list_users(query=query, offset=(page - 1) * limit, limit=limit)
        return UserPage(
            data=[UserRead.model_validate(u) for u in users],
            total_pages=math.ceil(self.repo.count() / limit),
        )

    def update_user(self, data) -> ActionResult:
        try:
            payload = data if isinstance(data, UserUpdateIn) else UserUpdateIn.model_validate(data)
            user = self.repo.get_user(payload.id)
            if not user:
                raise NotFound("User not found")
            if payload.role is not None:
                if payload.role not in ROLES:
                    raise ValidationError("Invalid role")
                user.role = payload.role
            user.name = payload.name
            self.repo.save(user)
        except _USER_ERRORS as e:
            return self._failure("update", e)

        logger.info("user.updated", user_id=payload.id, role=user.role)
        self._revalidate_admin()
        return ActionResult(success=True, message="User was successfully updated")

    def delete_user(self, user_id: str) -> ActionResult:
        try:
            user = self.repo.get_user(user_id)
            if not user:
                raise NotFound("User not found")
            products = self._delete_with_reviews(user)
        except StorefrontError as e:
            return self._failure("delete", e)

        logger.info("user.deleted", user_id=user_id, reviewed_products=len(products))
        self._revalidate_admin()
        if self.revalidation is not None:
            for product in products:
                self.revalidation.revalidate_product(product.slug)
        return ActionResult(success=True, message="User was successfully deleted")

    def _delete_with_reviews(self, user: UserModel) -> List[ProductModel]:
        """Delete the user and their reviews; the reviewed products get fresh ratings."""
        try:
            product_ids = self.reviews.product_ids_for_user(user.id)
            self.reviews.delete_for_user(user.id)
            self.repo.delete_user(user)

            products = [p for p in map(self.products.get_product, product_ids) if p is not None]
            for product in products:
                recompute_product_rating(self.reviews, self.products, product)
            self.repo.commit()
        except StorefrontError:
            self.repo.rollback()
            raise
        except Exception:
            self.repo.rollback()
            logger.exception("user.delete_failed", user_id=user.id)
            raise
        return products

    def _revalidate_admin(self) -> None:
        if self.revalidation is not None:
            self.revalidation.revalidate_path(ADMIN_USERS_PATH)

    @staticmethod
    def _failure(action: str, exc: Exception) -> ActionResult:
        kind = error_kind(exc)
        message = format_error(exc)
        logger.warning(f"user.{action}_failed", error=kind, reason=message)
        return ActionResult(success=False, message=message, error=kind)
