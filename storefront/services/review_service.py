# storefront/services/review_service.py
from typing import List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.review import ReviewModel
from storefront.domain.errors import (
    ConflictError,
    NotFound,
    StorefrontError,
    Unauthorized,
    error_kind,
    format_error,
)
from storefront.domain.money import ZERO, round2
from storefront.domain.schemas import ActionResult, ReviewIn, ReviewOut
from storefront.repos.product_repo import ProductRepo
from storefront.repos.review_repo import ReviewRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService, product_reviews_lock_key
from storefront.services.revalidation_service import RevalidationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def recompute_product_rating(reviews: ReviewRepo, products: ProductRepo, product: ProductModel) -> None:
    """Write the average rating and review count of the product's current reviews.

    Runs inside the caller's transaction; the caller commits.
    """
    avg, count = reviews.rating_summary(product.id)
    rowcount = products.update_product_version(
        product_id=product.id,
        old_version=product.version,
        new_data={
            "rating": round2(avg) if avg is not None else ZERO,
            "num_reviews": count,
            "version": product.version + 1,
        },
    )
    if rowcount == 0:
        raise ConflictError("Product was modified by another request")


def _to_out(review: ReviewModel) -> ReviewOut:
    out = ReviewOut.model_validate(review)
    if review.user is not None:
        out.user_name = review.user.name
    return out


class ReviewService:
    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        revalidation_service: RevalidationService,
    ):
        self.db = db
        self.repo = ReviewRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)
        self.lock_service = lock_service
        self.revalidation = revalidation_service

    def get_reviews(self, product_id: str) -> List[ReviewOut]:
        return [_to_out(r) for r in self.repo.list_for_product(product_id)]

    def get_review_by_product_id(self, user_id: str | None, product_id: str) -> ReviewOut | None:
        if not user_id:
            raise Unauthorized("User is not authenticated")
        review = self.repo.get_by_product_and_user(product_id, user_id)
        return _to_out(review) if review else None

    def upsert_review(self, user_id: str | None, data) -> ActionResult:
        """
        Create the caller's review of a product or update the existing one,
        then recompute the product's rating and review count from all its reviews.
        """
        try:
            if not user_id:
                raise Unauthorized("You must be logged in to write a review")

            payload = data if isinstance(data, ReviewIn) else ReviewIn.model_validate(data)

            with self.lock_service.hold(product_reviews_lock_key(payload.product_id)):
                product = self._upsert(user_id, payload)
        except (StorefrontError, PydanticValidationError) as e:
            kind = error_kind(e)
            message = format_error(e)
            logger.warning("review.upsert_failed", error=kind, reason=message, user_id=user_id)
            return ActionResult(success=False, message=message, error=kind)

        logger.info(
            "review.upserted",
            product_id=product.id,
            user_id=user_id,
            rating=str(product.rating),
            num_reviews=product.num_reviews,
        )
        self.revalidation.revalidate_product(product.slug)
        return ActionResult(success=True, message="Reviews updated successfully")

    def _upsert(self, user_id: str, payload: ReviewIn):
        try:
            if not self.users.get_user(user_id):
                raise NotFound("User not found")

            product = self.products.get_product(payload.product_id)
            if not product:
                raise NotFound("Product not found")

            review = self.repo.get_by_product_and_user(product.id, user_id)
            if review:
                review.title = payload.title
                review.description = payload.description
                review.rating = payload.rating
                self.db.flush()
            else:
                self.repo.add(
                    ReviewModel(
                        product_id=product.id,
                        user_id=user_id,
                        title=payload.title,
                        description=payload.description,
                        rating=payload.rating,
                    )
                )

            recompute_product_rating(self.repo, self.products, product)
            self.products.commit()
        except IntegrityError as e:
            # a second review by the same author slipped in first
            self.products.rollback()
            raise ConflictError("Review was modified by another request") from e
        except StorefrontError:
            self.products.rollback()
            raise
        except Exception:
            self.products.rollback()
            logger.exception("review.write_failed", product_id=payload.product_id)
            raise

        return self.products.refresh(product)
