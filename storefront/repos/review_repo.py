# storefront/repos/review_repo.py
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from storefront.data.models.review import ReviewModel


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_product_and_user(self, product_id: str, user_id: str) -> ReviewModel | None:
        return self.db.execute(
            select(ReviewModel).where(ReviewModel.product_id == product_id, ReviewModel.user_id == user_id)
        ).scalar_one_or_none()

    def list_for_product(self, product_id: str) -> List[ReviewModel]:
        stmt = (
            select(ReviewModel)
            .options(joinedload(ReviewModel.user))
            .where(ReviewModel.product_id == product_id)
            .order_by(ReviewModel.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars())

    def add(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.flush()
        return review

    def rating_summary(self, product_id: str) -> Tuple[Decimal | None, int]:
        """(average rating, review count) as seen inside the current transaction."""
        avg, count = self.db.execute(
            select(func.avg(ReviewModel.rating), func.count(ReviewModel.id)).where(
                ReviewModel.product_id == product_id
            )
        ).one()
        return avg, count

    def product_ids_for_user(self, user_id: str) -> List[str]:
        stmt = select(ReviewModel.product_id).where(ReviewModel.user_id == user_id).distinct()
        return list(self.db.execute(stmt).scalars())

    def delete_for_user(self, user_id: str) -> int:
        result = self.db.execute(
            delete(ReviewModel)
            .where(ReviewModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
