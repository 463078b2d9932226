# storefront/repos/product_repo.py
from typing import List, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id, populate_existing=True)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.execute(select(ProductModel).where(ProductModel.slug == slug)).scalar_one_or_none()

    def latest(self, limit: int) -> List[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def featured(self, limit: int) -> List[ProductModel]:
        stmt = (
            select(ProductModel)
            .where(ProductModel.is_featured.is_(True))
            .order_by(ProductModel.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def search(
        self,
        *,
        query: str | None = None,
        category: str | None = None,
        price_range: Tuple[float, float] | None = None,
        min_rating: float | None = None,
        sort: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> List[ProductModel]:
        stmt = select(ProductModel)

        if query:
            # % and _ in the search text are literals, not wildcards
            needle = query.lower()
            stmt = stmt.where(
                or_(
                    func.lower(ProductModel.name).contains(needle, autoescape=True),
                    func.lower(ProductModel.description).contains(needle, autoescape=True),
                )
            )
        if category:
            stmt = stmt.where(ProductModel.category == category)
        if price_range:
            low, high = price_range
            stmt = stmt.where(ProductModel.price >= low, ProductModel.price <= high)
        if min_rating is not None:
            stmt = stmt.where(ProductModel.rating >= min_rating)

        order_by = {
            "lowest": ProductModel.price.asc(),
            "highest": ProductModel.price.desc(),
            "rating": ProductModel.rating.desc(),
        }.get(sort, ProductModel.created_at.desc())

        stmt = stmt.order_by(order_by).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(ProductModel)).scalar_one()

    def categories(self) -> List[Tuple[str, int]]:
        stmt = (
            select(ProductModel.category, func.count(ProductModel.id))
            .group_by(ProductModel.category)
            .order_by(ProductModel.category)
        )
        return [(category, count) for category, count in self.db.execute(stmt)]

    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete(self, product: ProductModel) -> None:
        self.db.delete(product)

    def update_product_version(self, product_id: str, old_version: int, new_data: dict) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, product: ProductModel) -> ProductModel:
        self.db.refresh(product)
        return product

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
