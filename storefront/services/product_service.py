# storefront/services/product_service.py
import math
from typing import List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import (
    ConflictError,
    NotFound,
    StorefrontError,
    ValidationError,
    error_kind,
    format_error,
)
from storefront.domain.money import to_decimal
from storefront.domain.schemas import (
    ActionResult,
    CategoryCount,
    ProductIn,
    ProductOut,
    ProductPage,
    ProductUpdateIn,
)
from storefront.repos.product_repo import ProductRepo
from storefront.services.revalidation_service import RevalidationService
from storefront.utils.logging import get_logger
from storefront.utils.settings import FEATURED_PRODUCTS_LIMIT, LATEST_PRODUCTS_LIMIT, PAGE_SIZE

logger = get_logger(__name__)

ADMIN_PRODUCTS_PATH = "/admin/products"


def _filter(value: str | None) -> str | None:
    # "all" is how the storefront's filter links say "no filter"
    if not value or value == "all":
        return None
    return value


def _price_range(price: str | None):
    price = _filter(price)
    if price is None:
        return None
    low, sep, high = price.partition("-")
    if not sep:
        raise ValidationError(f"Invalid price range: {price}")
    return to_decimal(low), to_decimal(high)


class ProductService:
    def __init__(self, db: Session, revalidation_service: RevalidationService):
        self.repo = ProductRepo(db)
        self.revalidation = revalidation_service

    # queries
    def get_latest_products(self) -> List[ProductOut]:
        return [ProductOut.model_validate(p) for p in self.repo.latest(LATEST_PRODUCTS_LIMIT)]

    def get_featured_products(self) -> List[ProductOut]:
        return [ProductOut.model_validate(p) for p in self.repo.featured(FEATURED_PRODUCTS_LIMIT)]

    def get_product_by_slug(self, slug: str) -> ProductOut | None:
        product = self.repo.get_by_slug(slug)
        return ProductOut.model_validate(product) if product else None

    def get_product_by_id(self, product_id: str) -> ProductOut | None:
        product = self.repo.get_product(product_id)
        return ProductOut.model_validate(product) if product else None

    def get_all_products(
        self,
        *,
        query: str | None = None,
        page: int = 1,
        limit: int = PAGE_SIZE,
        category: str | None = None,
        price: str | None = None,
        rating: str | None = None,
        sort: str | None = None,
    ) -> ProductPage:
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")

        min_rating = _filter(rating)
        products = self.repo.search(
            query=_filter(query),
            category=_filter(category),
            price_range=_price_range(price),
            min_rating=to_decimal(min_rating) if min_rating is not None else None,
            sort=sort,
            offset=(page - 1) * limit,
            limit=limit,
        )
        # page count is over the whole catalogue, not the filtered set
        total = self.repo.count()
        return ProductPage(
            data=[ProductOut.model_validate(p) for p in products],
            total_pages=math.ceil(total / limit),
        )

    def get_all_categories(self) -> List[CategoryCount]:
        return [CategoryCount(category=c, count=n) for c, n in self.repo.categories()]

    # admin commands
    def create_product(self, data) -> ActionResult:
        try:
            payload = data if isinstance(data, ProductIn) else ProductIn.model_validate(data)
            product = ProductModel(**payload.model_dump())
            try:
                self.repo.add(product)
                self.repo.commit()
            except IntegrityError as e:
                self.repo.rollback()
                raise ConflictError("A product with this slug already exists") from e
        except (StorefrontError, PydanticValidationError) as e:
            return self._failure("create", e)

        logger.info("product.created", product_id=product.id, slug=product.slug)
        self.revalidation.revalidate_path(ADMIN_PRODUCTS_PATH)
        return ActionResult(success=True, message="Product was successfully created")

    def update_product(self, data) -> ActionResult:
        try:
            payload = data if isinstance(data, ProductUpdateIn) else ProductUpdateIn.model_validate(data)
            product = self.repo.get_product(payload.id)
            if not product:
                raise NotFound("Product not found")

            new_data = payload.model_dump(exclude={"id"})
            new_data["version"] = product.version + 1
            try:
                rowcount = self.repo.update_product_version(
                    product_id=product.id,
                    old_version=product.version,
                    new_data=new_data,
                )
                if rowcount == 0:
                    raise ConflictError("Product was modified by another request")
                self.repo.commit()
            except IntegrityError as e:
                self.repo.rollback()
                raise ConflictError("A product with this slug already exists") from e
            except Exception:
                self.repo.rollback()
                raise
        except (StorefrontError, PydanticValidationError) as e:
            return self._failure("update", e)

        logger.info("product.updated", product_id=payload.id)
        self.revalidation.revalidate_path(ADMIN_PRODUCTS_PATH)
        self.revalidation.revalidate_product(payload.slug)
        return ActionResult(success=True, message="Product was successfully updated")

    def delete_product(self, product_id: str) -> ActionResult:
        try:
            product = self.repo.get_product(product_id)
            if not product:
                raise NotFound("Product not found")
            try:
                self.repo.delete(product)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise
        except StorefrontError as e:
            return self._failure("delete", e)

        logger.info("product.deleted", product_id=product_id)
        self.revalidation.revalidate_path(ADMIN_PRODUCTS_PATH)
        return ActionResult(success=True, message="Product was successfully deleted")

    @staticmethod
    def _failure(action: str, exc: Exception) -> ActionResult:
        kind = error_kind(exc)
        message = format_error(exc)
        logger.warning(f"product.{action}_failed", error=kind, reason=message)
        return ActionResult(success=False, message=message, error=kind)
