# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import action_response, get_revalidation_service, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import ValidationError
from storefront.domain.schemas import ActionResult, CategoryCount, ProductOut, ProductPage
from storefront.services.product_service import ProductService
from storefront.services.revalidation_service import RevalidationService
from storefront.utils.settings import PAGE_SIZE

router = APIRouter(prefix="/products", tags=["products"])


def get_service(
    db: Session = Depends(get_db),
    revalidation_service: RevalidationService = Depends(get_revalidation_service),
) -> ProductService:
    return ProductService(db=db, revalidation_service=revalidation_service)


@router.get("", response_model=ProductPage)
def list_products(
    query: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=PAGE_SIZE, ge=1, le=100),
    category: str | None = Query(default=None),
    price: str | None = Query(default=None),
    rating: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    svc: ProductService = Depends(get_service),
):
    try:
        return svc.get_all_products(
            query=query,
            page=page,
            limit=limit,
            category=category,
            price=price,
            rating=rating,
            sort=sort,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.get("/latest", response_model=List[ProductOut])
def latest_products(svc: ProductService = Depends(get_service)):
    return svc.get_latest_products()


@router.get("/featured", response_model=List[ProductOut])
def featured_products(svc: ProductService = Depends(get_service)):
    return svc.get_featured_products()


@router.get("/categories", response_model=List[CategoryCount])
def categories(svc: ProductService = Depends(get_service)):
    return svc.get_all_categories()


@router.get("/slug/{slug}", response_model=ProductOut)
def product_by_slug(slug: str, svc: ProductService = Depends(get_service)):
    product = svc.get_product_by_slug(slug)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/{product_id}", response_model=ProductOut)
def product_by_id(product_id: str, svc: ProductService = Depends(get_service)):
    product = svc.get_product_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("", response_model=ActionResult, dependencies=[Depends(require_admin)])
def create_product(payload: dict = Body(...), svc: ProductService = Depends(get_service)):
    return action_response(svc.create_product(payload), success_status=201)


@router.put("/{product_id}", response_model=ActionResult, dependencies=[Depends(require_admin)])
def update_product(
    product_id: str,
    payload: dict = Body(...),
    svc: ProductService = Depends(get_service),
):
    return action_response(svc.update_product({**payload, "id": product_id}))


@router.delete("/{product_id}", response_model=ActionResult, dependencies=[Depends(require_admin)])
def delete_product(product_id: str, svc: ProductService = Depends(get_service)):
    return action_response(svc.delete_product(product_id))
