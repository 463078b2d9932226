# storefront/api/routers/carts.py
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import (
    action_response,
    get_lock_service,
    get_owner_key,
    get_revalidation_service,
)
from storefront.data.database import get_db
from storefront.domain.errors import ConflictError
from storefront.domain.schemas import CartActionResult, CartOut, OwnerKey
from storefront.services.cart_service import CartService
from storefront.services.lock_service import LockService
from storefront.services.revalidation_service import RevalidationService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    revalidation_service: RevalidationService = Depends(get_revalidation_service),
) -> CartService:
    return CartService(
        db=db,
        lock_service=lock_service,
        revalidation_service=revalidation_service,
    )


@router.get("/me", response_model=CartOut)
def get_my_cart(
    owner: OwnerKey = Depends(get_owner_key),
    svc: CartService = Depends(get_service),
):
    cart = svc.get_cart(owner)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    return cart


@router.post("/me/items", response_model=CartActionResult)
def add_item(
    payload: dict = Body(...),
    owner: OwnerKey = Depends(get_owner_key),
    svc: CartService = Depends(get_service),
):
    # validated by the service so bad input comes back as an ActionResult
    return action_response(svc.add_item_to_cart(owner, payload))


@router.delete("/me/items/{product_id}", response_model=CartActionResult)
def remove_item(
    product_id: str,
    owner: OwnerKey = Depends(get_owner_key),
    svc: CartService = Depends(get_service),
):
    return action_response(svc.remove_item_from_cart(owner, product_id))


@router.delete("/me", status_code=204)
def delete_my_cart(
    owner: OwnerKey = Depends(get_owner_key),
    svc: CartService = Depends(get_service),
):
    try:
        deleted = svc.delete_cart(owner)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=404, detail="Cart not found")
