# storefront/api/routers/reviews.py
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import (
    action_response,
    get_lock_service,
    get_revalidation_service,
    get_user_id,
)
from storefront.data.database import get_db
from storefront.domain.errors import Unauthorized
from storefront.domain.schemas import ActionResult, ReviewOut
from storefront.services.lock_service import LockService
from storefront.services.review_service import ReviewService
from storefront.services.revalidation_service import RevalidationService

router = APIRouter(tags=["reviews"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    revalidation_service: RevalidationService = Depends(get_revalidation_service),
) -> ReviewService:
    return ReviewService(
        db=db,
        lock_service=lock_service,
        revalidation_service=revalidation_service,
    )


@router.get("/products/{product_id}/reviews", response_model=List[ReviewOut])
def product_reviews(product_id: str, svc: ReviewService = Depends(get_service)):
    return svc.get_reviews(product_id)


@router.get("/products/{product_id}/reviews/mine", response_model=ReviewOut)
def my_review(
    product_id: str,
    user_id: str | None = Depends(get_user_id),
    svc: ReviewService = Depends(get_service),
):
    try:
        review = svc.get_review_by_product_id(user_id, product_id)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=e.message)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.post("/reviews", response_model=ActionResult)
def upsert_review(
    payload: dict = Body(...),
    user_id: str | None = Depends(get_user_id),
    svc: ReviewService = Depends(get_service),
):
    return action_response(svc.upsert_review(user_id, payload))
