# storefront/api/routers/users.py
from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import action_response, get_revalidation_service, get_user_id, require_admin
from storefront.data.database import get_db
from storefront.domain.errors import ConflictError, NotFound
from storefront.domain.schemas import ActionResult, UserCreate, UserPage, UserRead
from storefront.services.revalidation_service import RevalidationService
from storefront.services.user_service import UserService
from storefront.utils.settings import PAGE_SIZE

router = APIRouter(prefix="/users", tags=["users"])


def get_service(
    db: Session = Depends(get_db),
    revalidation_service: RevalidationService = Depends(get_revalidation_service),
) -> UserService:
    return UserService(db=db, revalidation_service=revalidation_service)


@router.post("", response_model=UserRead)
def create_user(payload: UserCreate, svc: UserService = Depends(get_service)):
    try:
        return svc.create_user(payload)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.get("", response_model=UserPage, dependencies=[Depends(require_admin)])
def list_users(
    page: int = Query(default=1, ge=1),
    query: str | None = Query(default=None),
    limit: int = Query(default=PAGE_SIZE, ge=1, le=100),
    svc: UserService = Depends(get_service),
):
    return svc.get_all_users(page=page, query=query, limit=limit)


@router.put("/me/profile", response_model=ActionResult)
def update_profile(
    payload: dict = Body(...),
    user_id: str | None = Depends(get_user_id),
    svc: UserService = Depends(get_service),
):
    return action_response(svc.update_profile(user_id, payload))


@router.put("/me/address", response_model=ActionResult)
def update_address(
    payload: dict = Body(...),
    user_id: str | None = Depends(get_user_id),
    svc: UserService = Depends(get_service),
):
    return action_response(svc.update_user_address(user_id, payload))


@router.put("/me/payment-method", response_model=ActionResult)
def update_payment_method(
    payload: dict = Body(...),
    user_id: str | None = Depends(get_user_id),
    svc: UserService = Depends(get_service),
):
    return action_response(svc.update_user_payment_method(user_id, payload))


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: str, svc: UserService = Depends(get_service)):
    try:
        return svc.get_user_by_id(user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.put("/{user_id}", response_model=ActionResult, dependencies=[Depends(require_admin)])
def update_user(
    user_id: str,
    payload: dict = Body(...),
    svc: UserService = Depends(get_service),
):
    return action_response(svc.update_user({**payload, "id": user_id}))


@router.delete("/{user_id}", response_model=ActionResult, dependencies=[Depends(require_admin)])
def delete_user(user_id: str, svc: UserService = Depends(get_service)):
    return action_response(svc.delete_user(user_id))
