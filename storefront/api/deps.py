# storefront/api/deps.py
from fastapi import Header, HTTPException
from fastapi.responses import JSONResponse

from storefront.domain.schemas import ActionResult, OwnerKey
from storefront.services.lock_service import LockService
from storefront.services.revalidation_service import RevalidationService

# error kind -> HTTP status of a failed ActionResult
STATUS_BY_ERROR = {
    "NotFound": 404,
    "OutOfStock": 409,
    "ConflictError": 409,
    "Unauthorized": 401,
    "ValidationError": 422,
}

_lock_service: LockService | None = None


def get_lock_service() -> LockService:
    # one redis connection pool per process
    global _lock_service
    if _lock_service is None:
        _lock_service = LockService()
    return _lock_service


def get_revalidation_service() -> RevalidationService:
    return RevalidationService()


def get_owner_key(
    x_session_cart_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> OwnerKey:
    if not x_session_cart_id:
        raise HTTPException(status_code=400, detail="Session cart not found")
    return OwnerKey(session_cart_id=x_session_cart_id, user_id=x_user_id or None)


def get_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    return x_user_id or None


def require_admin(x_user_role: str | None = Header(default=None)) -> None:
    if x_user_role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")


def action_response(result: ActionResult, success_status: int = 200) -> JSONResponse:
    if result.success:
        status = success_status
    else:
        status = STATUS_BY_ERROR.get(result.error, 400)
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))
