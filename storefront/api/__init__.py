# storefront/api/__init__.py
import uuid

from fastapi import FastAPI, Request

from storefront.api.routers import carts, health, products, reviews, users
from storefront.utils.logging import add_context, clear_context


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        clear_context()
        add_context(
            request_id=request.headers.get("X-Request-Id") or uuid.uuid4().hex,
            method=request.method,
            path=request.url.path,
        )
        try:
            return await call_next(request)
        finally:
            clear_context()

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(products.router)
    app.include_router(reviews.router)
    app.include_router(users.router)

    return app
