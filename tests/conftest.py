"""Shared fixtures: in-memory SQLite database, in-process lock and
revalidation doubles, and a FastAPI TestClient wired to them."""

import os

# settings are read at import time, so the environment is set up first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["REVALIDATE_URL"] = ""

import uuid
from contextlib import contextmanager
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import ProductModel, UserModel
from storefront.domain.errors import ConflictError


class FakeLockService:
    """Stands in for the redis-backed LockService inside one process."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def hold(self, key, ttl=None):
        if key in self.held:
            raise ConflictError("Another update is in progress, please try again")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield key
        finally:
            self.held.discard(key)


class RecordingRevalidator:
    def __init__(self):
        self.paths = []

    def revalidate_path(self, path):
        self.paths.append(path)

    def revalidate_product(self, slug):
        self.revalidate_path(f"/product/{slug}")


@pytest.fixture(autouse=True)
def _tables():
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def revalidator():
    return RecordingRevalidator()


@pytest.fixture
def make_product(db):
    def _make(**overrides):
        suffix = uuid.uuid4().hex[:8]
        values = {
            "name": f"Polo Shirt {suffix}",
            "slug": f"polo-shirt-{suffix}",
            "category": "Men's Shirts",
            "brand": "Polo",
            "description": "Classic cotton polo shirt",
            "images": ["/images/p1.jpg"],
            "price": Decimal("19.99"),
            "stock": 5,
        }
        values.update(overrides)
        product = ProductModel(**values)
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_user(db):
    def _make(**overrides):
        values = {"id": str(uuid.uuid4()), "name": "Jane Doe", "role": "user"}
        values.update(overrides)
        user = UserModel(**values)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def client(lock_service, revalidator):
    from storefront.api import create_app
    from storefront.api.deps import get_lock_service, get_revalidation_service

    app = create_app()

    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_revalidation_service] = lambda: revalidator

    with TestClient(app) as c:
        yield c
