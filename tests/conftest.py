"""Shared fixtures: an in-memory MongoDB and a TestClient wired to it."""

from __future__ import annotations

from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from database import get_db
from main import app
from tests.utils import make_product


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def client(db):
    """TestClient whose routes use the in-memory database."""
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(db):
    """45 products across two categories with prices out of id order."""
    products = []
    for n in range(1, 46):
        category = "phones" if n % 3 == 0 else "laptops"
        # prices collide in pairs so the id tie-breaker matters
        products.append(make_product(n, category=category, price=float((n * 7) % 23)))
    db["products"].insert_many(products)
    return products


@pytest.fixture
def unreachable_client():
    """TestClient whose database raises on every collection call."""
    broken = MagicMock()
    collection = broken.__getitem__.return_value
    for method in ("find", "find_one", "insert_one", "update_one", "delete_one", "count_documents"):
        getattr(collection, method).side_effect = ServerSelectionTimeoutError("no servers")
    app.dependency_overrides[get_db] = lambda: broken
    yield TestClient(app)
    app.dependency_overrides.clear()
