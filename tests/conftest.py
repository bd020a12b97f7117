"""Pytest fixtures for the Onyxia backend tests."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import ensure_indexes

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "s3cret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        environment="test",
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def db():
    """An in-memory database with the production indexes."""
    database = mongomock.MongoClient()["onyxia_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db, settings):
    from main import app

    app.state.db = db
    app.state.settings = settings
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    response = client.post(
        "/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return client


def make_cart(**overrides):
    cart = {
        "firstName": "Amina",
        "lastName": "Benali",
        "phone": "0550123456",
        "address": "12 Rue Didouche Mourad",
        "city": "Algiers",
        "deliveryMethod": "home",
        "items": [
            {
                "productId": "64b7f0c2a1b2c3d4e5f60718",
                "productName": "Leather bag",
                "productImage": "/uploads/bag.jpg",
                "price": 1000,
                "quantity": 2,
            },
            {
                "productId": "64b7f0c2a1b2c3d4e5f60719",
                "productName": "Scarf",
                "productImage": "/uploads/scarf.jpg",
                "price": 250,
                "quantity": 1,
            },
        ],
    }
    cart.update(overrides)
    return cart
