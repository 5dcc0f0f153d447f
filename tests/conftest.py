import mongomock
import pytest
from pymongo import MongoClient

from storefront.core.security import hash_password
from storefront.models.schemas import ShippingAddress
from storefront.services.registry import build_services


@pytest.fixture
def db():
    return mongomock.MongoClient()["storefront_test"]


@pytest.fixture
def down_db():
    # nothing listens on port 1: every operation fails server selection
    client = MongoClient("mongodb://127.0.0.1:1/", serverSelectionTimeoutMS=100, connect=False)
    yield client["storefront_test"]
    client.close()


@pytest.fixture
def users_path(tmp_path):
    return tmp_path / "fallback_users.json"


@pytest.fixture
def services(db, users_path):
    return build_services(db=db, users_path=users_path)


@pytest.fixture
def outage_services(down_db, users_path):
    return build_services(db=down_db, users_path=users_path)


@pytest.fixture
def customer(services):
    return services.credentials.create("Jane Buyer", "jane@shop.io", "secret123")


@pytest.fixture
def admin(services):
    return services.credentials.selector.primary.create(
        "Store Admin", "boss@shop.io", hash_password("secret123"), role="admin"
    )


@pytest.fixture
def shipping():
    return ShippingAddress(street="1 Main St", city="Springfield", state="IL", zipCode="62701", country="US")
