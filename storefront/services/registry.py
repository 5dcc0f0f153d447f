import logging
from dataclasses import dataclass
from typing import Optional

from pymongo.database import Database

from storefront.core.config import FALLBACK_USERS_PATH
from storefront.core.errors import ConnectivityError
from storefront.db.fallback import JsonDocumentStore
from storefront.db.mongo import get_database
from storefront.repositories.orders import OrderStore
from storefront.repositories.products import CatalogStore, MongoProductRepository, SnapshotProductRepository
from storefront.repositories.selector import BackendSelector
from storefront.repositories.users import CredentialStore, FileUserRepository, MongoUserRepository
from storefront.services.checkout import CheckoutCoordinator
from storefront.services.payments import PaymentGateway

logger = logging.getLogger(__name__)


@dataclass
class Services:
    credentials: CredentialStore
    catalog: CatalogStore
    orders: OrderStore
    checkout: CheckoutCoordinator
    gateway: Optional[PaymentGateway] = None


def build_services(
    db: Optional[Database] = None,
    users_path=None,
    gateway: Optional[PaymentGateway] = None,
) -> Services:
    db = db if db is not None else get_database()
    users = BackendSelector(
        MongoUserRepository(db),
        FileUserRepository(JsonDocumentStore(users_path or FALLBACK_USERS_PATH, {"users": []})),
        name="users",
    )
    products = BackendSelector(MongoProductRepository(db), SnapshotProductRepository(), name="products")

    credentials = CredentialStore(users)
    catalog = CatalogStore(products)
    orders = OrderStore(db, credentials)
    return Services(
        credentials=credentials,
        catalog=catalog,
        orders=orders,
        checkout=CheckoutCoordinator(catalog, orders, gateway),
        gateway=gateway,
    )


def initialize(services: Services, seed_catalog: bool = True):
    """Run once at process start. Safe to repeat."""
    services.credentials.initialize()
    if seed_catalog:
        services.catalog.seed()
    try:
        services.orders.ensure_indexes()
    except ConnectivityError as e:
        logger.warning("Skipping order index setup, primary unreachable: %s", e)
