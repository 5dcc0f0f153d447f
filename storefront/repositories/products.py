"""Catalog repositories.

``MongoProductRepository`` is the primary; ``SnapshotProductRepository``
serves a fixed in-memory copy of the sample catalog while MongoDB is
down. Filtering, sorting (including tie order) and pagination must give
the same answers on both.
"""
import copy
import logging
import math
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from storefront.core.errors import ConnectivityError, NotFound
from storefront.db.mongo import guarded, id_filter, ping
from storefront.db.seed import SAMPLE_PRODUCTS
from storefront.models.schemas import (
    Pagination,
    Product,
    ProductFilter,
    ProductIn,
    ProductPage,
    ProductSort,
    ProductUpdate,
)
from storefront.repositories.selector import BackendSelector

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit)


class ProductRepository(ABC):

    @abstractmethod
    def query(self, flt: ProductFilter, sort: ProductSort, pagination: Pagination) -> List[Product]: ...

    @abstractmethod
    def count(self, flt: ProductFilter) -> int: ...

    @abstractmethod
    def get_by_id(self, product_id: str) -> Optional[Product]: ...

    @abstractmethod
    def create(self, payload: ProductIn) -> Product: ...

    @abstractmethod
    def update(self, product_id: str, payload: ProductUpdate) -> Product: ...

    @abstractmethod
    def delete(self, product_id: str) -> None: ...

    @abstractmethod
    def list_featured(self) -> List[Product]: ...

    def ping(self) -> bool:
        return True


class MongoProductRepository(ProductRepository):

    def __init__(self, db: Database):
        self.collection = db["products"]
        self._db = db

    @staticmethod
    def _to_product(doc: Dict[str, Any]) -> Product:
        data = {k: v for k, v in doc.items() if k != "_id"}
        return Product(id=str(doc["_id"]), **data)

    @staticmethod
    def build_query(flt: ProductFilter) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if flt.keyword:
            pattern = re.escape(flt.keyword)
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        if flt.category:
            query["category"] = flt.category
        if flt.minPrice is not None or flt.maxPrice is not None:
            query["price"] = {}
            if flt.minPrice is not None:
                query["price"]["$gte"] = flt.minPrice
            if flt.maxPrice is not None:
                query["price"]["$lte"] = flt.maxPrice
        return query

    @guarded
    def query(self, flt, sort, pagination):
        direction = ASCENDING if sort.order == "asc" else DESCENDING
        cursor = (
            self.collection.find(self.build_query(flt))
            # _id breaks ties in insertion order
            .sort([(sort.field, direction), ("_id", ASCENDING)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        return [self._to_product(doc) for doc in cursor]

    @guarded
    def count(self, flt):
        return self.collection.count_documents(self.build_query(flt))

    @guarded
    def get_by_id(self, product_id):
        doc = self.collection.find_one(id_filter(product_id))
        return self._to_product(doc) if doc else None

    @guarded
    def create(self, payload):
        now = datetime.now(timezone.utc)
        doc = {**payload.model_dump(), "createdAt": now, "updatedAt": now}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._to_product(doc)

    @guarded
    def update(self, product_id, payload):
        changes = payload.model_dump(exclude_unset=True)
        changes["updatedAt"] = datetime.now(timezone.utc)
        doc = self.collection.find_one_and_update(
            id_filter(product_id), {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("Product not found")
        return self._to_product(doc)

    @guarded
    def delete(self, product_id):
        result = self.collection.delete_one(id_filter(product_id))
        if result.deleted_count == 0:
            raise NotFound("Product not found")

    @guarded
    def list_featured(self):
        cursor = self.collection.find({"featured": True}).sort([("createdAt", DESCENDING), ("_id", ASCENDING)]).limit(FEATURED_LIMIT)
        return [self._to_product(doc) for doc in cursor]

    @guarded
    def seed(self, products: List[Dict[str, Any]]) -> int:
        if self.collection.count_documents({}) > 0:
            return 0
        base = datetime.now(timezone.utc)
        docs = []
        for i, p in enumerate(products):
            stamp = base + timedelta(milliseconds=i)
            docs.append({**ProductIn(**p).model_dump(), "createdAt": stamp, "updatedAt": stamp})
        self.collection.insert_many(docs)
        return len(docs)

    def ping(self):
        return ping(self._db)


class SnapshotProductRepository(ProductRepository):
    """In-memory catalog used during primary outages.

    Records keep insertion order; ``createdAt`` grows with position so the
    default newest-first sort matches what MongoDB returns for a seeded
    catalog. Writes live only as long as the process.
    """

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None, id_prefix: str = "p"):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._records: List[Product] = []
        self._next_id = 1
        self._prefix = id_prefix
        for p in copy.deepcopy(SAMPLE_PRODUCTS if products is None else products):
            stamp = base + timedelta(minutes=self._next_id)
            self._records.append(Product(id=self._new_id(), createdAt=stamp, updatedAt=stamp, **p))

    def _new_id(self) -> str:
        pid = f"{self._prefix}{self._next_id}"
        self._next_id += 1
        return pid

    @staticmethod
    def matches(product: Product, flt: ProductFilter) -> bool:
        if flt.keyword:
            needle = flt.keyword.lower()
            if needle not in product.name.lower() and needle not in product.description.lower():
                return False
        if flt.category and product.category != flt.category:
            return False
        if flt.minPrice is not None and product.price < flt.minPrice:
            return False
        if flt.maxPrice is not None and product.price > flt.maxPrice:
            return False
        return True

    def _filtered(self, flt):
        return [p for p in self._records if self.matches(p, flt)]

    def query(self, flt, sort, pagination):
        # sorted() is stable, reverse=True included, so ties keep insertion order
        ordered = sorted(
            self._filtered(flt),
            key=lambda p: getattr(p, sort.field),
            reverse=sort.order == "desc",
        )
        return [p.model_copy() for p in ordered[pagination.skip:pagination.skip + pagination.limit]]

    def count(self, flt):
        return len(self._filtered(flt))

    def get_by_id(self, product_id):
        product = next((p for p in self._records if p.id == product_id), None)
        return product.model_copy() if product else None

    def create(self, payload):
        now = datetime.now(timezone.utc)
        product = Product(id=self._new_id(), createdAt=now, updatedAt=now, **payload.model_dump())
        self._records.append(product)
        return product.model_copy()

    def update(self, product_id, payload):
        for i, p in enumerate(self._records):
            if p.id == product_id:
                changes = payload.model_dump(exclude_unset=True)
                # rebuilt, not model_copy(update=...), so field checks run
                # model_copy skips validation; rebuild so the record stays a valid Product
                self._records[i] = Product(**{**p.model_dump(), **changes})
                return self._records[i].model_copy()
        raise NotFound("Product not found")

    def delete(self, product_id):
        before = len(self._records)
        self._records = [p for p in self._records if p.id != product_id]
        if len(self._records) == before:
            raise NotFound("Product not found")

    def list_featured(self):
        return [p.model_copy() for p in self._records if p.featured][:FEATURED_LIMIT]


class CatalogStore:

    def __init__(self, selector: BackendSelector):
        self.selector = selector

    def query(self, flt: ProductFilter, sort: ProductSort, pagination: Pagination) -> List[Product]:
        return self.selector.run("query", flt, sort, pagination)

    def count(self, flt: ProductFilter) -> int:
        return self.selector.run("count", flt)

    def search(self, flt: ProductFilter, sort: ProductSort, pagination: Pagination) -> ProductPage:
        products = self.query(flt, sort, pagination)
        total = self.count(flt)
        return ProductPage(
            products=products,
            page=pagination.page,
            pages=page_count(total, pagination.limit),
            total=total,
        )

    def get_by_id(self, product_id: str) -> Optional[Product]:
        return self.selector.run("get_by_id", product_id)

    def create(self, payload: ProductIn) -> Product:
        return self.selector.run("create", payload)

    def update(self, product_id: str, payload: ProductUpdate) -> Product:
        return self.selector.run("update", product_id, payload)

    def delete(self, product_id: str) -> None:
        self.selector.run("delete", product_id)

    def list_featured(self) -> List[Product]:
        return self.selector.run("list_featured")

    def seed(self):
        """Startup hook: fill an empty primary with the sample catalog."""
        try:
            added = self.selector.primary.seed(SAMPLE_PRODUCTS)
        except ConnectivityError as e:
            logger.warning("Skipping catalog seed, primary unreachable: %s", e)
            return
        if added:
            logger.info("Seeded catalog with %d sample products", added)
        else:
            logger.info("Catalog already populated, skipping seed")
