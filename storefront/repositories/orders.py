"""Order persistence (MongoDB only).

Orders are immutable snapshots apart from the paid/delivered flags. A
connectivity failure is not recovered here; it reaches the caller as
``ConnectivityError`` (503), and checkout treats it as a failed attempt.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from storefront.core.errors import NotFound, ValidationError
from storefront.core.money import sum_lines, to_cents, to_decimal
from storefront.db.mongo import guarded, id_filter
from storefront.models.schemas import Order, OrderCreate, Owner, PaymentResult
from storefront.repositories.users import CredentialStore

logger = logging.getLogger(__name__)

# client-supplied totals may carry float noise
PRICE_TOLERANCE = 0.01


def price_order(payload: OrderCreate) -> Dict[str, float]:
    """Recomputes the order totals from its lines.

    itemsPrice is the sum of line snapshots and totalPrice is items + tax +
    shipping. Totals sent by the client must agree with the recomputed ones.
    """
    if not payload.orderItems:
        raise ValidationError("No order items")
    items = sum_lines((i.price, i.quantity) for i in payload.orderItems)
    total = to_cents(items + to_decimal(payload.taxPrice) + to_decimal(payload.shippingPrice))
    if payload.itemsPrice is not None and abs(payload.itemsPrice - float(items)) >= PRICE_TOLERANCE:
        raise ValidationError("itemsPrice does not match order items")
    if payload.totalPrice is not None and abs(payload.totalPrice - float(total)) >= PRICE_TOLERANCE:
        raise ValidationError("totalPrice does not match itemsPrice + taxPrice + shippingPrice")
    return {
        "itemsPrice": float(items),
        "taxPrice": float(to_cents(to_decimal(payload.taxPrice))),
        "shippingPrice": float(to_cents(to_decimal(payload.shippingPrice))),
        "totalPrice": float(total),
    }


class OrderStore:

    def __init__(self, db: Database, credentials: CredentialStore):
        self.collection = db["orders"]
        self.credentials = credentials

    @staticmethod
    def _to_order(doc: Dict[str, Any], owner: Optional[Owner] = None) -> Order:
        data = {k: v for k, v in doc.items() if k != "_id"}
        return Order(id=str(doc["_id"]), user=owner, **data)

    def _owner(self, user_id: str) -> Optional[Owner]:
        identity = self.credentials.lookup_by_id(user_id)
        if identity is None:
            return None
        return Owner(id=identity.id, name=identity.name, email=identity.email)

    @guarded
    def create(self, user_id: str, payload: OrderCreate, payment_result: Optional[PaymentResult] = None) -> Order:
        totals = price_order(payload)
        now = datetime.now(timezone.utc)
        doc = {
            "userId": user_id,
            "orderItems": [item.model_dump() for item in payload.orderItems],
            "shippingAddress": payload.shippingAddress.model_dump(),
            "paymentMethod": payload.paymentMethod,
            **totals,
            "isPaid": payment_result is not None,
            "paidAt": now if payment_result is not None else None,
            "paymentResult": payment_result.model_dump() if payment_result is not None else None,
            "isDelivered": False,
            "deliveredAt": None,
            "createdAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Order %s created for user %s (total %.2f)", result.inserted_id, user_id, totals["totalPrice"])
        return self._to_order(doc)

    @guarded
    def get_by_id(self, order_id: str) -> Optional[Order]:
        doc = self.collection.find_one(id_filter(order_id))
        if not doc:
            return None
        return self._to_order(doc, self._owner(doc["userId"]))

    @guarded
    def list_by_user(self, user_id: str) -> List[Order]:
        cursor = self.collection.find({"userId": user_id}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        return [self._to_order(doc) for doc in cursor]

    @guarded
    def list_all(self) -> List[Order]:
        cursor = self.collection.find({}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        owners: Dict[str, Optional[Owner]] = {}
        orders = []
        for doc in cursor:
            uid = doc["userId"]
            if uid not in owners:
                owners[uid] = self._owner(uid)
            orders.append(self._to_order(doc, owners[uid]))
        return orders

    def _set(self, order_id: str, changes: Dict[str, Any]) -> Order:
        doc = self.collection.find_one_and_update(
            id_filter(order_id), {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("Order not found")
        return self._to_order(doc, self._owner(doc["userId"]))

    @guarded
    def mark_paid(self, order_id: str, payment_result: PaymentResult) -> Order:
        return self._set(order_id, {
            "isPaid": True,
            "paidAt": datetime.now(timezone.utc),
            "paymentResult": payment_result.model_dump(),
        })

    @guarded
    def mark_delivered(self, order_id: str) -> Order:
        return self._set(order_id, {"isDelivered": True, "deliveredAt": datetime.now(timezone.utc)})

    @guarded
    def ensure_indexes(self):
        self.collection.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
