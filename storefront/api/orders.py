from typing import Optional

from fastapi import APIRouter, Depends, status

from storefront.api.deps import ensure_order_access, get_admin_user, get_current_user, get_services
from storefront.core.errors import NotFound
from storefront.models.schemas import Identity, OrderCreate, PaymentResult
from storefront.services.registry import Services

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(payload: OrderCreate, user: Identity = Depends(get_current_user),
                 services: Services = Depends(get_services)):
    return {"success": True, "order": services.orders.create(user.id, payload)}


@router.get("/myorders")
def my_orders(user: Identity = Depends(get_current_user), services: Services = Depends(get_services)):
    return {"success": True, "orders": services.orders.list_by_user(user.id)}


@router.get("")
def all_orders(admin: Identity = Depends(get_admin_user), services: Services = Depends(get_services)):
    return {"success": True, "orders": services.orders.list_all()}


def _load(order_id: str, user: Identity, services: Services):
    order = services.orders.get_by_id(order_id)
    if order is None:
        raise NotFound("Order not found")
    ensure_order_access(order, user)
    return order


@router.get("/{order_id}")
def get_order(order_id: str, user: Identity = Depends(get_current_user),
              services: Services = Depends(get_services)):
    return {"success": True, "order": _load(order_id, user, services)}


@router.put("/{order_id}/pay")
def pay_order(order_id: str, payload: Optional[PaymentResult] = None,
              user: Identity = Depends(get_current_user), services: Services = Depends(get_services)):
    _load(order_id, user, services)
    return {"success": True, "order": services.orders.mark_paid(order_id, payload or PaymentResult())}


@router.put("/{order_id}/deliver")
def deliver_order(order_id: str, admin: Identity = Depends(get_admin_user),
                  services: Services = Depends(get_services)):
    return {"success": True, "order": services.orders.mark_delivered(order_id)}
