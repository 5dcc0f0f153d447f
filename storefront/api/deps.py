from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from storefront.core.errors import AuthError, ForbiddenError
from storefront.core.security import decode_token
from storefront.models.schemas import Identity, Order
from storefront.services.registry import Services

oauth2 = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(token: str = Depends(oauth2), services: Services = Depends(get_services)) -> Identity:
    user = services.credentials.lookup_by_id(decode_token(token))
    if user is None:
        raise AuthError("Not authorized, user not found")
    return user


def get_admin_user(user: Identity = Depends(get_current_user)) -> Identity:
    if user.role != "admin":
        raise ForbiddenError("Not authorized as an admin")
    return user


def ensure_order_access(order: Order, user: Identity):
    if order.userId != user.id and user.role != "admin":
        raise ForbiddenError("Not authorized to access this order")
