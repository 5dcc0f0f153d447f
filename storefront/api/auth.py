from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_current_user, get_services
from storefront.core.security import create_token
from storefront.models.schemas import AuthResponse, Identity, UserCreate, UserLogin
from storefront.services.registry import Services

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, services: Services = Depends(get_services)):
    user = services.credentials.create(payload.name, payload.email, payload.password)
    return {"token": create_token(user.id), "user": user.public()}


@router.post("/login", response_model=AuthResponse)
def login(payload: UserLogin, services: Services = Depends(get_services)):
    user = services.credentials.authenticate(payload.email, payload.password)
    return {"token": create_token(user.id), "user": user.public()}


@router.get("/me")
def me(user: Identity = Depends(get_current_user)):
    return {"success": True, "user": user.public()}
