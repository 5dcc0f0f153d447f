from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user, get_services
from storefront.models.schemas import Identity, ProfileUpdate
from storefront.services.registry import Services

router = APIRouter()


@router.put("/profile")
def update_profile(payload: ProfileUpdate, user: Identity = Depends(get_current_user),
                   services: Services = Depends(get_services)):
    updated = services.credentials.update_profile(user.id, **payload.model_dump(exclude_unset=True))
    return {"success": True, "user": updated.public()}
