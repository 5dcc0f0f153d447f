from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user, get_services
from storefront.core.errors import GatewayError
from storefront.core.money import to_minor_units
from storefront.models.schemas import Identity, PaymentIntentRequest
from storefront.services.registry import Services

router = APIRouter()


@router.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest, user: Identity = Depends(get_current_user),
                          services: Services = Depends(get_services)):
    if services.gateway is None:
        raise GatewayError("Payment gateway not configured")
    # amount arrives in major units
    intent = services.gateway.create_intent(to_minor_units(payload.amount))
    return {"success": True, "clientSecret": intent.clientSecret}
