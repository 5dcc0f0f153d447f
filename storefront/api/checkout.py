from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_current_user, get_services
from storefront.models.schemas import CheckoutRequest, Identity
from storefront.services.cart import CartLedger
from storefront.services.registry import Services

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def checkout(payload: CheckoutRequest, user: Identity = Depends(get_current_user),
             services: Services = Depends(get_services)):
    """Runs one checkout attempt over the cart lines the client holds.

    The client keeps its cart until this returns 201.
    """
    cart = CartLedger.from_items(payload.cartItems)
    result = services.checkout.checkout(
        user,
        cart,
        payload.shippingAddress,
        payment_method=payload.paymentMethod,
        payment_method_id=payload.paymentMethodId,
    )
    if not result.ok:
        raise result.failure
    return {
        "success": True,
        "state": result.state.value,
        "history": [s.value for s in result.history],
        "order": result.order,
    }
