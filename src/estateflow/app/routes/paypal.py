"""One-off PayPal payments (listing promotion)."""

from fastapi import APIRouter, Depends

from estateflow.app.config import get_settings
from estateflow.app.routes.auth import get_current_user_dep
from estateflow.domain.models import User
from estateflow.domain.schemas import (
    CaptureOrderRequest,
    CaptureResponse,
    CreateOrderRequest,
    OrderResponse,
)
from estateflow.services.paypal_service import PayPalClient, get_paypal_client

router = APIRouter(prefix="/api/paypal", tags=["paypal"])


@router.post("/create-order", response_model=OrderResponse)
async def create_order(
    data: CreateOrderRequest,
    _user: User = Depends(get_current_user_dep),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    frontend_url = get_settings().frontend_url.rstrip("/")
    order = await paypal.create_order(
        data.amount,
        data.currency,
        return_url=f"{frontend_url}/complete-payment",
        cancel_url=f"{frontend_url}/cancel-payment",
    )
    return OrderResponse(id=order["id"])


@router.post("/capture-order", response_model=CaptureResponse)
async def capture_order(
    data: CaptureOrderRequest,
    _user: User = Depends(get_current_user_dep),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    result = await paypal.capture_order(data.order_id)
    return CaptureResponse(id=result.get("id", data.order_id), status=result.get("status", ""))
