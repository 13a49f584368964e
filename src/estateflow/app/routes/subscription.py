"""Subscription plan routes and PayPal-paid subscription orders."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.routes.auth import get_current_user_dep
from estateflow.domain.models import User
from estateflow.domain.schemas import (
    CaptureResponse,
    CaptureSubscriptionOrderRequest,
    CreateSubscriptionOrderRequest,
    OrderResponse,
    SubscriptionPlanResponse,
)
from estateflow.infra.database import get_db
from estateflow.services import subscription_service
from estateflow.services.paypal_service import PayPalClient, get_paypal_client

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@router.get("")
async def list_plans(
    _user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    plans = await subscription_service.list_plans(db)
    return {
        "subscriptions": [
            SubscriptionPlanResponse.model_validate(p).model_dump(by_alias=True) for p in plans
        ]
    }


@router.post("/create-subscription-order", response_model=OrderResponse)
async def create_subscription_order(
    data: CreateSubscriptionOrderRequest,
    _user: User = Depends(get_current_user_dep),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    order = await subscription_service.create_subscription_order(
        paypal, data.amount, data.item.model_dump(), data.currency
    )
    return OrderResponse(id=order["id"])


@router.post("/capture-subscription-order", response_model=CaptureResponse)
async def capture_subscription_order(
    data: CaptureSubscriptionOrderRequest,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    result = await subscription_service.capture_subscription_order(
        db, paypal, data.order_id, user.id, data.subscription_plan_id, data.email
    )
    return CaptureResponse(id=result.id, status=result.status)
