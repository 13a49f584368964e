"""Subscription plans and PayPal-paid subscriptions."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.config import get_settings
from estateflow.domain.enums import SubscriptionStatus, UserRole
from estateflow.domain.errors import NotFoundError
from estateflow.domain.models import Subscription, SubscriptionPlan, utcnow
from estateflow.services import email_service
from estateflow.services.auth_service import listing_limit_for, require_user
from estateflow.services.paypal_service import PayPalClient

logger = logging.getLogger(__name__)

COMPLETED = "COMPLETED"

DEFAULT_PLANS = [
    {
        "name": "Agency Monthly",
        "description": "Agency account with up to 1000 listings for 30 days",
        "price": 29.99,
        "currency": "USD",
        "duration_days": 30,
    },
    {
        "name": "Agency Yearly",
        "description": "Agency account with up to 1000 listings for 365 days",
        "price": 299.99,
        "currency": "USD",
        "duration_days": 365,
    },
]


@dataclass(frozen=True)
class CaptureResult:
    id: str
    status: str
    subscription: Subscription | None = None


async def list_plans(db: AsyncSession) -> list[SubscriptionPlan]:
    result = await db.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.price))
    return list(result.scalars().all())


async def create_subscription_order(
    paypal: PayPalClient,
    amount: str,
    item: dict,
    currency: str = "USD",
) -> dict:
    frontend_url = get_settings().frontend_url.rstrip("/")
    return await paypal.create_order(
        amount,
        currency,
        item=item,
        return_url=f"{frontend_url}/complete-subscription",
        cancel_url=f"{frontend_url}/cancel-subscription",
    )


async def activate_subscription(
    db: AsyncSession,
    user_id: str,
    plan_id: str,
    paypal_order_id: str,
) -> Subscription:
    """Upsert the user's subscription and promote them to agency. Caller commits."""
    plan = await db.get(SubscriptionPlan, plan_id)
    if plan is None:
        raise NotFoundError("Subscription plan not found")
    user = await require_user(db, user_id)

    now = utcnow()
    result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
    subscription = result.scalar_one_or_none()
    if subscription is None:
        subscription = Subscription(user_id=user_id)
        db.add(subscription)
    subscription.subscription_plan_id = plan.id
    subscription.paypal_order_id = paypal_order_id
    subscription.status = SubscriptionStatus.ACTIVE.value
    subscription.start_date = now
    subscription.end_date = now + timedelta(days=plan.duration_days)
    subscription.plan = plan

    user.role = UserRole.AGENCY.value
    user.listing_limit = listing_limit_for(UserRole.AGENCY)
    user.updated_at = now
    return subscription


async def capture_subscription_order(
    db: AsyncSession,
    paypal: PayPalClient,
    order_id: str,
    user_id: str,
    plan_id: str,
    email: str | None = None,
) -> CaptureResult:
    """Capture the order; on COMPLETED activate the plan and mail a receipt."""
    if await db.get(SubscriptionPlan, plan_id) is None:
        raise NotFoundError("Subscription plan not found")
    data = await paypal.capture_order(order_id)
    status = data.get("status", "")
    if status != COMPLETED:
        logger.warning("Subscription order %s captured with status %s", order_id, status)
        return CaptureResult(id=data.get("id", order_id), status=status)

    subscription = await activate_subscription(db, user_id, plan_id, data.get("id", order_id))
    await db.commit()
    logger.info("Subscription %s activated for user %s", subscription.id, user_id)

    recipient = email or (data.get("payer") or {}).get("email_address")
    if recipient:
        plan = subscription.plan
        await email_service.send_subscription_success_email(
            recipient, plan.name, plan.price, plan.currency, subscription.end_date
        )
    return CaptureResult(id=data.get("id", order_id), status=status, subscription=subscription)


async def seed_subscription_plans(db: AsyncSession) -> int:
    """Insert the default plans when the table is empty."""
    existing = await db.execute(select(SubscriptionPlan.id).limit(1))
    if existing.first() is not None:
        return 0
    for plan in DEFAULT_PLANS:
        db.add(SubscriptionPlan(**plan))
    await db.commit()
    logger.info("Seeded %d subscription plans", len(DEFAULT_PLANS))
    return len(DEFAULT_PLANS)
