"""PayPal REST client (OAuth2 client credentials + Checkout Orders v2)."""

import logging

import httpx

from estateflow.app.config import get_settings
from estateflow.domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class PayPalClient:
    """Thin async wrapper over the PayPal orders API.

    A fresh client-credentials token is requested per call.
    """

    def __init__(
        self,
        api_base: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        brand_name: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_base = (api_base or settings.paypal_api_base).rstrip("/")
        self.client_id = client_id if client_id is not None else settings.paypal_client_id
        self.client_secret = client_secret if client_secret is not None else settings.paypal_client_secret
        self.brand_name = brand_name or settings.paypal_brand_name
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_base, timeout=30.0, transport=self._transport)

    async def get_access_token(self) -> str:
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/v1/oauth2/token",
                    data={"grant_type": "client_credentials"},
                    auth=(self.client_id, self.client_secret),
                )
                resp.raise_for_status()
                return resp.json()["access_token"]
        except (httpx.HTTPError, KeyError) as exc:
            logger.warning("PayPal token request failed: %s", exc)
            raise ExternalServiceError("Failed to authenticate with PayPal") from exc

    async def create_order(
        self,
        amount: str,
        currency: str = "USD",
        item: dict | None = None,
        return_url: str | None = None,
        cancel_url: str | None = None,
    ) -> dict:
        """Create a CAPTURE-intent order and return PayPal's order body."""
        purchase_unit: dict = {"amount": {"currency_code": currency, "value": amount}}
        if item is not None:
            purchase_unit["amount"]["breakdown"] = {
                "item_total": {"currency_code": currency, "value": amount},
            }
            purchase_unit["items"] = [{
                "name": item["name"],
                "description": item.get("description"),
                "unit_amount": {"currency_code": currency, "value": amount},
                "quantity": "1",
                "category": item.get("category") or "DIGITAL_GOODS",
            }]

        experience = {
            "payment_method_preference": "IMMEDIATE_PAYMENT_REQUIRED",
            "brand_name": self.brand_name,
            "locale": "en-US",
            "landing_page": "LOGIN",
            "user_action": "PAY_NOW",
        }
        if return_url:
            experience["return_url"] = return_url
        if cancel_url:
            experience["cancel_url"] = cancel_url

        body = {
            "intent": "CAPTURE",
            "purchase_units": [purchase_unit],
            "payment_source": {"paypal": {"experience_context": experience}},
        }
        token = await self.get_access_token()
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/v2/checkout/orders",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
                order = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("PayPal create order failed: %s", exc)
            raise ExternalServiceError("Failed to create PayPal order") from exc

        logger.info("PayPal order %s created for %s %s", order.get("id"), amount, currency)
        return order

    async def capture_order(self, order_id: str) -> dict:
        token = await self.get_access_token()
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"/v2/checkout/orders/{order_id}/capture",
                    json={},
                    headers={"Authorization": f"Bearer {token}"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("PayPal capture of %s failed: %s", order_id, exc)
            raise ExternalServiceError("Failed to capture PayPal order") from exc

        logger.info("PayPal order %s captured with status %s", order_id, data.get("status"))
        return data


def get_paypal_client() -> PayPalClient:
    """FastAPI dependency; override in tests."""
    return PayPalClient()
