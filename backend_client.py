from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    API_URL: str = "http://localhost:5000"
    REQUEST_TIMEOUT: float = 15.0
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal(500)
    SHIPPING_CHARGE: Decimal = Decimal(50)
    CURRENCY: str = "INR"
    CURRENCY_SYMBOL: str = "₹"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]


settings = Settings()


def api_base_url(url: str) -> str:
    base = url.rstrip("/")
    return base if base.endswith("/api") else f"{base}/api"


class BackendError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _auth_headers(token: Optional[str], user_id: Optional[str] = None) -> dict[str, str]:
    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if user_id:
        headers["user-id"] = user_id
    return headers


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class BackendClient:
    """Async client for the storefront REST backend.

    Every endpoint answers ``{"success": bool, "message": str, "data": ...}``;
    methods return ``data`` and raise BackendError otherwise. The caller's
    token is passed per call, nothing is kept between requests.
    """

    def __init__(self, base_url: str, timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = api_base_url(base_url)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        keep_none: bool = False,
    ) -> Any:
        logger.debug("backend %s %s%s", method, self.base_url, path)
        if json is not None and not keep_none:
            # optional arguments left as None are not sent
            json = {k: v for k, v in json.items() if v is not None}
        try:
            resp = await self._http.request(
                method,
                path,
                params={k: v for k, v in (params or {}).items() if v is not None} or None,
                json=_jsonable(json) if json is not None else None,
                headers=_auth_headers(token, user_id),
            )
        except httpx.TimeoutException as exc:
            logger.warning("backend %s %s timed out: %s", method, path, exc)
            raise BackendError(504, "Backend did not respond in time") from exc
        except httpx.HTTPError as exc:
            logger.warning("backend %s %s failed: %s", method, path, exc)
            raise BackendError(502, "Network error. Please try again.") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            logger.warning("backend %s %s returned non-JSON (status %s)", method, path, resp.status_code)
            raise BackendError(502, "Invalid response from backend") from exc
        if not isinstance(body, dict):
            raise BackendError(502, "Invalid response from backend")

        if resp.is_error or not body.get("success", False):
            message = body.get("message") or "Something went wrong"
            status = resp.status_code if resp.is_error else 502
            logger.warning("backend %s %s -> %s: %s", method, path, status, message)
            raise BackendError(status, message)
        return body.get("data")

    # Auth

    async def signup(self, full_name: str, email: str, phone: str, password: str, confirm_password: str) -> dict:
        return await self.request("POST", "/auth/signup", json={
            "fullName": full_name,
            "email": email,
            "phone": phone,
            "password": password,
            "confirmPassword": confirm_password,
        })

    async def login(self, email: str, password: str) -> dict:
        return await self.request("POST", "/auth/login", json={"email": email, "password": password})

    async def me(self, token: str) -> dict:
        data = await self.request("GET", "/auth/me", token=token)
        return data["user"]

    # Items

    async def list_items(self, category: Optional[str] = None, is_active: Optional[bool] = None) -> list[dict]:
        params = {"category": category}
        if is_active is not None:
            params["isActive"] = "true" if is_active else "false"
        data = await self.request("GET", "/items", params=params)
        return data["items"]

    async def get_item(self, item_id: str) -> dict:
        data = await self.request("GET", f"/items/{item_id}")
        return data["item"]

    async def get_items_batch(self, item_ids: list[str]) -> list[dict]:
        data = await self.request("POST", "/items/batch", json={"itemIds": item_ids})
        return data["items"]

    async def add_item(self, item: dict[str, Any], token: Optional[str] = None) -> dict:
        payload = {"discount": 0, **item}
        data = await self.request("POST", "/items", token=token, json=payload)
        return data["item"]

    async def update_item(self, item_id: str, updates: dict[str, Any], token: Optional[str] = None) -> dict:
        data = await self.request("PUT", f"/items/{item_id}", token=token, json=updates, keep_none=True)
        return data["item"]

    async def delete_item(self, item_id: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", f"/items/{item_id}", token=token)

    # Reviews

    async def get_reviews(self, item_id: str) -> dict:
        return await self.request("GET", f"/reviews/item/{item_id}")

    async def add_review(self, review: dict[str, Any], token: Optional[str] = None) -> dict:
        data = await self.request("POST", "/reviews", token=token, json=review)
        return data["review"]

    async def update_review(self, review_id: str, rating: Optional[int] = None, review: Optional[str] = None, token: Optional[str] = None) -> dict:
        data = await self.request("PUT", f"/reviews/{review_id}", token=token, json={"rating": rating, "review": review})
        return data["review"]

    async def delete_review(self, review_id: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", f"/reviews/{review_id}", token=token)

    # Favorites

    async def list_favorites(self, user_id: str, include_items: bool = False, token: Optional[str] = None) -> list[dict]:
        params = {"includeItems": "true"} if include_items else None
        data = await self.request("GET", f"/favorites/user/{user_id}", token=token, params=params)
        return data["favorites"]

    async def check_favorite(self, item_id: str, user_id: str, token: Optional[str] = None) -> bool:
        data = await self.request("GET", f"/favorites/check/{item_id}/{user_id}", token=token)
        return bool(data["isFavorited"])

    async def check_favorites_batch(self, item_ids: list[str], user_id: str, token: Optional[str] = None) -> dict[str, bool]:
        data = await self.request("POST", "/favorites/check-batch", token=token, json={"itemIds": item_ids, "userId": user_id})
        return data or {}

    async def add_favorite(self, item_id: str, user_id: str, token: Optional[str] = None) -> dict:
        data = await self.request("POST", "/favorites", token=token, user_id=user_id, json={"itemId": item_id, "userId": user_id})
        return data["favorite"]

    async def remove_favorite(self, item_id: str, user_id: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", f"/favorites/{item_id}/{user_id}", token=token)

    # Cart

    async def get_cart(self, user_id: str, token: Optional[str] = None) -> dict:
        data = await self.request("GET", f"/cart/user/{user_id}", token=token)
        return data["cart"]

    async def add_to_cart(self, item_id: str, user_id: str, quantity: int = 1, custom_message: Optional[str] = None, token: Optional[str] = None) -> None:
        await self.request("POST", "/cart/add", token=token, user_id=user_id, json={
            "itemId": item_id,
            "userId": user_id,
            "quantity": quantity,
            "customMessage": custom_message,
        })

    async def update_cart_line(self, line_id: str, user_id: str, quantity: Optional[int] = None, custom_message: Optional[str] = None, token: Optional[str] = None) -> None:
        await self.request("PUT", f"/cart/item/{line_id}", token=token, user_id=user_id, json={
            "quantity": quantity,
            "customMessage": custom_message,
        })

    async def remove_cart_line(self, line_id: str, user_id: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", f"/cart/item/{line_id}/{user_id}", token=token)

    async def clear_cart(self, user_id: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", f"/cart/user/{user_id}", token=token)

    # Orders

    async def place_order(self, user_id: str, order: dict[str, Any], token: Optional[str] = None) -> dict:
        return await self.request("POST", "/orders/place", token=token, user_id=user_id, json=order)

    async def list_user_orders(self, user_id: str, token: Optional[str] = None) -> list[dict]:
        data = await self.request("GET", f"/orders/user/{user_id}", token=token)
        return data["orders"]

    async def get_order(self, order_id: str, token: Optional[str] = None) -> dict:
        data = await self.request("GET", f"/orders/{order_id}", token=token)
        return data["order"]

    async def list_orders(self, status: Optional[str] = None, token: Optional[str] = None) -> list[dict]:
        data = await self.request("GET", "/orders", token=token, params={"status": status})
        return data["orders"]

    async def update_order_status(self, order_id: str, order_status: Optional[str] = None, payment_status: Optional[str] = None, token: Optional[str] = None) -> dict:
        data = await self.request("PUT", f"/orders/{order_id}/status", token=token, json={
            "orderStatus": order_status,
            "paymentStatus": payment_status,
        })
        return data["order"]

    # Payments

    async def get_order_payment(self, order_id: str, token: Optional[str] = None) -> dict:
        data = await self.request("GET", f"/payments/order/{order_id}", token=token)
        return data["payment"]

    async def list_user_payments(self, user_id: str, token: Optional[str] = None) -> list[dict]:
        data = await self.request("GET", f"/payments/user/{user_id}", token=token)
        return data["payments"]

    async def list_payments(self, status: Optional[str] = None, token: Optional[str] = None) -> list[dict]:
        data = await self.request("GET", "/payments", token=token, params={"status": status})
        return data["payments"]

    async def update_payment_status(self, payment_id: str, payment_status: str, token: Optional[str] = None) -> dict:
        data = await self.request("PUT", f"/payments/{payment_id}/status", token=token, json={"paymentStatus": payment_status})
        return data["payment"]

    async def refund_payment(self, payment_id: str, refund_amount: Optional[Decimal] = None, refund_reason: Optional[str] = None, token: Optional[str] = None) -> dict:
        data = await self.request("POST", f"/payments/{payment_id}/refund", token=token, json={
            "refundAmount": refund_amount,
            "refundReason": refund_reason,
        })
        return data["payment"]

    # Chat

    async def send_message(self, message: str, token: str, product_id: Optional[str] = None, target_user_id: Optional[str] = None) -> dict:
        data = await self.request("POST", "/chat/send", token=token, json={
            "message": message,
            "productId": product_id,
            "targetUserId": target_user_id,
        })
        return data["chatMessage"]

    async def list_messages(self, token: str, user_id: Optional[str] = None) -> list[dict]:
        data = await self.request("GET", "/chat/messages", token=token, params={"userId": user_id})
        return data["messages"]

    async def unread_count(self, token: str) -> int:
        data = await self.request("GET", "/chat/unread-count", token=token)
        return int(data["unreadCount"])

    async def mark_read(self, token: str, user_id: Optional[str] = None) -> None:
        await self.request("PUT", "/chat/mark-read", token=token, json={"userId": user_id})

    async def list_conversations(self, token: str) -> list[dict]:
        data = await self.request("GET", "/chat/conversations", token=token)
        return data["conversations"]


_client: Optional[BackendClient] = None


async def get_client() -> BackendClient:
    global _client
    if _client is None:
        _client = BackendClient(settings.API_URL, timeout=settings.REQUEST_TIMEOUT)
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
