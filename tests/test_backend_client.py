"""BackendClient against a faked REST backend."""
from decimal import Decimal

import httpx
import pytest

from backend_client import BackendClient, BackendError, api_base_url


@pytest.mark.parametrize("url, expected", [
    ("http://localhost:5000", "http://localhost:5000/api"),
    ("http://localhost:5000/", "http://localhost:5000/api"),
    ("https://shop.example/api", "https://shop.example/api"),
    ("https://shop.example/api/", "https://shop.example/api"),
])
def test_api_base_url(url, expected):
    assert api_base_url(url) == expected


@pytest.mark.asyncio
async def test_list_items_unwraps_envelope_and_sends_filters(backend, fake_backend, make_item):
    fake_backend.reply("GET", "/api/items", {"items": [make_item()]})
    items = await backend.list_items(category="Birthday", is_active=True)
    assert items[0]["title"] == "Engraved Photo Frame"
    sent = fake_backend.requests[-1]
    assert sent.url.params["category"] == "Birthday"
    assert sent.url.params["isActive"] == "true"


@pytest.mark.asyncio
async def test_token_and_user_id_headers(backend, fake_backend):
    fake_backend.reply("POST", "/api/cart/add", {})
    await backend.add_to_cart("it1", "u1", quantity=2, custom_message="Happy birthday!", token="tok")
    sent = fake_backend.requests[-1]
    assert sent.headers["Authorization"] == "Bearer tok"
    assert sent.headers["user-id"] == "u1"
    assert fake_backend.last_json() == {"itemId": "it1", "userId": "u1", "quantity": 2, "customMessage": "Happy birthday!"}


@pytest.mark.asyncio
async def test_no_token_no_authorization_header(backend, fake_backend):
    fake_backend.reply("GET", "/api/items/it1", {"item": {"id": "it1"}})
    await backend.get_item("it1")
    assert "Authorization" not in fake_backend.requests[-1].headers


@pytest.mark.asyncio
async def test_error_status_raises_with_backend_message(backend, fake_backend):
    fake_backend.reply("POST", "/api/auth/login", status=401, success=False, message="Invalid email or password")
    with pytest.raises(BackendError) as info:
        await backend.login("a@b.c", "wrong-password")
    assert info.value.status_code == 401
    assert info.value.message == "Invalid email or password"


@pytest.mark.asyncio
async def test_unsuccessful_envelope_with_ok_status_raises(backend, fake_backend):
    fake_backend.reply("GET", "/api/cart/user/u1", status=200, success=False, message="nope")
    with pytest.raises(BackendError) as info:
        await backend.get_cart("u1")
    assert info.value.status_code == 502


@pytest.mark.asyncio
async def test_non_json_body_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="<html>boom</html>"))
    async with BackendClient("http://backend.test", transport=transport) as client:
        with pytest.raises(BackendError) as info:
            await client.get_item("x")
    assert info.value.status_code == 502


@pytest.mark.asyncio
async def test_transport_failure_maps_to_502_and_timeout_to_504():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with BackendClient("http://backend.test", transport=httpx.MockTransport(refuse)) as client:
        with pytest.raises(BackendError) as info:
            await client.list_items()
    assert info.value.status_code == 502

    async with BackendClient("http://backend.test", transport=httpx.MockTransport(slow)) as client:
        with pytest.raises(BackendError) as info:
            await client.list_items()
    assert info.value.status_code == 504


@pytest.mark.asyncio
async def test_decimal_payloads_are_sent_as_numbers(backend, fake_backend):
    fake_backend.reply("POST", "/api/payments/p1/refund", {"payment": {"id": "p1", "paymentStatus": "paid"}})
    await backend.refund_payment("p1", refund_amount=Decimal("250.50"), token="admin")
    assert fake_backend.last_json() == {"refundAmount": 250.5}


@pytest.mark.asyncio
async def test_add_item_defaults_discount_to_zero(backend, fake_backend):
    fake_backend.reply("POST", "/api/items", {"item": {"id": "new"}})
    await backend.add_item({"title": "Candle Set", "price": 499}, token="admin")
    assert fake_backend.last_json() == {"discount": 0, "title": "Candle Set", "price": 499}


@pytest.mark.asyncio
async def test_favorites_calls(backend, fake_backend):
    fake_backend.reply("GET", "/api/favorites/check/it1/u1", {"isFavorited": True, "favoriteId": "f1"})
    fake_backend.reply("POST", "/api/favorites/check-batch", {"it1": True, "it2": False})
    fake_backend.reply("GET", "/api/favorites/user/u1", {"favorites": [], "count": 0})
    assert await backend.check_favorite("it1", "u1") is True
    assert await backend.check_favorites_batch(["it1", "it2"], "u1") == {"it1": True, "it2": False}
    assert await backend.list_favorites("u1", include_items=True) == []
    assert fake_backend.requests[-1].url.params["includeItems"] == "true"


@pytest.mark.asyncio
async def test_chat_calls(backend, fake_backend):
    fake_backend.reply("GET", "/api/chat/unread-count", {"unreadCount": 3})
    fake_backend.reply("PUT", "/api/chat/mark-read", None)
    fake_backend.reply("GET", "/api/chat/conversations", {"conversations": [{"userId": "u1"}]})
    assert await backend.unread_count("tok") == 3
    await backend.mark_read("tok", user_id="u1")
    assert fake_backend.last_json() == {"userId": "u1"}
    assert await backend.list_conversations("tok") == [{"userId": "u1"}]


@pytest.mark.asyncio
async def test_update_item_sends_explicit_nulls(backend, fake_backend):
    fake_backend.reply("PUT", "/api/items/it1", {"item": {"id": "it1"}})
    await backend.update_item("it1", {"discountStartDate": None, "discountEndDate": None, "discount": Decimal(5)}, token="admin")
    assert fake_backend.last_json() == {"discountStartDate": None, "discountEndDate": None, "discount": 5.0}


@pytest.mark.asyncio
async def test_other_calls_still_drop_unset_arguments(backend, fake_backend):
    fake_backend.reply("PUT", "/api/orders/o1/status", {"order": {"id": "o1"}})
    await backend.update_order_status("o1", order_status="shipped", token="admin")
    assert fake_backend.last_json() == {"orderStatus": "shipped"}
