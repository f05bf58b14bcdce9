from __future__ import annotations
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from analytics import PaymentSummary, summarize_payments, summarize_reviews
from backend_client import BackendClient, BackendError, close_client, get_client, settings
from catalog import filter_items, price_item, search_items
from checkout import price_cart, quote, stock_problem
from schemas import (
    CATEGORIES,
    AuthSession,
    Cart,
    CartAdd,
    CartUpdate,
    ChatMessage,
    ChatMessageIn,
    CheckoutIn,
    CheckoutQuote,
    Favorite,
    FavoriteIn,
    Item,
    ItemBatch,
    ItemIn,
    ItemUpdate,
    LoginIn,
    Order,
    OrderStatus,
    OrderStatusUpdate,
    Payment,
    PaymentStatus,
    PaymentStatusUpdate,
    PlacedOrder,
    PricedCart,
    PricedItem,
    Refund,
    RefundResult,
    Review,
    ReviewPage,
    SignupIn,
    User,
)

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_client()


app = FastAPI(title="Handcrafted Gifts Storefront", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Utils

def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return token.strip()


def require_token(token: Optional[str] = Depends(bearer_token)) -> str:
    if not token:
        raise HTTPException(status_code=401, detail="User authentication required")
    return token


@app.get("/")
async def root():
    return {"message": "Handcrafted Gifts Storefront Running"}


@app.get("/test")
async def test(client: BackendClient = Depends(get_client)):
    return {
        "storefront": "Running",
        "backend_url": client.base_url,
        "api_url": "Set" if os.getenv("API_URL") else "Default",
        "currency": settings.CURRENCY,
        "free_shipping_threshold": str(settings.FREE_SHIPPING_THRESHOLD),
        "shipping_charge": str(settings.SHIPPING_CHARGE),
    }


# Auth

@app.post("/auth/signup", response_model=AuthSession, status_code=201)
async def signup(payload: SignupIn, client: BackendClient = Depends(get_client)):
    data = await client.signup(payload.full_name, payload.email, payload.phone, payload.password, payload.confirm_password)
    return AuthSession(**data)


@app.post("/auth/login", response_model=AuthSession)
async def login(payload: LoginIn, client: BackendClient = Depends(get_client)):
    return AuthSession(**await client.login(payload.email, payload.password))


@app.get("/auth/me", response_model=User)
async def current_user(token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    return User(**await client.me(token))


# Catalog

@app.get("/categories", response_model=list[str])
async def list_categories():
    return list(CATEGORIES)


@app.get("/products", response_model=list[PricedItem])
async def list_products(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    client: BackendClient = Depends(get_client),
):
    docs = await client.list_items(category=category, is_active=True)
    items = [Item(**d) for d in docs]
    items = search_items(filter_items(items, category=category), q)
    now = datetime.now(timezone.utc)
    return [price_item(item, now) for item in items]


@app.get("/products/{item_id}", response_model=PricedItem)
async def get_product(item_id: str, client: BackendClient = Depends(get_client)):
    item = Item(**await client.get_item(item_id))
    return price_item(item)


@app.post("/products/batch", response_model=list[PricedItem])
async def get_products_batch(payload: ItemBatch, client: BackendClient = Depends(get_client)):
    docs = await client.get_items_batch(payload.item_ids)
    now = datetime.now(timezone.utc)
    return [price_item(Item(**d), now) for d in docs]


@app.get("/products/{item_id}/reviews", response_model=ReviewPage)
async def get_product_reviews(item_id: str, client: BackendClient = Depends(get_client)):
    data = await client.get_reviews(item_id) or {}
    page = ReviewPage(**data)
    if page.reviews and not page.rating_count:
        page = summarize_reviews(page.reviews)
    return page


class ReviewIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: str = Field(min_length=10, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(ge=1, le=5, default=None)
    review: Optional[str] = Field(min_length=10, max_length=1000, default=None)


@app.post("/products/{item_id}/reviews", response_model=Review, status_code=201)
async def add_product_review(
    item_id: str,
    payload: ReviewIn,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    user = await client.me(token)
    saved = await client.add_review({
        "itemId": item_id,
        "userId": user["id"],
        "userName": user.get("fullName", ""),
        "userEmail": user.get("email", ""),
        "rating": payload.rating,
        "review": payload.review,
    }, token=token)
    return Review(**saved)


@app.put("/reviews/{review_id}", response_model=Review)
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    return Review(**await client.update_review(review_id, payload.rating, payload.review, token=token))


@app.delete("/reviews/{review_id}")
async def delete_review(review_id: str, token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    await client.delete_review(review_id, token=token)
    return {"deleted": True}


# Cart

async def fetch_cart(client: BackendClient, user_id: str, token: Optional[str]) -> Cart:
    return Cart(**await client.get_cart(user_id, token=token))


@app.get("/cart/{user_id}", response_model=PricedCart)
async def get_cart(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return price_cart(await fetch_cart(client, user_id, token))


@app.post("/cart/{user_id}/items", response_model=PricedCart, status_code=201)
async def add_cart_item(
    user_id: str,
    payload: CartAdd,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    await client.add_to_cart(payload.item_id, user_id, payload.quantity, payload.custom_message, token=token)
    return price_cart(await fetch_cart(client, user_id, token))


@app.put("/cart/{user_id}/items/{line_id}", response_model=PricedCart)
async def update_cart_item(
    user_id: str,
    line_id: str,
    payload: CartUpdate,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    await client.update_cart_line(line_id, user_id, payload.quantity, payload.custom_message, token=token)
    return price_cart(await fetch_cart(client, user_id, token))


@app.delete("/cart/{user_id}/items/{line_id}", response_model=PricedCart)
async def remove_cart_item(
    user_id: str,
    line_id: str,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    await client.remove_cart_line(line_id, user_id, token=token)
    return price_cart(await fetch_cart(client, user_id, token))


@app.delete("/cart/{user_id}")
async def clear_cart(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    await client.clear_cart(user_id, token=token)
    return {"cleared": True}


# Checkout

@app.get("/checkout/{user_id}/quote", response_model=CheckoutQuote)
async def checkout_quote(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    cart = await fetch_cart(client, user_id, token)
    if not cart.items:
        raise HTTPException(status_code=400, detail="Cart is empty")
    return quote(
        cart,
        settings.FREE_SHIPPING_THRESHOLD,
        settings.SHIPPING_CHARGE,
        currency=settings.CURRENCY,
        symbol=settings.CURRENCY_SYMBOL,
    )


@app.post("/checkout/{user_id}", response_model=PlacedOrder, status_code=201)
async def place_order(
    user_id: str,
    payload: CheckoutIn,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    cart = await fetch_cart(client, user_id, token)
    problem = stock_problem(cart)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    data = await client.place_order(user_id, payload.model_dump(by_alias=True, exclude_none=True), token=token)
    placed = PlacedOrder(**data)
    logger.info("order %s placed for user %s", placed.order.order_number or placed.order.id, user_id)
    return placed


# Orders

@app.get("/orders/user/{user_id}", response_model=list[Order])
async def list_user_orders(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return [Order(**d) for d in await client.list_user_orders(user_id, token=token)]


@app.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return Order(**await client.get_order(order_id, token=token))


# Favorites

@app.get("/favorites/{user_id}", response_model=list[Favorite])
async def list_favorites(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return [Favorite(**d) for d in await client.list_favorites(user_id, include_items=True, token=token)]


@app.post("/favorites/{user_id}", response_model=Favorite, status_code=201)
async def add_favorite(
    user_id: str,
    payload: FavoriteIn,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    return Favorite(**await client.add_favorite(payload.item_id, user_id, token=token))


@app.get("/favorites/{user_id}/{item_id}")
async def is_favorite(user_id: str, item_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return {"isFavorited": await client.check_favorite(item_id, user_id, token=token)}


@app.post("/favorites/{user_id}/check", response_model=dict[str, bool])
async def check_favorites(
    user_id: str,
    payload: ItemBatch,
    token: Optional[str] = Depends(bearer_token),
    client: BackendClient = Depends(get_client),
):
    if not payload.item_ids:
        return {}
    return await client.check_favorites_batch(payload.item_ids, user_id, token=token)


@app.delete("/favorites/{user_id}/{item_id}")
async def remove_favorite(user_id: str, item_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    await client.remove_favorite(item_id, user_id, token=token)
    return {"removed": True}


# Payments

@app.get("/payments/order/{order_id}", response_model=Payment)
async def get_order_payment(order_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return Payment(**await client.get_order_payment(order_id, token=token))


@app.get("/payments/user/{user_id}", response_model=list[Payment])
async def list_user_payments(user_id: str, token: Optional[str] = Depends(bearer_token), client: BackendClient = Depends(get_client)):
    return [Payment(**d) for d in await client.list_user_payments(user_id, token=token)]


# Admin

@app.post("/admin/items", response_model=PricedItem, status_code=201)
async def admin_add_item(payload: ItemIn, token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    data = await client.add_item(payload.model_dump(by_alias=True, exclude_none=True), token=token)
    return price_item(Item(**data))


@app.put("/admin/items/{item_id}", response_model=PricedItem)
async def admin_update_item(
    item_id: str,
    payload: ItemUpdate,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    updates = payload.model_dump(by_alias=True, exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")
    return price_item(Item(**await client.update_item(item_id, updates, token=token)))


@app.delete("/admin/items/{item_id}")
async def admin_delete_item(item_id: str, token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    await client.delete_item(item_id, token=token)
    return {"deleted": True}


@app.get("/admin/items", response_model=list[PricedItem])
async def admin_list_items(
    category: Optional[str] = Query(None),
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    # inactive items included
    docs = await client.list_items(category=category)
    now = datetime.now(timezone.utc)
    return [price_item(Item(**d), now) for d in docs]

@app.get("/admin/orders", response_model=list[Order])
async def admin_list_orders(
    status: Optional[OrderStatus] = Query(None),
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    return [Order(**d) for d in await client.list_orders(status=status, token=token)]


@app.put("/admin/orders/{order_id}/status", response_model=Order)
async def admin_update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    if payload.order_status is None and payload.payment_status is None:
        raise HTTPException(status_code=400, detail="Nothing to update")
    data = await client.update_order_status(order_id, payload.order_status, payload.payment_status, token=token)
    return Order(**data)


@app.get("/admin/payments", response_model=list[Payment])
async def admin_list_payments(
    status: Optional[PaymentStatus] = Query(None),
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    return [Payment(**d) for d in await client.list_payments(status=status, token=token)]


@app.put("/admin/payments/{payment_id}/status", response_model=Payment)
async def admin_update_payment_status(
    payment_id: str,
    payload: PaymentStatusUpdate,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    return Payment(**await client.update_payment_status(payment_id, payload.payment_status, token=token))


@app.get("/admin/payments/summary", response_model=PaymentSummary)
async def admin_payment_summary(token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    payments = [Payment(**d) for d in await client.list_payments(token=token)]
    return summarize_payments(payments)


@app.post("/admin/payments/{payment_id}/refund", response_model=RefundResult)
async def admin_refund_payment(
    payment_id: str,
    payload: Refund,
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    data = await client.refund_payment(payment_id, payload.refund_amount, payload.refund_reason, token=token)
    logger.info("refund requested for payment %s", payment_id)
    return RefundResult(**data)


# Chat

@app.post("/chat/messages", response_model=ChatMessage, status_code=201)
async def send_chat_message(payload: ChatMessageIn, token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    text = payload.message.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Message is required")
    data = await client.send_message(text, token, product_id=payload.product_id, target_user_id=payload.target_user_id)
    return ChatMessage(**data)


@app.get("/chat/messages", response_model=list[ChatMessage])
async def list_chat_messages(
    user_id: Optional[str] = Query(None),
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    return [ChatMessage(**d) for d in await client.list_messages(token, user_id=user_id)]


@app.get("/chat/unread-count")
async def chat_unread_count(token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    return {"unreadCount": await client.unread_count(token)}


@app.put("/chat/mark-read")
async def chat_mark_read(
    user_id: Optional[str] = Query(None),
    token: str = Depends(require_token),
    client: BackendClient = Depends(get_client),
):
    await client.mark_read(token, user_id=user_id)
    return {"marked": True}


@app.get("/chat/conversations")
async def chat_conversations(token: str = Depends(require_token), client: BackendClient = Depends(get_client)):
    return {"conversations": await client.list_conversations(token)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
