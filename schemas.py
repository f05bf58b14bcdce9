from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel

# Backend records keep their camelCase names on the wire; amounts go out as
# JSON numbers, the way the backend sends them
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

Role = Literal["user", "admin"]
Category = Literal["Birthday", "Anniversary", "Wedding", "Corporate", "Best Sellers", "Custom"]
PaymentMethod = Literal["cod", "online", "upi", "card"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded", "cancelled"]
OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
Sender = Literal["user", "admin"]

CATEGORIES: tuple[str, ...] = ("Birthday", "Anniversary", "Wedding", "Corporate", "Best Sellers", "Custom")


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class User(WireModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    role: Role = "user"


class AuthSession(WireModel):
    user: User
    token: str


class Item(WireModel):
    id: str
    title: str
    price: Money
    category: str = "Custom"
    description: str = ""
    stock: int = 0
    image: Optional[str] = None
    image_type: str = "image/jpeg"
    discount: Optional[Money] = None
    discount_title: Optional[str] = None
    discount_start_date: Optional[str] = None
    discount_end_date: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ItemIn(WireModel):
    title: str = Field(min_length=2, max_length=200)
    price: Money = Field(ge=0)
    category: Category
    description: str = Field(min_length=10)
    stock: int = Field(ge=0, default=0)
    image: str
    image_type: str = "image/jpeg"
    discount: Money = Field(ge=0, le=100, default=Decimal(0))
    discount_title: Optional[str] = Field(max_length=100, default=None)
    discount_start_date: Optional[str] = None
    discount_end_date: Optional[str] = None

    @model_validator(mode="after")
    def window_has_both_bounds(self) -> ItemIn:
        if bool(self.discount_start_date) != bool(self.discount_end_date):
            raise ValueError("discountStartDate and discountEndDate must be given together")
        return self


class ItemUpdate(WireModel):
    title: Optional[str] = Field(min_length=2, max_length=200, default=None)
    price: Optional[Money] = Field(ge=0, default=None)
    category: Optional[Category] = None
    description: Optional[str] = Field(min_length=10, default=None)
    stock: Optional[int] = Field(ge=0, default=None)
    image: Optional[str] = None
    image_type: Optional[str] = None
    discount: Optional[Money] = Field(ge=0, le=100, default=None)
    discount_title: Optional[str] = None
    discount_start_date: Optional[str] = None
    discount_end_date: Optional[str] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def window_has_both_bounds(self) -> ItemUpdate:
        # a one-sided window switches the discount off
        both = {"discount_start_date", "discount_end_date"}
        if both <= self.model_fields_set and bool(self.discount_start_date) != bool(self.discount_end_date):
            raise ValueError("discountStartDate and discountEndDate must be set or cleared together")
        return self


class PricedItem(Item):
    discount_active: bool
    effective_price: Money
    savings: Money


class CartLine(WireModel):
    id: str
    item_id: str
    item: Optional[Item] = None
    quantity: int = Field(ge=1, default=1)
    custom_message: Optional[str] = ""
    added_at: Optional[datetime] = None


class Cart(WireModel):
    id: Optional[str] = None
    user_id: str
    items: list[CartLine] = Field(default_factory=list)


class PricedCartLine(CartLine):
    discount_active: bool = False
    unit_price: Money = Decimal(0)
    effective_unit_price: Money = Decimal(0)
    line_total: Money = Decimal(0)


class PricedCart(WireModel):
    id: Optional[str] = None
    user_id: str
    items: list[PricedCartLine]
    subtotal: Money
    total_discount: Money
    total: Money
    item_count: int


class CartAdd(WireModel):
    item_id: str
    quantity: int = Field(ge=1, default=1)
    custom_message: Optional[str] = None


class CartUpdate(WireModel):
    quantity: Optional[int] = Field(ge=1, default=None)
    custom_message: Optional[str] = None


class ShippingAddress(WireModel):
    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1)


class CheckoutIn(WireModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    notes: Optional[str] = None


class CheckoutQuote(WireModel):
    subtotal: Money
    total_discount: Money
    shipping_charges: Money
    total_amount: Money
    item_count: int
    free_shipping_threshold: Money
    currency: str
    display_total: str


class OrderLine(WireModel):
    item_id: str
    title: str
    price: Money
    discounted_price: Optional[Money] = None
    quantity: int = 1
    custom_message: Optional[str] = ""
    image: Optional[str] = None


class Order(WireModel):
    id: str
    order_number: Optional[str] = None
    user_id: Optional[str] = None
    items: list[OrderLine] = Field(default_factory=list)
    shipping_address: Optional[ShippingAddress] = None
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None
    order_status: OrderStatus = "pending"
    subtotal: Optional[Money] = None
    total_discount: Optional[Money] = None
    shipping_charges: Optional[Money] = None
    total_amount: Money = Decimal(0)
    notes: Optional[str] = ""
    placed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class Payment(WireModel):
    id: str
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    user_id: Optional[str] = None
    customer_name: Optional[str] = None
    amount: Money = Decimal(0)
    currency: str = "INR"
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus = "pending"
    payment_date: Optional[datetime] = None
    refund_amount: Optional[Money] = None
    refund_reason: Optional[str] = None


class PlacedOrder(WireModel):
    order: Order
    payment: Optional[Payment] = None


class OrderStatusUpdate(WireModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class Refund(WireModel):
    refund_amount: Optional[Money] = Field(gt=0, default=None)
    refund_reason: Optional[str] = None


class RefundResult(WireModel):
    id: str
    payment_status: PaymentStatus
    refund_amount: Money
    refund_date: Optional[datetime] = None


class Review(WireModel):
    id: str
    item_id: str
    user_id: str
    user_name: str
    user_email: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    review: str
    is_verified: bool = False
    created_at: Optional[datetime] = None


class ReviewPage(WireModel):
    reviews: list[Review] = Field(default_factory=list)
    average_rating: float = 0
    rating_count: int = 0
    rating_distribution: dict[int, int] = Field(default_factory=dict)


class Favorite(WireModel):
    id: str
    user_id: str
    item_id: str
    item: Optional[Item] = None
    created_at: Optional[datetime] = None


class FavoriteIn(WireModel):
    item_id: str


class ChatMessage(WireModel):
    id: str
    user_id: str
    product_id: Optional[str] = None
    message: str
    sender: Sender
    is_read: bool = False
    created_at: Optional[datetime] = None


class ChatMessageIn(WireModel):
    message: str = Field(min_length=1)
    product_id: Optional[str] = None
    target_user_id: Optional[str] = None


class SignupIn(WireModel):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    password: str = Field(min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> SignupIn:
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginIn(WireModel):
    email: str
    password: str


class ItemBatch(WireModel):
    item_ids: list[str] = Field(default_factory=list)


class PaymentStatusUpdate(WireModel):
    payment_status: PaymentStatus
