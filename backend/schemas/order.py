from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from models.order import OrderStatus, PaymentMethod
from schemas.common import ORMBase


# Required shipping sub-record of an order
class ShippingAddress(BaseModel):
    fullName: str = Field(min_length=1)
    address: str = Field(min_length=1)
    address2: Optional[str] = None
    city: str = Field(min_length=1)
    postalCode: str = Field(min_length=1)
    country: str = Field(min_length=1)
    phone: str = Field(min_length=1)


# Input schema for checkout
class OrderCreatePayload(BaseModel):
    shippingAddress: ShippingAddress
    paymentMethod: PaymentMethod
    notes: Optional[str] = None


# Output schema for an individual order line snapshot
class OrderItemOut(ORMBase):
    product_id: Optional[int] = None
    name: str
    image_url: Optional[str] = None
    unit_price: float
    quantity: int
    size_label: str
    line_total: float


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    items: List[OrderItemOut]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_result: Optional[Dict[str, Any]] = None
    items_price: float
    shipping_price: float
    tax_price: float
    total_price: float
    status: OrderStatus
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# Payment hint returned next to a freshly created order
class PaymentHint(BaseModel):
    method: PaymentMethod
    message: str
    requires_payment_initiation: bool


class CheckoutResponse(BaseModel):
    order: OrderResponse
    payment: PaymentHint


# Payment details recorded by an admin / payment callback
class PaymentDetails(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: OrderStatus


class StatusCount(BaseModel):
    status: OrderStatus
    count: int
