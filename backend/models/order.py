# backend/models/order.py
import enum
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, JSON, func
)
from sqlalchemy.orm import relationship
from database import Base

class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED}

class PaymentMethod(str, enum.Enum):
    COD = "COD"
    CARD = "Card"
    PAYPAL = "PayPal"
    MOMO = "Momo"
    VNPAY = "VNPay"
    ZALOPAY = "ZaloPay"

# Methods paid through an external gateway; the order is created first and
# the client starts the payment with a separate call.
GATEWAY_METHODS = {PaymentMethod.ZALOPAY}

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # Shipping address details
    shipping_full_name = Column(String, nullable=False)
    shipping_address_line = Column(String, nullable=False)
    shipping_address_line2 = Column(String, nullable=True)
    shipping_city = Column(String, nullable=False)
    shipping_postal_code = Column(String, nullable=False)
    shipping_country = Column(String, nullable=False)
    shipping_phone = Column(String, nullable=False)

    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.COD)
    # Filled by the payment callback / admin mark-paid
    payment_result = Column(JSON, nullable=True)

    # Pricing, frozen at creation
    items_price = Column(Float, nullable=False, default=0.0)
    shipping_price = Column(Float, nullable=False, default=0.0)
    tax_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    is_paid = Column(Boolean, nullable=False, default=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False, index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    user = relationship("User")

# Snapshot of a purchased line; later catalog edits never reach it
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    size_label = Column(String, nullable=False)

    order = relationship("Order", back_populates="items")
