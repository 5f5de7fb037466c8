# backend/routes/orders.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from config import settings
from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log, client_ip
from utils.errors import (
    EmptyCart, ProductNotFound, InvalidSize, InsufficientStock, OrderNotFound, ForbiddenError,
    AlreadyPaid, AlreadyDelivered, InvalidStatusTransition, InternalError
)
from models.users import User, ROLE_ADMIN
from models.product import Product
from models.cart import Cart
from models.order import (
    Order, OrderItem, OrderStatus, PaymentMethod, GATEWAY_METHODS, TERMINAL_STATUSES
)
from schemas.common import ApiResponse, Page, IdPath, in_id_range
from schemas.order import (
    OrderResponse, OrderItemOut, OrderCreatePayload, ShippingAddress, CheckoutResponse,
    PaymentHint, PaymentDetails, OrderStatusPatch, StatusCount
)

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


# ---- PRICING POLICY ----

def compute_shipping(items_price: float) -> float:
    # Free shipping strictly above the threshold
    if items_price > settings.FREE_SHIPPING_THRESHOLD:
        return 0.0
    return float(settings.FLAT_SHIPPING_FEE)

def compute_tax(items_price: float) -> float:
    # No tax rules yet
    return 0.0


# ---- MAPPING ----

def _order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = [
        OrderItemOut(
            product_id=it.product_id,
            name=it.name,
            image_url=it.image_url,
            unit_price=it.unit_price,
            quantity=it.quantity,
            size_label=it.size_label,
            line_total=round(it.unit_price * it.quantity, 2),
        )
        for it in order.items
    ]
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        items=items,
        shipping_address=ShippingAddress(
            fullName=order.shipping_full_name,
            address=order.shipping_address_line,
            address2=order.shipping_address_line2,
            city=order.shipping_city,
            postalCode=order.shipping_postal_code,
            country=order.shipping_country,
            phone=order.shipping_phone,
        ),
        payment_method=order.payment_method,
        payment_result=order.payment_result,
        items_price=order.items_price,
        shipping_price=order.shipping_price,
        tax_price=order.tax_price,
        total_price=order.total_price,
        status=order.status,
        is_paid=order.is_paid,
        paid_at=order.paid_at,
        is_delivered=order.is_delivered,
        delivered_at=order.delivered_at,
        notes=order.notes,
        created_at=order.created_at,
    )

def _payment_hint(method: PaymentMethod, order_id: int) -> PaymentHint:
    # Response shaping only, the stored order is the same for every method
    if method in GATEWAY_METHODS:
        return PaymentHint(
            method=method,
            message=f"Order created. Start the {method.value} payment for order {order_id} with a separate call.",
            requires_payment_initiation=True,
        )
    return PaymentHint(method=method, message=f"Order created with {method.value}.", requires_payment_initiation=False)


# ---- CART -> ORDER TRANSITION ----

def _snapshot_line(db: Session, line) -> OrderItem:
    # Live re-read of the catalog: the price at checkout wins
    product = db.query(Product).filter(Product.id == line.product_id).first()
    if not product:
        raise ProductNotFound(f"Product {line.product_id} in your cart is no longer available")
    size = product.find_size(line.size_id)
    if size is None:
        raise InvalidSize(f"Size {line.size_id} is no longer available for {product.name}")
    if product.stock < line.quantity:
        raise InsufficientStock(available=product.stock, requested=line.quantity)

    return OrderItem(
        product_id=product.id,
        name=product.name,
        image_url=product.image_url,
        unit_price=product.discounted_price,
        quantity=line.quantity,
        size_label=size.label,
    )

def checkout(db: Session, user: User, payload: OrderCreatePayload) -> Order:
    """Convert the user's cart into an order and delete the cart.

    Two separate commits: the order first, then the cart deletion. If the
    order cannot be stored the cart is left intact; if the process dies
    between the commits both the order and the cart survive.
    """
    cart = db.query(Cart).filter(Cart.user_id == user.id).first()
    if not cart or not cart.items:
        raise EmptyCart()

    order_items = [_snapshot_line(db, line) for line in cart.items]

    items_price = round(sum(it.unit_price * it.quantity for it in order_items), 2)
    shipping_price = compute_shipping(items_price)
    tax_price = compute_tax(items_price)
    total_price = round(items_price + shipping_price + tax_price, 2)

    address = payload.shippingAddress
    order = Order(
        user_id=user.id,
        shipping_full_name=address.fullName,
        shipping_address_line=address.address,
        shipping_address_line2=address.address2,
        shipping_city=address.city,
        shipping_postal_code=address.postalCode,
        shipping_country=address.country,
        shipping_phone=address.phone,
        payment_method=payload.paymentMethod,
        notes=payload.notes,
        items_price=items_price,
        shipping_price=shipping_price,
        tax_price=tax_price,
        total_price=total_price,
        status=OrderStatus.PENDING,
        is_paid=False,
        is_delivered=False,
        items=order_items,
    )

    try:
        db.add(order)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store order for user %s, cart kept: %s", user.id, e)
        raise InternalError("Could not place the order, please try again")
    db.refresh(order)
    logger.info("Order %s created for user %s (total %s)", order.id, user.id, total_price)

    db.delete(cart)
    db.commit()
    logger.info("Cart cleared for user %s", user.id)
    return order


# ---- STATUS TRANSITIONS ----

def _load_order(db: Session, order_id: int) -> Order:
    if not in_id_range(order_id):
        raise OrderNotFound()
    order = db.query(Order).options(selectinload(Order.items)).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound()
    return order

def _guard_terminal(order: Order, action: str) -> None:
    if order.status in (OrderStatus.CANCELLED, OrderStatus.FAILED):
        raise InvalidStatusTransition(f"Cannot {action} an order that is {order.status.value}")

def mark_paid(db: Session, order_id: int, details: Optional[PaymentDetails] = None) -> Order:
    order = _load_order(db, order_id)
    if order.is_paid:
        raise AlreadyPaid()
    _guard_terminal(order, "pay")

    now = datetime.now(timezone.utc)
    provided = details.model_dump(exclude_none=True) if details else {}
    order.is_paid = True
    order.paid_at = now
    order.payment_result = {
        "id": str(order.id),
        "status": "COMPLETED",
        "update_time": now.isoformat(),
        **provided,
    }
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PROCESSING

    db.commit()
    db.refresh(order)
    return order

def mark_delivered(db: Session, order_id: int) -> Order:
    order = _load_order(db, order_id)
    if order.is_delivered:
        raise AlreadyDelivered()
    _guard_terminal(order, "deliver")

    order.is_delivered = True
    order.delivered_at = datetime.now(timezone.utc)
    order.status = OrderStatus.DELIVERED

    db.commit()
    db.refresh(order)
    return order

def update_status(db: Session, order_id: int, new_status: OrderStatus) -> Order:
    order = _load_order(db, order_id)
    if order.status in TERMINAL_STATUSES:
        raise InvalidStatusTransition(f"Cannot change status from {order.status.value}")
    if new_status == OrderStatus.DELIVERED:
        raise InvalidStatusTransition("Use the deliver action to mark an order as delivered")
    if new_status == OrderStatus.PENDING and order.status != OrderStatus.PENDING:
        raise InvalidStatusTransition("An order cannot go back to Pending")

    order.status = new_status
    db.commit()
    db.refresh(order)
    return order


# ---- ENDPOINTS ----

@router.post("", response_model=ApiResponse[CheckoutResponse], status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreatePayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = checkout(db, current_user, payload)

    write_log(
        db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
        ip=client_ip(request),
        meta={"order_id": order.id, "total": order.total_price, "method": order.payment_method.value},
    )
    hint = _payment_hint(order.payment_method, order.id)
    return ApiResponse(
        message="Order placed",
        data=CheckoutResponse(order=_order_to_out(order), payment=hint),
    )


# List the current user's orders, newest first
@router.get("/myorders", response_model=ApiResponse[List[OrderResponse]])
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    orders = db.query(Order).options(selectinload(Order.items)).filter(
        Order.user_id == current_user.id
    ).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return ApiResponse(data=[_order_to_out(o) for o in orders])


# List all orders with filters (admin only)
@router.get("", response_model=ApiResponse[Page[OrderResponse]])
def list_all_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    is_paid: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    q = db.query(Order).options(selectinload(Order.items))
    if status_filter is not None:
        q = q.filter(Order.status == status_filter)
    if is_paid is not None:
        q = q.filter(Order.is_paid == is_paid)

    total = q.count()
    rows = q.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    return ApiResponse(data=Page(
        items=[_order_to_out(o) for o in rows], total=total, page=page, page_size=page_size
    ))


# Number of orders per status (admin only)
@router.get("/status-counts", response_model=ApiResponse[List[StatusCount]])
def order_status_counts(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    rows = db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    return ApiResponse(data=[StatusCount(status=s, count=c) for s, c in rows])


# Get details of a specific order
@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
def get_order_detail(
    order_id: IdPath,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = _load_order(db, order_id)
    if order.user_id != current_user.id and not current_user.is_admin:
        logger.warning("User %s tried to read order %s owned by %s", current_user.id, order_id, order.user_id)
        raise ForbiddenError("You are not allowed to view this order")
    return ApiResponse(data=_order_to_out(order))


@router.put("/{order_id}/pay", response_model=ApiResponse[OrderResponse])
def pay_order(
    order_id: IdPath,
    request: Request,
    details: Optional[PaymentDetails] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    order = mark_paid(db, order_id, details)
    write_log(db, user_id=current_user.id, action="ORDER_PAID", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id})
    return ApiResponse(message="Order marked as paid", data=_order_to_out(order))


@router.put("/{order_id}/deliver", response_model=ApiResponse[OrderResponse])
def deliver_order(
    order_id: IdPath,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    order = mark_delivered(db, order_id)
    write_log(db, user_id=current_user.id, action="ORDER_DELIVERED", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id})
    return ApiResponse(message="Order marked as delivered", data=_order_to_out(order))


# Manually update order status (admin only)
@router.patch("/{order_id}/status", response_model=ApiResponse[OrderResponse])
def change_order_status(
    order_id: IdPath,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    old_status = _load_order(db, order_id).status
    order = update_status(db, order_id, payload.status)
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id, "old": old_status.value, "new": order.status.value})
    return ApiResponse(message="Order status updated", data=_order_to_out(order))
