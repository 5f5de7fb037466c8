# backend/routes/cart.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from utils.errors import (
    InvalidQuantity, ProductNotFound, InvalidSize, InsufficientStock, ItemNotFound, UserNotFound
)
from models.users import User
from models.product import Product
from models.cart import Cart, CartItem
from schemas.common import ApiResponse, IdPath, in_id_range
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartItemOut, CartProductOut
from schemas.size import SizeOut

router = APIRouter(prefix="/cart", tags=["Cart"])
logger = logging.getLogger(__name__)


# ---- CART OPERATIONS ----
# Plain functions over a session so checkout and tests can use them directly.
# Every check runs before the first write: a rejected call leaves the cart as it was.

def _find_cart(db: Session, user_id: int) -> Optional[Cart]:
    return db.query(Cart).filter(Cart.user_id == user_id).first()

def _find_line(cart: Optional[Cart], product_id: int, size_id: int) -> Optional[CartItem]:
    if cart is None:
        return None
    return next(
        (it for it in cart.items if it.product_id == product_id and it.size_id == size_id),
        None,
    )

def _require_positive(quantity, message: Optional[str] = None) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(message)
    return quantity

def _product_with_size(db: Session, product_id: int, size_id: int) -> Product:
    if not in_id_range(product_id):
        raise ProductNotFound()
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise ProductNotFound()
    if not product.has_size(size_id):
        raise InvalidSize(f"Size {size_id} is not available for product {product_id}")
    return product

def _check_stock(product: Product, wanted: int) -> None:
    if product.stock < wanted:
        raise InsufficientStock(available=product.stock, requested=wanted)

def get_or_create_cart(db: Session, user_id: int) -> Cart:
    cart = _find_cart(db, user_id)
    if cart:
        return cart
    if db.get(User, user_id) is None:
        raise UserNotFound()
    logger.info("No cart for user %s, creating an empty one", user_id)
    cart = Cart(user_id=user_id)
    db.add(cart)
    db.commit()
    db.refresh(cart)
    return cart

def add_item(db: Session, user_id: int, product_id: int, size_id: int, quantity: int) -> Cart:
    _require_positive(quantity)
    product = _product_with_size(db, product_id, size_id)
    cart = _find_cart(db, user_id)

    line = _find_line(cart, product_id, size_id)
    # Validate the resulting total, not just the delta
    new_total = (line.quantity if line else 0) + quantity
    _check_stock(product, new_total)

    if cart is None:
        cart = get_or_create_cart(db, user_id)

    if line:
        line.quantity = new_total
        logger.info("User %s: product %s size %s quantity -> %s", user_id, product_id, size_id, new_total)
    else:
        cart.items.append(CartItem(product_id=product_id, size_id=size_id, quantity=quantity))
        logger.info("User %s: added product %s size %s x%s", user_id, product_id, size_id, quantity)

    db.commit()
    db.refresh(cart)
    return cart

def update_item_quantity(db: Session, user_id: int, product_id: int, size_id: int, quantity: int) -> Cart:
    _require_positive(quantity, "Quantity must be a positive integer. To delete an item use the remove operation")

    product = _product_with_size(db, product_id, size_id)
    cart = _find_cart(db, user_id)
    line = _find_line(cart, product_id, size_id)
    if line is None:
        raise ItemNotFound()

    # Absolute quantity, not a delta
    _check_stock(product, quantity)

    line.quantity = quantity
    db.commit()
    db.refresh(cart)
    return cart

def remove_item(db: Session, user_id: int, product_id: int, size_id: int) -> Cart:
    # The product may have left the catalog; its line must still be removable
    cart = _find_cart(db, user_id)
    line = _find_line(cart, product_id, size_id)
    if line is None:
        raise ItemNotFound()

    cart.items.remove(line)
    db.commit()
    db.refresh(cart)
    return cart

def clear_cart(db: Session, user_id: int) -> Optional[Cart]:
    cart = _find_cart(db, user_id)
    if cart is None:
        return None
    cart.items.clear()
    db.commit()
    db.refresh(cart)
    return cart


# ---- READ PROJECTION ----
# Resolves live product/size data for display; nothing here is persisted.

def cart_view(cart: Cart) -> CartOut:
    items_out = []
    items_price = 0.0

    for it in cart.items:
        product = it.product
        line_total = None
        product_out = None
        if product is not None:
            product_out = CartProductOut.model_validate(product)
            line_total = round(product.discounted_price * it.quantity, 2)
            items_price += line_total

        items_out.append(CartItemOut(
            product_id=it.product_id,
            size_id=it.size_id,
            quantity=it.quantity,
            product=product_out,
            size=SizeOut.model_validate(it.size) if it.size is not None else None,
            line_total=line_total,
        ))

    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=items_out,
        total_quantity=cart.total_quantity,
        items_price=round(items_price, 2),
    )


# ---- ENDPOINTS ----

@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = get_or_create_cart(db, current_user.id)
    out = cart_view(cart)

    # Log cart view action
    write_log(
        db,
        user_id=current_user.id,
        action="CART_VIEW",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"items": len(out.items), "items_price": out.items_price},
    )
    return ApiResponse(data=out)

@router.post("/items", response_model=ApiResponse[CartOut])
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = add_item(db, current_user.id, payload.productId, payload.sizeId, payload.quantity)
    out = cart_view(cart)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": payload.productId, "size_id": payload.sizeId, "qty": payload.quantity},
    )
    return ApiResponse(message="Item added to cart", data=out)

@router.put("/items/{product_id}/{size_id}", response_model=ApiResponse[CartOut])
def update_cart_item(
    product_id: IdPath,
    size_id: IdPath,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = update_item_quantity(db, current_user.id, product_id, size_id, payload.quantity)
    out = cart_view(cart)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": product_id, "size_id": size_id, "qty": payload.quantity},
    )
    return ApiResponse(message="Cart updated", data=out)

@router.delete("/items/{product_id}/{size_id}", response_model=ApiResponse[CartOut])
def delete_cart_item(
    product_id: IdPath,
    size_id: IdPath,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = remove_item(db, current_user.id, product_id, size_id)
    out = cart_view(cart)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": product_id, "size_id": size_id, "cart_items": len(out.items)},
    )
    return ApiResponse(message="Item removed from cart", data=out)

@router.delete("", response_model=ApiResponse[CartOut])
def clear(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    cart = clear_cart(db, current_user.id)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_CLEAR",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"had_cart": cart is not None},
    )
    if cart is None:
        return ApiResponse(message="Cart is already empty")
    return ApiResponse(message="Cart cleared", data=cart_view(cart))
