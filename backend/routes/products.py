# backend/routes/products.py
import logging
from typing import Optional, List, Literal

from fastapi import (
    APIRouter, Depends, Query, Request,
    UploadFile, File, Form
)
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import role_required
from utils.audit import write_log, client_ip
from utils.errors import ProductNotFound, SizeNotFound, InvalidInputError, InternalError
from utils.image_store import ImageStore, get_image_store
from models.users import User, ROLE_ADMIN
from models.product import Product
from models.size import Size
from schemas.common import ApiResponse, Page, IdPath, in_id_range
from schemas.product import ProductOut

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger(__name__)


# ---- HELPERS ----

def get_product(db: Session, product_id: int) -> Product:
    if not in_id_range(product_id):
        raise ProductNotFound()
    product = db.get(Product, product_id)
    if not product:
        raise ProductNotFound()
    return product

def _parse_size_ids(raw: Optional[str]) -> List[int]:
    """Parse the comma separated ``sizes`` form field, e.g. ``"1,4,7"``."""
    if not raw:
        return []
    try:
        ids = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidInputError("sizes must be a comma separated list of size ids")
    if not all(in_id_range(i) for i in ids):
        raise InvalidInputError("sizes contains an id out of range")
    return ids

def _load_sizes(db: Session, size_ids: List[int]) -> List[Size]:
    if not size_ids:
        return []
    sizes = db.query(Size).filter(Size.id.in_(size_ids)).all()
    missing = set(size_ids) - {s.id for s in sizes}
    if missing:
        raise SizeNotFound(f"Unknown size ids: {sorted(missing)}")
    return sizes

def _validate_pricing(price: Optional[float], stock: Optional[int], discount: Optional[float]) -> None:
    if price is not None and price < 0:
        raise InvalidInputError("Price cannot be negative")
    if stock is not None and stock < 0:
        raise InvalidInputError("Stock cannot be negative")
    if discount is not None and not 0 <= discount <= 100:
        raise InvalidInputError("Discount must be between 0 and 100")

def _commit_with_image(db: Session, store: ImageStore, public_id: Optional[str]) -> None:
    # The image is already in the store; remove it again if the row cannot be written
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Product write failed, discarding uploaded image %s: %s", public_id, e)
        store.discard(public_id)
        raise InternalError("Could not save the product")


# =========================
# CATALOG READS
# =========================
@router.get("", response_model=ApiResponse[Page[ProductOut]])
def list_products(
    q: Optional[str] = Query(None, description="Search by name, brand or description"),
    brand: Optional[str] = Query(None),
    on_sale: Optional[bool] = Query(None),
    in_stock: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    sort_by: Literal["name", "price", "stock", "created_at"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
):
    query = db.query(Product)

    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.brand.ilike(like),
            Product.description.ilike(like),
        ))
    if brand:
        query = query.filter(Product.brand.ilike(f"%{brand}%"))
    if on_sale is not None:
        query = query.filter(Product.is_on_sale == on_sale)
    if in_stock:
        query = query.filter(Product.stock > 0)

    allowed = {
        "name": Product.name,
        "price": Product.price,
        "stock": Product.stock,
        "created_at": Product.created_at,
    }
    sort_col = allowed[sort_by]
    query = query.order_by(sort_col.asc() if order == "asc" else sort_col.desc(), Product.id.asc())

    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return ApiResponse(data=Page(
        items=[ProductOut.model_validate(p) for p in items], total=total, page=page, page_size=page_size
    ))


@router.get("/{product_id}", response_model=ApiResponse[ProductOut])
def read_product(product_id: IdPath, db: Session = Depends(get_db)):
    return ApiResponse(data=ProductOut.model_validate(get_product(db, product_id)))


# =========================
# ADMIN WRITES
# =========================
@router.post("", response_model=ApiResponse[ProductOut], status_code=201)
def add_product(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
    store: ImageStore = Depends(get_image_store),
    file: Optional[UploadFile] = File(None),
    name: str = Form(...),
    price: float = Form(...),
    stock: int = Form(0),
    description: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    is_on_sale: bool = Form(False),
    discount: float = Form(0.0),
    sizes: Optional[str] = Form(None),
):
    _validate_pricing(price, stock, discount)
    size_objs = _load_sizes(db, _parse_size_ids(sizes))

    image_url, public_id = (None, None)
    if file is not None and file.filename:
        image_url, public_id = store.upload(file)

    product = Product(
        name=name.strip(), price=price, stock=stock, description=description, brand=brand,
        is_on_sale=is_on_sale, discount=discount, image_url=image_url, image_public_id=public_id,
        sizes=size_objs,
    )
    db.add(product)
    _commit_with_image(db, store, public_id)
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"id": product.id, "name": product.name}
    )
    return ApiResponse(message="Product created", data=ProductOut.model_validate(product))


@router.patch("/{product_id}", response_model=ApiResponse[ProductOut])
def edit_product(
    product_id: IdPath,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
    store: ImageStore = Depends(get_image_store),
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    stock: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    is_on_sale: Optional[bool] = Form(None),
    discount: Optional[float] = Form(None),
    sizes: Optional[str] = Form(None),
):
    p = get_product(db, product_id)
    _validate_pricing(price, stock, discount)

    if sizes is not None:
        p.sizes = _load_sizes(db, _parse_size_ids(sizes))
    if name is not None: p.name = name.strip()
    if price is not None: p.price = price
    if stock is not None: p.stock = stock
    if description is not None: p.description = description
    if brand is not None: p.brand = brand
    if is_on_sale is not None: p.is_on_sale = is_on_sale
    if discount is not None: p.discount = discount

    old_public_id, new_public_id = p.image_public_id, None
    if file is not None and file.filename:
        p.image_url, new_public_id = store.upload(file)
        p.image_public_id = new_public_id

    _commit_with_image(db, store, new_public_id)
    db.refresh(p)
    # Old image goes only once the new handle is stored
    if new_public_id and old_public_id:
        store.discard(old_public_id)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_EDIT", resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": p.id}
    )
    return ApiResponse(message="Product updated", data=ProductOut.model_validate(p))


@router.delete("/{product_id}", response_model=ApiResponse)
def delete_product(
    product_id: IdPath,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
    store: ImageStore = Depends(get_image_store),
):
    product = get_product(db, product_id)
    pid, public_id = product.id, product.image_public_id
    db.delete(product)
    db.commit()
    # Orders keep their own copy of name/image/price; carts show the line as unavailable
    store.discard(public_id)

    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              status="SUCCESS", ip=client_ip(request), meta={"id": pid})
    return ApiResponse(message="Product deleted")
