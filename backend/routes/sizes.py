# backend/routes/sizes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, ROLE_ADMIN
from models.size import Size, SizeCategory, SizeSystem
from models.cart import CartItem
from schemas.common import ApiResponse, IdPath
from schemas.size import SizeCreate, SizeUpdate, SizeOut
from utils.audit import write_log, client_ip
from utils.errors import SizeNotFound, SizeInUse
from utils.tokenJWT import role_required

router = APIRouter(prefix="/sizes", tags=["Sizes"])

def _get_size(db: Session, size_id: int) -> Size:
    size = db.get(Size, size_id)
    if not size:
        raise SizeNotFound()
    return size


@router.get("", response_model=ApiResponse[List[SizeOut]])
def list_sizes(
    category: Optional[SizeCategory] = Query(None),
    system: Optional[SizeSystem] = Query(None),
    db: Session = Depends(get_db),
):
    q = db.query(Size)
    if category is not None:
        q = q.filter(Size.category == category)
    if system is not None:
        q = q.filter(Size.system == system)
    sizes = q.order_by(Size.category, Size.system, Size.value).all()
    return ApiResponse(data=[SizeOut.model_validate(s) for s in sizes])


@router.get("/{size_id}", response_model=ApiResponse[SizeOut])
def get_size(size_id: IdPath, db: Session = Depends(get_db)):
    return ApiResponse(data=SizeOut.model_validate(_get_size(db, size_id)))


@router.post("", response_model=ApiResponse[SizeOut], status_code=201)
def create_size(
    payload: SizeCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    size = Size(category=payload.category, system=payload.system, value=payload.value.strip())
    db.add(size)
    db.commit()
    db.refresh(size)

    write_log(db, user_id=current_user.id, action="SIZE_CREATE", resource="sizes", status="SUCCESS",
              ip=client_ip(request), meta={"id": size.id, "label": size.label})
    return ApiResponse(message="Size created", data=SizeOut.model_validate(size))


@router.put("/{size_id}", response_model=ApiResponse[SizeOut])
def update_size(
    size_id: IdPath,
    payload: SizeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    size = _get_size(db, size_id)
    for key, value in payload.model_dump(exclude_none=True).items():
        setattr(size, key, value)
    db.commit()
    db.refresh(size)

    write_log(db, user_id=current_user.id, action="SIZE_UPDATE", resource="sizes", status="SUCCESS",
              ip=client_ip(request), meta={"id": size.id})
    return ApiResponse(message="Size updated", data=SizeOut.model_validate(size))


@router.delete("/{size_id}", response_model=ApiResponse)
def delete_size(
    size_id: IdPath,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    size = _get_size(db, size_id)
    # Cart lines reference the size by foreign key; product links are dropped with it
    in_carts = db.query(CartItem).filter(CartItem.size_id == size_id).count()
    if in_carts:
        write_log(db, user_id=current_user.id, action="SIZE_DELETE", resource="sizes", status="FAIL",
                  ip=client_ip(request), meta={"id": size_id, "cart_lines": in_carts})
        raise SizeInUse(f"Size {size.label} is still used by {in_carts} cart item(s)")
    db.delete(size)
    db.commit()

    write_log(db, user_id=current_user.id, action="SIZE_DELETE", resource="sizes", status="SUCCESS",
              ip=client_ip(request), meta={"id": size_id})
    return ApiResponse(message="Size deleted")
