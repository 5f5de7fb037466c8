# backend/schemas/product.py
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from schemas.common import ORMBase
from schemas.size import SizeOut


# Full product representation, including the derived sale price
class ProductOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    price: float = Field(ge=0)
    discounted_price: float
    stock: int = Field(ge=0)
    is_on_sale: bool
    discount: float = Field(ge=0, le=100)
    image_url: Optional[str] = None
    sizes: List[SizeOut] = []
    created_at: Optional[datetime] = None
