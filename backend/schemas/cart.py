from pydantic import BaseModel, Field
from typing import List, Optional

from schemas.common import ORMBase, IdField
from schemas.size import SizeOut

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    productId: IdField
    sizeId: IdField
    quantity: int = Field(strict=True)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(strict=True)

# Live catalog data shown next to a cart line (never stored in the cart)
class CartProductOut(ORMBase):
    id: int
    name: str
    image_url: Optional[str] = None
    price: float
    discounted_price: float
    stock: int
    is_on_sale: bool
    discount: float
    brand: Optional[str] = None
    sizes: List[SizeOut] = []

# Response schema for a single cart line item
class CartItemOut(BaseModel):
    product_id: int
    size_id: int
    quantity: int
    product: Optional[CartProductOut] = None
    size: Optional[SizeOut] = None
    line_total: Optional[float] = None

# Response schema for the entire cart
class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    total_quantity: int
    items_price: float
