# backend/models/product.py
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Table, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base

# Association table: which sizes a product can be ordered in
product_sizes = Table(
    "product_sizes",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("size_id", Integer, ForeignKey("sizes.id", ondelete="CASCADE"), primary_key=True),
)

# Model Product
# Catalog entry read by the cart and checkout flows. Stock is a shared
# counter that the cart only reads; it is never reserved or decremented there.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String)
    brand = Column(String, index=True)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)

    is_on_sale = Column(Boolean, nullable=False, default=False)
    discount = Column(Float, CheckConstraint("discount >= 0 AND discount <= 100"), nullable=False, default=0)

    # Image handle in the image store (URL for display, public id for deletion)
    image_url = Column(String, nullable=True)
    image_public_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sizes = relationship("Size", secondary=product_sizes, lazy="selectin", backref="products")

    @property
    def discounted_price(self) -> float:
        if self.is_on_sale and self.discount and self.discount > 0 and self.price:
            return round(self.price * (1 - self.discount / 100.0), 2)
        return self.price

    def has_size(self, size_id: int) -> bool:
        return any(s.id == size_id for s in self.sizes)

    def find_size(self, size_id: int):
        return next((s for s in self.sizes if s.id == size_id), None)
