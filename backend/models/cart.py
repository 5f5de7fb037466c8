# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Represents the user's shopping cart (one per user)
class Cart(Base):
    __tablename__ = "carts" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False) # Owner
    created_at = Column(DateTime(timezone=True), server_default=func.now()) # Creation timestamp
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # One-to-many relationship with cart items
    items = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id"
    )

    @property
    def total_quantity(self) -> int:
        return sum(it.quantity for it in self.items)


# A single cart line: product + chosen size + quantity. Never stores a price.
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False) # Parent cart
    product_id = Column(Integer, index=True, nullable=False) # Weak reference to the product
    size_id = Column(Integer, ForeignKey("sizes.id"), nullable=False) # Chosen size
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)

    cart = relationship("Cart", back_populates="items") # Relationship back to Cart
    product = relationship(
        "Product", primaryjoin="foreign(CartItem.product_id) == Product.id", viewonly=True
    )
    size = relationship("Size")

    __table_args__ = (
        # At most one line per (product, size) in a cart; quantities are merged
        UniqueConstraint("cart_id", "product_id", "size_id", name="uq_cartitem_cart_product_size"),
    )
