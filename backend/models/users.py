# backend/models/users.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from database import Base

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_CUSTOMER)

    # Email verification through a one-time code (stored hashed)
    is_verified = Column(Boolean, nullable=False, default=False)
    otp_hash = Column(String, nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ROLE_ADMIN
