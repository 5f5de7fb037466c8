# backend/utils/errors.py
"""Application error taxonomy.

Every error carries the HTTP status it maps to and a message that is safe
to show to the caller. ``main.py`` renders them in the standard response
envelope ``{"success": false, "message": ...}``.
"""
from typing import Optional


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)


# --- 400: malformed or missing input ---
class InvalidInputError(AppError):
    status_code = 400
    message = "Invalid input"

class InvalidQuantity(InvalidInputError):
    message = "Quantity must be a positive integer"

class MissingFields(InvalidInputError):
    message = "Required fields are missing"

class OtpInvalid(InvalidInputError):
    message = "The verification code is invalid or has expired"


# --- 404: referenced entity absent ---
class NotFoundError(AppError):
    status_code = 404
    message = "Not found"

class ProductNotFound(NotFoundError):
    message = "Product not found"

class SizeNotFound(NotFoundError):
    message = "Size not found"

class ItemNotFound(NotFoundError):
    message = "Item with this size was not found in the cart"

class OrderNotFound(NotFoundError):
    message = "Order not found"

class UserNotFound(NotFoundError):
    message = "User not found"


# --- 400: request is well formed but conflicts with current state ---
class ConflictError(AppError):
    status_code = 400
    message = "Request conflicts with the current state"

class InvalidSize(ConflictError):
    message = "Size is not available for this product"

class SizeInUse(ConflictError):
    message = "Size is still used by items in shopping carts"

class InsufficientStock(ConflictError):
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient stock (requested: {requested}, available: {available}, short by {self.shortfall})",
            available=available, requested=requested, shortfall=self.shortfall,
        )

class EmptyCart(ConflictError):
    message = "Your cart is empty"

class AlreadyPaid(ConflictError):
    message = "Order has already been paid"

class AlreadyDelivered(ConflictError):
    message = "Order has already been delivered"

class InvalidStatusTransition(ConflictError):
    message = "Order status cannot be changed"

class EmailTaken(ConflictError):
    message = "Email is already registered and verified"


# --- 401 / 403 ---
class AuthError(AppError):
    status_code = 401
    message = "Could not validate credentials"

class ForbiddenError(AppError):
    status_code = 403
    message = "Forbidden"


# --- 500: store / infrastructure failure ---
class InternalError(AppError):
    status_code = 500
    message = "Internal server error"
