"""Domain exception taxonomy.

Every exception carries the HTTP status it maps to so that
``libs.common.error_handler`` can render it without a lookup table.
Raise these from business logic; routers never build error responses.
"""

from typing import Optional


class LaundryError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LaundryError):
    status_code = 400


class InvalidStateTransition(LaundryError):
    status_code = 400

    def __init__(
        self,
        message: str,
        current: Optional[str] = None,
        attempted: Optional[str] = None,
    ):
        super().__init__(message)
        self.current = current
        self.attempted = attempted


class NegativeStock(LaundryError):
    status_code = 400


class Unauthorized(LaundryError):
    status_code = 401


class InsufficientStock(LaundryError):
    status_code = 402

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_name}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class Forbidden(LaundryError):
    status_code = 403


class NotFound(LaundryError):
    status_code = 404


class OrderNotFound(NotFound):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")


class CustomerNotFound(NotFound):
    def __init__(self, customer_id):
        super().__init__(f"Customer {customer_id} not found")


class DependencyFailure(LaundryError):
    status_code = 500
