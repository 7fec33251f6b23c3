"""
Errors
======

Failures surfaced by the service layer. Each carries the HTTP status it maps
to, so the API layer renders them with a single exception handler.

- 400: MissingInput, InsufficientStock, InvalidStatus
- 404: CustomerNotFound, ProductNotFound, TransactionNotFound
- 409: CustomerHasTransactions
- 500: StorageError (the unit of work was rolled back)
"""


class ShopError(Exception):
    """Base class for failures reported to API clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message}


class MissingInput(ShopError):
    status_code = 400


class CustomerNotFound(ShopError):
    status_code = 404

    def __init__(self, customer_id=None, message: str = "Customer not found"):
        super().__init__(message)
        self.customer_id = customer_id


class ProductNotFound(ShopError):
    status_code = 404

    def __init__(self, product_id):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class InsufficientStock(ShopError):
    status_code = 400

    def __init__(self, product_id, product_name: str, available: int, requested: int):
        super().__init__(
            f"Not enough stock for product {product_name}. "
            f"Available: {available}, requested: {requested}"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class TransactionNotFound(ShopError):
    status_code = 404

    def __init__(self, transaction_id=None, message: str = "Transaction not found"):
        super().__init__(message)
        self.transaction_id = transaction_id


class InvalidStatus(ShopError):
    status_code = 400

    def __init__(self, status):
        super().__init__("Invalid status provided")
        self.status = status


class StorageError(ShopError):
    """A persistence failure; the enclosing transaction has been rolled back."""

    status_code = 500

    def __init__(self, detail: str, message: str = "Error creating transaction, transaction rolled back"):
        super().__init__(message)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.detail}


class CustomerHasTransactions(ShopError):
    status_code = 409

    def __init__(self, customer_id):
        super().__init__("Customer has transactions and cannot be deleted")
        self.customer_id = customer_id


def storage_detail(exc: Exception) -> str:
    """Driver message of a database error, without SQL text or parameters."""
    return str(getattr(exc, "orig", None) or exc)
