"""
CRUD Operations
===============

Pass-through persistence for customers, products and transaction reads.

Order placement is not here: it needs row locks and an all-or-nothing unit
of work, see shopcore.ordering.

Pattern:
def operation_name(db: Session, parameters) -> ReturnType:
    # Database operations
    return result
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopcore import models, schemas
from shopcore.errors import CustomerHasTransactions, InvalidStatus, MissingInput, StorageError, storage_detail
from shopcore.readmodel import group_transaction_rows

logger = logging.getLogger(__name__)

# Columns a partial customer update may not clear
REQUIRED_CUSTOMER_FIELDS = ("name", "email", "address")


@contextmanager
def write_or_rollback(db: Session, message: str) -> Iterator[None]:
    """
    Wrap a write: a database error rolls the session back and is re-raised
    as StorageError carrying the client-facing message.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(message)
        raise StorageError(storage_detail(exc), message=message) from exc


# ============================================================================
# CUSTOMER CRUD OPERATIONS
# ============================================================================

def create_customer(db: Session, customer: schemas.CustomerCreate) -> models.Customer:
    """
    Create a customer for an application user.

    Raises:
        MissingInput: userId, name, email or address is absent
    """
    if customer.user_id is None or not customer.name or not customer.email or not customer.address:
        raise MissingInput("User ID, name, email, and address are required")

    db_customer = models.Customer(
        user_id=customer.user_id,
        name=customer.name,
        email=customer.email,
        phone=customer.phone,
        address=customer.address,
    )
    with write_or_rollback(db, "Error Creating Customer"):
        db.add(db_customer)
        db.commit()
        db.refresh(db_customer)

    return db_customer


def get_customer(db: Session, customer_id: int) -> Optional[models.Customer]:
    return db.query(models.Customer).filter(models.Customer.id == customer_id).first()


def get_customer_by_user_id(db: Session, user_id: int) -> Optional[models.Customer]:
    return db.query(models.Customer).filter(models.Customer.user_id == user_id).first()


def get_customers(db: Session) -> List[models.Customer]:
    return db.query(models.Customer).order_by(models.Customer.id).all()


def update_customer(
    db: Session,
    customer_id: int,
    customer_update: schemas.CustomerUpdate,
) -> Optional[models.Customer]:
    """
    Update the contact fields of a customer (partial update).

    Returns:
        Updated Customer if found, None otherwise
    """
    db_customer = get_customer(db, customer_id)
    if db_customer is None:
        return None

    # Only fields the client actually sent; an explicit null clears phone only
    for field, value in customer_update.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_CUSTOMER_FIELDS:
            continue
        setattr(db_customer, field, value)

    with write_or_rollback(db, "Error Updating Customer"):
        db.commit()
        db.refresh(db_customer)

    return db_customer


def delete_customer(db: Session, customer_id: int) -> bool:
    """
    Delete a customer that has never placed an order.

    Raises:
        CustomerHasTransactions: the customer still owns transactions
    """
    db_customer = get_customer(db, customer_id)
    if db_customer is None:
        return False

    has_transactions = (
        db.query(models.Transaction.id)
        .filter(models.Transaction.customer_id == customer_id)
        .first()
        is not None
    )
    if has_transactions:
        raise CustomerHasTransactions(customer_id)

    with write_or_rollback(db, "Error Deleting Customer"):
        db.delete(db_customer)
        db.commit()

    return True


# ============================================================================
# PRODUCT CRUD OPERATIONS
# ============================================================================

def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    """
    Retrieve a single product by ID (no lock).

    SQL generated:
        SELECT * FROM products WHERE id = product_id LIMIT 1
    """
    return db.query(models.Product).filter(models.Product.id == product_id).first()


def get_products(db: Session) -> List[models.Product]:
    return db.query(models.Product).order_by(models.Product.id).all()


def create_product(db: Session, product: schemas.ProductCreate) -> models.Product:
    db_product = models.Product(
        name=product.name,
        price=Decimal(str(product.price)),
        stock=product.stock,
    )
    with write_or_rollback(db, "Error Creating Product"):
        db.add(db_product)
        db.commit()
        db.refresh(db_product)

    return db_product


# ============================================================================
# TRANSACTION READS AND UPDATES
# ============================================================================

def _transaction_rows_query():
    """
    Flat join: one row per line item, header columns repeated.

    SQL generated:
        SELECT t.id, t.customer_id, t.total_amount, t.status, t.transaction_date,
               ti.item_id, ti.product_id, ti.product_name, ti.quantity, ti.price_per_item
        FROM transactions t
        LEFT OUTER JOIN transaction_items ti ON ti.transaction_id = t.id
        ORDER BY t.id, ti.item_id
    """
    t = models.Transaction
    ti = models.TransactionItem
    return (
        select(
            t.id,
            t.customer_id,
            t.total_amount,
            t.status,
            t.transaction_date,
            ti.item_id,
            ti.product_id,
            ti.product_name,
            ti.quantity,
            ti.price_per_item,
        )
        .select_from(t)
        .outerjoin(ti, ti.transaction_id == t.id)
        .order_by(t.id, ti.item_id)
    )


def get_transaction(db: Session, transaction_id: int) -> Optional[Dict[str, Any]]:
    """
    Retrieve one transaction with its items as a nested dict.

    Returns:
        The nested transaction, None if not found
    """
    stmt = _transaction_rows_query().where(models.Transaction.id == transaction_id)
    transactions = group_transaction_rows(db.execute(stmt).mappings())
    return transactions[0] if transactions else None


def get_transactions_by_customer(db: Session, customer_id: int) -> List[Dict[str, Any]]:
    stmt = _transaction_rows_query().where(models.Transaction.customer_id == customer_id)
    return group_transaction_rows(db.execute(stmt).mappings())


def get_transactions(db: Session) -> List[Dict[str, Any]]:
    return group_transaction_rows(db.execute(_transaction_rows_query()).mappings())


def update_transaction_status(db: Session, transaction_id: int, status: Optional[str]) -> bool:
    """
    Move a transaction to a new status.

    Returns:
        True if a transaction was updated, False if none has this id

    Raises:
        InvalidStatus: status is not pending, completed or cancelled
    """
    if status not in models.TRANSACTION_STATUSES:
        raise InvalidStatus(status)

    db_transaction = (
        db.query(models.Transaction).filter(models.Transaction.id == transaction_id).first()
    )
    if db_transaction is None:
        return False

    db_transaction.status = status
    with write_or_rollback(db, "Error updating transaction status"):
        db.commit()

    return True


def delete_transaction(db: Session, transaction_id: int) -> bool:
    """Delete a transaction; its items go with it."""
    db_transaction = (
        db.query(models.Transaction).filter(models.Transaction.id == transaction_id).first()
    )
    if db_transaction is None:
        return False

    with write_or_rollback(db, "Error deleting transaction"):
        db.delete(db_transaction)
        db.commit()

    return True
