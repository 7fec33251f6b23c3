"""
Order Placement
===============

Places an order as one atomic unit of work:

1. Validate the customer
2. Lock each requested product row (SELECT ... FOR UPDATE), in request order,
   and check its stock
3. Insert the transaction header and one item per requested line, with the
   product's name and price snapshotted
4. Decrement stock
5. Commit

Any failure after the session is opened rolls back everything written so far
and the session is closed on every path (see database.session_scope).

Concurrency:
    Product rows are the only contended resource. The row lock is held until
    commit/rollback, so two orders for the same product are serialised and
    the second one sees the first one's decrement. Rows are locked in the
    order the caller lists them; orders listing overlapping products in
    different orders can deadlock, in which case the database aborts one of
    them and it surfaces as StorageError (the caller may retry).

    Stock is never cached in-process: every read goes through the locked
    session with populate_existing, so the identity map cannot hand back a
    stale row.

Duplicate product ids in one request are cumulative demand on the same
locked row: each line becomes its own item, and the product's stock is
decremented by the sum of their quantities.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopcore import models
from shopcore.database import SessionFactory, session_scope
from shopcore.errors import (
    CustomerNotFound,
    InsufficientStock,
    MissingInput,
    ProductNotFound,
    ShopError,
    StorageError,
    storage_detail,
)
from shopcore.metrics import order_placement_duration_seconds, orders_total, revenue_total

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class OrderLineRequest:
    """One requested (product, quantity) pair."""

    product_id: int
    quantity: int


@dataclass(frozen=True)
class LineSnapshot:
    """A validated line, with the product state read under lock."""

    product_id: int
    product_name: str
    quantity: int
    price_per_item: Decimal


def lock_product_stmt(product_id: int):
    """
    Locking read of one product row.

    SQL generated (PostgreSQL):
        SELECT * FROM products WHERE id = product_id FOR UPDATE
    """
    return (
        select(models.Product)
        .where(models.Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def _field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, dict):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    return None


def normalize_lines(customer_id: Any, items: Optional[Iterable[Any]]) -> List[OrderLineRequest]:
    """
    Presence checks done before any session is opened.

    Items may be OrderLineRequest, pydantic models or plain dicts using
    either product_id/productId keys.

    Raises:
        MissingInput: customer id absent, no items, an item without a
            product id, or a quantity that is not a positive integer
    """
    items = list(items) if items is not None else []
    if not customer_id or not items:
        raise MissingInput("Customer ID and transaction items are required")

    lines = []
    for item in items:
        product_id = _field(item, "product_id", "productId")
        quantity = _field(item, "quantity")
        if product_id is None:
            raise MissingInput("Every transaction item needs a product ID")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise MissingInput(f"Quantity for product {product_id} must be a positive integer")
        lines.append(OrderLineRequest(product_id=product_id, quantity=quantity))

    return lines


class OrderPlacer:
    """
    Places orders against a session factory.

    Args:
        session_factory: Callable returning a new Session; defaults to
            shopcore.database.SessionLocal. The bound database must support
            real row-level locks for the concurrency guarantees to hold.
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory

    def place_order(self, customer_id: Any, items: Optional[Iterable[Any]]) -> int:
        """
        Place an order and return the new transaction id.

        Raises:
            MissingInput: before any session is opened
            CustomerNotFound, ProductNotFound, InsufficientStock: after a
                full rollback
            StorageError: any database failure, after a full rollback
        """
        lines = normalize_lines(customer_id, items)
        start_time = time.time()

        with tracer.start_as_current_span("place_order") as span:
            span.set_attribute("order.customer_id", str(customer_id))
            span.set_attribute("order.item_count", len(lines))

            try:
                with session_scope(self.session_factory) as db:
                    transaction_id, total_amount = self._place(db, customer_id, lines, span)
            except ShopError as exc:
                orders_total.labels(status="rejected").inc()
                logger.info("Order for customer %s rejected: %s", customer_id, exc.message)
                raise
            except SQLAlchemyError as exc:
                span.record_exception(exc)
                span.set_attribute("error", True)
                orders_total.labels(status="error").inc()
                logger.exception("Error creating transaction for customer %s, rolled back", customer_id)
                raise StorageError(storage_detail(exc)) from exc
            finally:
                order_placement_duration_seconds.observe(time.time() - start_time)

            span.set_attribute("order.id", transaction_id)
            span.add_event("order_created", {"order_id": transaction_id, "total_amount": float(total_amount)})

        orders_total.labels(status="success").inc()
        revenue_total.inc(float(total_amount))
        logger.info(
            "Transaction %s created for customer %s: %d item(s), total %s",
            transaction_id, customer_id, len(lines), total_amount,
        )
        return transaction_id

    def _place(self, db: Session, customer_id: Any, lines: List[OrderLineRequest], span):
        with tracer.start_as_current_span("validate_customer"):
            customer = db.query(models.Customer).filter(models.Customer.id == customer_id).first()
            if customer is None:
                span.add_event("customer_not_found", {"customer_id": str(customer_id)})
                raise CustomerNotFound(customer_id)

        with tracer.start_as_current_span("validate_products"):
            snapshots, locked, stock_before, claimed = self._lock_and_validate(db, lines, span)
            total_amount = sum(
                (s.price_per_item * s.quantity for s in snapshots), Decimal("0")
            )
            span.set_attribute("order.total_amount", float(total_amount))

        with tracer.start_as_current_span("save_order"):
            transaction = models.Transaction(
                customer_id=customer.id,
                total_amount=total_amount,
                status=models.STATUS_PENDING,
            )
            db.add(transaction)
            db.flush()  # assigns transaction.id without committing

            for snapshot in snapshots:
                db.add(
                    models.TransactionItem(
                        transaction_id=transaction.id,
                        product_id=snapshot.product_id,
                        product_name=snapshot.product_name,
                        quantity=snapshot.quantity,
                        price_per_item=snapshot.price_per_item,
                    )
                )

        with tracer.start_as_current_span("update_inventory"):
            for product_id, quantity in claimed.items():
                locked[product_id].stock = stock_before[product_id] - quantity
            db.flush()

        return transaction.id, total_amount

    def _lock_and_validate(self, db: Session, lines: List[OrderLineRequest], span):
        snapshots: List[LineSnapshot] = []
        locked: Dict[Any, models.Product] = {}
        stock_before: Dict[Any, int] = {}
        claimed: Dict[Any, int] = {}

        for line in lines:
            product = locked.get(line.product_id)
            if product is None:
                product = db.execute(lock_product_stmt(line.product_id)).scalar_one_or_none()
                if product is None:
                    span.add_event("product_not_found", {"product_id": str(line.product_id)})
                    raise ProductNotFound(line.product_id)
                locked[line.product_id] = product
                stock_before[line.product_id] = product.stock

            available = stock_before[line.product_id] - claimed.get(line.product_id, 0)
            if available < line.quantity:
                span.add_event(
                    "insufficient_stock",
                    {"product_id": str(line.product_id), "requested": line.quantity, "available": available},
                )
                raise InsufficientStock(line.product_id, product.name, available, line.quantity)

            claimed[line.product_id] = claimed.get(line.product_id, 0) + line.quantity
            snapshots.append(
                LineSnapshot(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    price_per_item=product.price,
                )
            )

        return snapshots, locked, stock_before, claimed
