"""
Database Models
===============

Defines the database schema using SQLAlchemy ORM.

Tables:
- customers: Buyers, one per application user
- products: Items for sale, with their stock level
- transactions: Customer orders (header)
- transaction_items: Products in each order, with prices snapshotted

Key SQLAlchemy Concepts:
- Column: A field in the table
- relationship(): Links tables together (foreign keys)
- back_populates: Two-way relationship
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shopcore.database import Base

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

TRANSACTION_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)

# Money columns: exact decimals, never floats
Money = Numeric(10, 2)


# ============================================================================
# CUSTOMER MODEL
# ============================================================================

class Customer(Base):
    """
    A buyer profile attached to an application user.

    Attributes:
        id: Primary key
        user_id: Owning user identifier (one customer per user)
        name, email, phone, address: Contact details

    Relationships:
        transactions: Orders placed by this customer
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)

    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=False)

    # Orders are never removed with their customer; the foreign key refuses it
    transactions = relationship("Transaction", back_populates="customer", passive_deletes="all")


# ============================================================================
# PRODUCT MODEL
# ============================================================================

class Product(Base):
    """
    Products available for purchase.

    Stock is only ever decremented by a committed transaction and must never
    go negative.
    """
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False, index=True)
    price = Column(Money, nullable=False)
    stock = Column(Integer, default=0, nullable=False)

    transaction_items = relationship("TransactionItem", back_populates="product")


# ============================================================================
# TRANSACTION MODEL
# ============================================================================

class Transaction(Base):
    """
    A customer order.

    Attributes:
        id: Primary key
        customer_id: Customer who placed the order
        total_amount: Sum of price_per_item * quantity over its items,
            fixed when the order is placed
        status: pending, completed or cancelled (the only mutable field)
        transaction_date: When the order was placed

    Relationships:
        items: Line items, owned exclusively by this order
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    total_amount = Column(Money, nullable=False)
    status = Column(String(20), default=STATUS_PENDING, nullable=False)

    transaction_date = Column(DateTime(timezone=True), server_default=func.now())

    customer = relationship("Customer", back_populates="transactions")
    # Deleting an order deletes its items
    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.item_id",
    )


# ============================================================================
# TRANSACTION ITEM MODEL
# ============================================================================

class TransactionItem(Base):
    """
    One product line within an order. Immutable once written.

    product_name and price_per_item are snapshots taken when the order was
    placed; later edits to the product do not touch them.
    """
    __tablename__ = "transaction_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_transaction_items_quantity_positive"),)

    item_id = Column(Integer, primary_key=True, index=True)

    transaction_id = Column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_per_item = Column(Money, nullable=False)

    transaction = relationship("Transaction", back_populates="items")
    product = relationship("Product", back_populates="transaction_items")
