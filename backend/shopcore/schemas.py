"""
API Schemas
===========

Pydantic models for request bodies and responses.

Request bodies use the camelCase field names clients send (customerId,
productId, userId); ORM-backed responses use the column names.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# CUSTOMERS
# ============================================================================

class CustomerCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(default=None, alias="userId")
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    email: str
    phone: Optional[str] = None
    address: str


# ============================================================================
# PRODUCTS
# ============================================================================

class ProductCreate(BaseModel):
    name: str
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)


class Product(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    stock: int


# ============================================================================
# TRANSACTIONS
# ============================================================================

class TransactionItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(default=None, alias="productId")
    quantity: Optional[int] = None


class TransactionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_id: Optional[int] = Field(default=None, alias="customerId")
    items: Optional[List[TransactionItemIn]] = None


class TransactionStatusUpdate(BaseModel):
    status: Optional[str] = None


class TransactionItem(BaseModel):
    item_id: int
    product_id: int
    product_name: str
    quantity: int
    price_per_item: float


class Transaction(BaseModel):
    id: int
    customer_id: int
    total_amount: float
    status: str
    transaction_date: Optional[datetime] = None
    items: List[TransactionItem] = []
