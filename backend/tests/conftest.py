"""
Shared fixtures: an in-memory database per test and a TestClient wired to it.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopcore import models
from shopcore.database import Base
from shopcore.main import app, get_db, get_order_placer
from shopcore.ordering import OrderPlacer


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database (one shared connection)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def placer(session_factory):
    return OrderPlacer(session_factory)


@pytest.fixture
def make_customer(db):
    def _make(user_id=1, name="Ana", email="ana@example.com", phone="555-0101", address="Jl. Merdeka 1"):
        customer = models.Customer(user_id=user_id, name=name, email=email, phone=phone, address=address)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Widget", price="5.00", stock=10):
        product = models.Product(name=name, price=Decimal(price), stock=stock)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def snapshot_state(session_factory):
    """Return a callable capturing every row the order workflow can touch"""
    def _snapshot():
        session = session_factory()
        try:
            products = [
                (p.id, p.name, p.price, p.stock)
                for p in session.query(models.Product).order_by(models.Product.id)
            ]
            transactions = [
                (t.id, t.customer_id, t.total_amount, t.status)
                for t in session.query(models.Transaction).order_by(models.Transaction.id)
            ]
            items = [
                (i.item_id, i.transaction_id, i.product_id, i.quantity, i.price_per_item)
                for i in session.query(models.TransactionItem).order_by(models.TransactionItem.item_id)
            ]
            return products, transactions, items
        finally:
            session.close()

    return _snapshot


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_placer] = lambda: OrderPlacer(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()
