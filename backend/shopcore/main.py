"""
Order-Management Backend with OpenTelemetry Instrumentation
"""

import logging
import time
from typing import Iterator, List

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopcore import __version__, crud, schemas
from shopcore.database import SessionLocal, create_tables, settings
from shopcore.errors import CustomerNotFound, ProductNotFound, ShopError, TransactionNotFound
from shopcore.logging_config import configure_logging
from shopcore.metrics import http_request_duration_seconds, http_requests_total
from shopcore.ordering import OrderPlacer

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Order Management API",
    description="Customers, products and transactions with atomic order placement",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_order_placer() -> OrderPlacer:
    return OrderPlacer(SessionLocal)


# ============================================================================
# MIDDLEWARE AND ERROR HANDLERS
# ============================================================================

@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)

    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    http_requests_total.labels(
        method=request.method, endpoint=endpoint, status=str(response.status_code)
    ).inc()
    http_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(
        time.time() - start_time
    )
    return response


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Database error"})


# ============================================================================
# OPERATIONAL
# ============================================================================

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.service_name}


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# ============================================================================
# CUSTOMERS
# ============================================================================

@app.post("/customers", status_code=201)
def create_customer(customer: schemas.CustomerCreate, db: Session = Depends(get_db)):
    db_customer = crud.create_customer(db, customer)
    return {"message": "Customer created successfully", "customerId": db_customer.id}


@app.get("/customers")
def list_customers(db: Session = Depends(get_db)):
    customers = crud.get_customers(db)
    return {"customers": [schemas.Customer.model_validate(c) for c in customers]}


@app.get("/customers/user/{user_id}")
def get_customer_by_user_id(user_id: int, db: Session = Depends(get_db)):
    customer = crud.get_customer_by_user_id(db, user_id)
    if customer is None:
        raise CustomerNotFound(message="Customer not found for this user")
    return {"customer": schemas.Customer.model_validate(customer)}


@app.get("/customers/{customer_id}")
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    customer = crud.get_customer(db, customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)
    return {"customer": schemas.Customer.model_validate(customer)}


@app.put("/customers/{customer_id}")
def update_customer(customer_id: int, customer: schemas.CustomerUpdate, db: Session = Depends(get_db)):
    if crud.update_customer(db, customer_id, customer) is None:
        raise CustomerNotFound(customer_id)
    return {"message": "Customer updated successfully"}


@app.delete("/customers/{customer_id}")
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    if not crud.delete_customer(db, customer_id):
        raise CustomerNotFound(customer_id)
    return {"message": "Customer deleted successfully"}


# ============================================================================
# PRODUCTS
# ============================================================================

@app.post("/products", response_model=schemas.Product, status_code=201)
def create_product(product: schemas.ProductCreate, db: Session = Depends(get_db)):
    return crud.create_product(db, product)


@app.get("/products", response_model=List[schemas.Product])
def list_products(db: Session = Depends(get_db)):
    return crud.get_products(db)


@app.get("/products/{product_id}", response_model=schemas.Product)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = crud.get_product(db, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


# ============================================================================
# TRANSACTIONS
# ============================================================================

@app.post("/transactions", status_code=201)
def create_transaction(
    transaction: schemas.TransactionCreate,
    placer: OrderPlacer = Depends(get_order_placer),
):
    transaction_id = placer.place_order(transaction.customer_id, transaction.items)
    return {"message": "Transaction created successfully", "transactionId": transaction_id}


@app.get("/transactions", response_model=List[schemas.Transaction])
def list_transactions(db: Session = Depends(get_db)):
    return crud.get_transactions(db)


@app.get("/transactions/customer/{customer_id}", response_model=List[schemas.Transaction])
def list_customer_transactions(customer_id: int, db: Session = Depends(get_db)):
    transactions = crud.get_transactions_by_customer(db, customer_id)
    if not transactions:
        raise TransactionNotFound(message="No transactions found for this customer")
    return transactions


@app.get("/transactions/{transaction_id}", response_model=schemas.Transaction)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    transaction = crud.get_transaction(db, transaction_id)
    if transaction is None:
        raise TransactionNotFound(transaction_id)
    return transaction


@app.put("/transactions/{transaction_id}/status")
def update_transaction_status(
    transaction_id: int,
    body: schemas.TransactionStatusUpdate,
    db: Session = Depends(get_db),
):
    if not crud.update_transaction_status(db, transaction_id, body.status):
        raise TransactionNotFound(transaction_id)
    return {"message": "Transaction status updated successfully"}


@app.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    if not crud.delete_transaction(db, transaction_id):
        raise TransactionNotFound(transaction_id)
    return {"message": "Transaction deleted successfully"}


FastAPIInstrumentor.instrument_app(app)


@app.on_event("startup")
async def startup_event():
    configure_logging(settings.log_level)
    create_tables()
    logger.info("Order backend started (service=%s)", settings.service_name)
