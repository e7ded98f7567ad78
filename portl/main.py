# portl/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from portl.api.api import api_router
from portl.core.config import settings
from portl.core.exceptions import (
    CheckoutError,
    InventoryConflictError,
    PaymentAmountMismatchError,
)
from portl.core.limiter import limiter
from portl.scheduler import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Application starting up...")
    if settings.ENABLE_SCHEDULER:
        init_scheduler()
    yield
    if settings.ENABLE_SCHEDULER:
        shutdown_scheduler()
    logger.info("Application shutting down...")


app = FastAPI(
    title="Portl Checkout Service",
    version="1.0.0",
    description="""
        **Portl ticketing checkout and order lifecycle**

        ## Features

        * **Carts**: One cart per buyer and store, with sliding expiry
        * **Checkout**: Price resolution, promotions and voucher codes
        * **Payments**: PayMongo hosted checkout, webhook and polling confirmation
        * **Tickets**: Issued exactly once when an order is confirmed
        * **Expiry**: Pending orders are cancelled when their hold runs out

        ## Authentication

        Buyer endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    docs_url=None if settings.is_production else "/docs",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = [
    settings.APP_URL,
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_origin_regex=r"https?://[a-z0-9-]+\." + settings.ROOT_DOMAIN.replace(".", r"\."),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError):
    if isinstance(exc, (InventoryConflictError, PaymentAmountMismatchError)):
        logger.error(f"Unreconciled payment on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Something went wrong. Please try again."},
    )


app.include_router(api_router, prefix="/api")


@app.get("/")
def read_root():
    return {"status": "Portl Checkout Service is running"}
