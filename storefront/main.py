import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.config import settings
from storefront.database import create_db_and_tables
from storefront.errors import StorefrontError
from storefront.routes import (
    access,
    admin_orders,
    health,
    orders,
    webhooks,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Maison Edition Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        settings.frontend_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map StorefrontError subclasses to their HTTP status codes."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Payment Webhooks"])
app.include_router(access.router, prefix="/books", tags=["Content Access"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "order_endpoints": [
            "/orders/checkout", "/orders/{order_id}/renew", "/orders/by-session",
            "/orders/mine", "/orders/shipping-cost"
        ],
        "webhook_endpoints": [
            "/webhooks/stripe"
        ],
        "access_endpoints": [
            "/books/{book_id}/access"
        ],
        "admin_order_endpoints": [
            "/admin/orders", "/admin/orders/{order_id}",
            "/admin/orders/{order_id}/status", "/admin/orders/{order_id}/tracking"
        ],
    }
