# storefront/main.py
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.error_handlers import register_exception_handlers
from storefront.api.routers import auth, cart, orders, payments, products
from storefront.core.config import settings
from storefront.core.logging import setup_logging
from storefront.core.metrics import export_metrics
from storefront.middleware import ObservabilityMiddleware

# --- Models registration (so Alembic and the mapper see every table) ---
import storefront.models.user     # noqa: F401
import storefront.models.product  # noqa: F401
import storefront.models.cart     # noqa: F401
import storefront.models.order    # noqa: F401

TAGS_METADATA = [
    {"name": "auth", "description": "Registration and session tokens."},
    {"name": "cart", "description": "Per-user persisted cart and local cache synchronization."},
    {"name": "payments", "description": "Braintree client token and checkout."},
    {"name": "orders", "description": "Buyer order history and administrator status management."},
    {"name": "products", "description": "Catalog lookups."},
]

setup_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    description=(
        "Storefront checkout API.\n\n"
        "- **Cart**: add, remove, clear and sync the shopper's cart.\n"
        "- **Payments**: Braintree client token and one-shot checkout.\n"
        "- **Orders**: order history and the admin status lifecycle."
    ),
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# --- Middlewares ---
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- Routers ---
app.include_router(auth.router, prefix=settings.API_V1_STR)
app.include_router(cart.router, prefix=settings.API_V1_STR)
app.include_router(payments.router, prefix=settings.API_V1_STR)
app.include_router(orders.router, prefix=settings.API_V1_STR)
app.include_router(products.router, prefix=settings.API_V1_STR)


@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs_url": "/docs", "redoc_url": "/redoc"}


@app.get("/metrics", include_in_schema=False)
def metrics():
    body, content_type = export_metrics()
    return Response(content=body, media_type=content_type)
