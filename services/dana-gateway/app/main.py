import logging

from fastapi import FastAPI
from app.core.config import settings
from app.core.logging import setup_logging
from app.api.routers import health, merchant, orders, payments
from app.clients.dana import DanaClient
from app.models.order import CheckoutProfile
from app.services.merchant_service import MerchantService
from app.services.order_service import OrderService
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.errors import (
    GatewayError,
    gateway_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from app.middleware.correlation import CorrelationMiddleware
from app.core.metrics import router as metrics_router, MetricsMiddleware

log = logging.getLogger("startup")

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
setup_logging(settings.LOG_LEVEL, debug=settings.DANA_DEBUG)


@app.on_event("startup")
async def on_startup():
    # Missing credentials are fatal here, not per request
    settings.validate_credentials()

    client = DanaClient(settings)
    # Parse the private key once here; a malformed key aborts startup
    client.signer.key
    app.state.dana_client = client
    app.state.order_service = OrderService(client, CheckoutProfile.from_settings(settings))
    app.state.merchant_service = MerchantService(client, default_merchant_id=settings.DANA_MERCHANT_ID)

    log.info(
        "dana client initialized env=%s client_id=%s merchant_id=%s base_url=%s",
        settings.DANA_ENV,
        settings.DANA_CLIENT_ID,
        settings.DANA_MERCHANT_ID or "-",
        client.base_url,
    )


@app.on_event("shutdown")
async def on_shutdown():
    client = getattr(app.state, "dana_client", None)
    if client:
        await client.aclose()
        app.state.dana_client = None


# Middleware: install correlation header propagation (adds X-Request-ID)
app.add_middleware(CorrelationMiddleware)
# Middleware: metrics timing AFTER correlation (so we can enrich later if needed)
app.add_middleware(MetricsMiddleware, exclude_routes=settings.METRICS_EXCLUDE_ROUTES)

# Exception handlers (uniform error JSON)
app.add_exception_handler(GatewayError, gateway_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Routers
app.include_router(health.router)
app.include_router(merchant.router)
app.include_router(orders.router)
app.include_router(payments.router)

# Conditionally expose /metrics
if settings.METRICS_ENABLED:
    app.include_router(metrics_router)


# Root
@app.get("/")
def root():
    return {"service": settings.APP_NAME, "env": settings.DANA_ENV}


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
