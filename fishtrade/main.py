from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fishtrade import models  # noqa: F401  registers mappers and log immutability guards
from fishtrade.core.config import Settings, settings
from fishtrade.core.errors import FishtradeError
from fishtrade.core.observability import (
    domain_exception_handler,
    http_exception_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fishtrade.db.base import SCHEMA_REVISION
from fishtrade.db.session import engine
from fishtrade.routers import customers, import_orders, inventory, products, reports, sale_orders

OPENAPI_TAGS = [
    {"name": "health", "description": "Service status and quick links."},
    {"name": "catalog", "description": "Categories and products."},
    {"name": "partners", "description": "Customers and suppliers."},
    {"name": "inventory", "description": "Stock levels, the inventory log, adjustments and losses."},
    {"name": "sale-orders", "description": "Sale order lifecycle; creation and reactivation deduct stock."},
    {"name": "import-orders", "description": "Supplier orders; delivery credits stock."},
    {"name": "reports", "description": "Loss rate, stock risk and movement summaries."},
]

LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def configure_cors(app: FastAPI, config: Settings) -> None:
    origins = config.cors_origins or ["http://localhost:5173"]
    allow_all = "*" in origins
    origin_regex = config.cors_origin_regex
    if not origin_regex and config.env.lower().strip() in {"dev", "development", "staging", "stage"}:
        origin_regex = LOCAL_ORIGIN_REGEX

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else origins,
        allow_origin_regex=origin_regex,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app(config: Settings = settings) -> FastAPI:
    app = FastAPI(
        title=config.app_name,
        version="0.1.0",
        description=(
            "Backend API for a fish trading business: catalog, stock ledger, "
            "sale orders and supplier import orders.\n\n"
            "Every mutating call must send an `X-Actor-Id` header; it is recorded "
            "on each inventory log entry the call produces."
        ),
        swagger_ui_parameters={
            "displayRequestDuration": True,
            "defaultModelsExpandDepth": 1,
        },
        openapi_tags=OPENAPI_TAGS,
    )

    setup_observability(config.log_level)
    app.middleware("http")(request_logging_middleware)
    app.add_exception_handler(FishtradeError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    configure_cors(app, config)

    for module in (products, customers, inventory, sale_orders, import_orders, reports):
        app.include_router(module.router)

    @app.get("/", tags=["health"])
    def root():
        return {
            "app": config.app_name,
            "docs": "/docs",
            "redoc": "/redoc",
            "health": "/health",
            "ready": "/ready",
        }

    @app.get("/health", tags=["health"])
    def health():
        return {"ok": True, "schema_revision": SCHEMA_REVISION}

    @app.get("/ready", tags=["health"])
    def ready():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return {"ok": False}
        return {"ok": True}

    return app


app = create_app()
