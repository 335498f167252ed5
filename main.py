# main.py
# Role: Application entry point for the Stash API.
#       Builds the FastAPI app, wires the Database and CryptoProxy into
#       app.state for the lifetime of the process, maps domain errors to HTTP
#       responses, and registers all route modules.

"""
Main FastAPI app for the Stash personal finance backend.

Here we only:
- read settings and configure logging
- open the database at startup / close it at shutdown
- translate domain errors to JSON responses
- include route modules
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import Settings
from app.errors import NotFoundError, ValidationError
from app.logging_setup import configure_logging, get_logger
from app.routes_crypto import router as crypto_router
from app.routes_dashboard import router as dashboard_router
from app.routes_root import router as root_router
from app.routes_transactions import router as transactions_router
from app.routes_upload import router as upload_router
from app.services.crypto_proxy import CryptoProxy
from db import Database

logger = get_logger("stash.main")


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    crypto: CryptoProxy | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    database = database or Database(settings.database_url)
    crypto = crypto or CryptoProxy(
        base_url=settings.coingecko_base_url,
        timeout=settings.crypto_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.open()
        try:
            yield
        finally:
            crypto.close()
            database.close()

    # FastAPI application instance
    app = FastAPI(title="Stash API", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.crypto = crypto

    # -------------------------------------------------------------------
    # Error translation
    # -------------------------------------------------------------------

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=400,
            content={"message": exc.message, "field": exc.field},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        logger.info("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"message": "Transaction not found"})

    # -------------------------------------------------------------------
    # Include routers
    # -------------------------------------------------------------------

    # Health / landing routes
    app.include_router(root_router)

    # Summary and CSV import live under /api/transactions/..., so they go
    # before the /{transaction_id} routes
    app.include_router(dashboard_router)
    app.include_router(upload_router)
    app.include_router(transactions_router)

    # Crypto market proxy
    app.include_router(crypto_router)

    return app


app = create_app()
