"""Mess ledger FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from messledger.api import billing, bulk_entry, inventory, members
from messledger.config import get_settings
from messledger.api.schemas import ErrorResponse
from messledger.errors import LedgerError
from messledger.services import close_store, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: create tables for a fresh database (alembic owns upgrades)
    await get_store().create_schema()
    logger.info("Database tables initialized")
    yield
    await close_store()
    logger.info("Application shutting down")


def create_app() -> FastAPI:
    """Build the API application with all ledger routers."""
    settings = get_settings()
    application = FastAPI(
        title=settings.api_title,
        description="Mess billing ledger: charges, payments and member balances",
        version=settings.api_version,
        lifespan=lifespan,
    )

    @application.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.http_status, content=ErrorResponse.from_error(exc).model_dump())

    application.include_router(members.router)
    application.include_router(bulk_entry.router)
    application.include_router(billing.router)
    application.include_router(inventory.router)

    @application.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return application


def main():
    """Main entry point."""
    import argparse

    from messledger.services.logging import setup_server_logging

    load_dotenv()
    settings = get_settings()
    setup_server_logging(settings.log_file, settings.log_level)

    parser = argparse.ArgumentParser(description="Mess Ledger API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    args = parser.parse_args()

    logger.info(f"Starting Uvicorn server on {args.host}:{args.port}...")
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
