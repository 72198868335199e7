"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bond_master.core.config import get_settings
from bond_master.core.database import get_engine, init_models
from bond_master.core.error_handlers import register_exception_handlers
from bond_master.api import health, bonds, cashflows, lookups

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await init_models(get_engine())
    logger.info(f"{settings.app_name} started")
    yield
    await get_engine().dispose()


app = FastAPI(
    title=settings.app_name,
    description="Bond master data and cashflow amortization schedules",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(bonds.router, prefix="/bonds", tags=["Bonds"])
app.include_router(cashflows.router, prefix="/bonds", tags=["Cashflows"])
app.include_router(lookups.router, tags=["Lookups"])


# Register exception handlers
register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Bond Master API", "version": "1.0.0"}


def run():
    """Serve the API with uvicorn."""
    uvicorn.run(
        "bond_master.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
