"""EtherFund — FastAPI Application Entry Point.

Crowdfunding campaign dashboard over the EtherFund contract and IPFS.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from etherfund.api.chain_routes import router as chain_router
from etherfund.api.dashboard_routes import router as dashboard_router
from etherfund.config import settings
from etherfund.core.logging import get_logger
from etherfund.dependencies import build_services

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("EtherFund dashboard starting up...")
    if not settings.contract_address:
        logger.warning("CONTRACT_ADDRESS not set, dashboards will be unavailable")
    app.state.services = build_services(settings)
    yield
    await app.state.services.close()
    logger.info("EtherFund dashboard shut down")


app = FastAPI(
    title="EtherFund",
    description="Campaign progress, donation and disbursement history, and campaign updates read from the EtherFund contract and IPFS.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(dashboard_router)
app.include_router(chain_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "etherfund",
        "version": "1.0.0",
    }
