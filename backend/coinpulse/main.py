"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from coinpulse.api import router
from coinpulse.clients import CoinGeckoClient, RequestBroker
from coinpulse.config import get_settings
from coinpulse.services import MarketAnalysisService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting coinpulse...")
    logger.info(
        f"Upstream: {settings.coingecko_base_url} "
        f"(max {settings.quota_per_window} req/{settings.quota_window_seconds:.0f}s, "
        f"cache TTL {settings.cache_ttl_seconds:.0f}s)"
    )

    broker = RequestBroker(settings=settings)
    client = CoinGeckoClient(broker, settings=settings)
    app.state.analysis_service = MarketAnalysisService(client, settings=settings)

    try:
        yield
    finally:
        logger.info("Shutting down...")
        await client.close()
        logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="coinpulse",
        description="Rate-limited crypto market data and trading signals",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"name": "coinpulse", "version": "0.1.0", "docs": "/docs"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "coinpulse.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
