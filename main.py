"""
Skin Market Arbitrage - Main Entry Point

Aggregates listings and prices from Steam, DMarket and Skinport, normalizes
their price formats and reports cross-market arbitrage opportunities net of
marketplace fees.
"""
import logging
import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import WEB_HOST, WEB_PORT
from engine import ArbitrageEngine
from markets.registry import MarketRegistry
from server import app

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

# Reduce noise from libraries
logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load marketplace configs once, open the shared HTTP session"""
    registry = MarketRegistry.from_env()
    app.state.registry = registry
    app.state.engine = ArbitrageEngine(registry)
    logger.info(f"Marketplaces ready: {', '.join(m['name'] for m in registry.to_list()) or 'none'}")
    yield
    await registry.close()
    logger.info("Service stopped")


# Update app lifespan
app.router.lifespan_context = lifespan


def handle_sigint(sig, frame):
    """Handle Ctrl+C gracefully"""
    logger.info("Received SIGINT, shutting down...")
    sys.exit(0)


def main():
    """Main entry point"""
    signal.signal(signal.SIGINT, handle_sigint)

    logger.info(f"API available at http://localhost:{WEB_PORT}")

    uvicorn.run(
        app,
        host=WEB_HOST,
        port=WEB_PORT,
        log_level="warning"
    )


if __name__ == "__main__":
    main()
