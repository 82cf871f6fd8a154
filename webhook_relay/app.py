"""
VM Webhook Relay Application.

This FastAPI application receives start-VM webhooks, starts the VM on its
Proxmox cluster, clears the OOM gauge from the Pushgateway and reports the
outcome to Telegram.
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from .api import ping_router, vms_router
from .config import Settings, load_settings
from .middleware import MethodGateMiddleware
from .services import RemediationService

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)

ALLOWED_METHODS = {
    "/ping": "GET",
    "/start-vm": "POST",
}


def setup_logging(level: str = "INFO"):
    """Configure process-wide logging."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def init_services(
    app: FastAPI,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    """Attach the configuration snapshot and the services built from it."""
    app.state.settings = settings
    app.state.remediation = RemediationService(settings, transport=transport)
    logger.info(f"Proxmox instances defined: {sorted(settings.clusters)}")


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay application.

    Upstream clients are opened when the application starts and closed
    when it shuts down.

    Args:
        settings: Configuration snapshot; loaded from the environment at
            startup when omitted
        transport: httpx transport used for every upstream call

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Initializing webhook relay services...")
        init_services(app, settings or load_settings(), transport=transport)

        yield

        logger.info("Shutting down webhook relay...")
        await app.state.remediation.aclose()

    app = FastAPI(
        title="VM Webhook Relay",
        description="Starts OOM-killed Proxmox VMs on webhook and reports to Telegram",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(MethodGateMiddleware, allowed_methods=ALLOWED_METHODS)

    app.include_router(ping_router)
    app.include_router(vms_router)

    return app


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the VM webhook relay")
    parser.add_argument("--host", help="Listen address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: PORT or 8080)")
    parser.add_argument("--env-file", help="dotenv file used as fallback (default: .env)")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv=None):
    import uvicorn

    args = parse_args(argv)
    settings = load_settings(args.env_file)

    log_level = (args.log_level or settings.log_level).upper()
    setup_logging(log_level)

    host = args.host or settings.host
    port = args.port or settings.port

    app = create_app(settings)

    logger.info(f"Server started on {host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=log_level.lower()
    )


if __name__ == "__main__":
    main()
