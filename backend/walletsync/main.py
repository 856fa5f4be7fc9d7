"""Main FastAPI application serving the wallet web service."""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI

from .config import settings
from .database import async_session, init_db, close_db
from .errors import WalletError
from .kinds import DistributableKind, order_kind, pass_kind
from .routers import create_wallet_router, wallet_error_handler
from .services.builder import load_builder
from .services.push_sender import ApnsPushSender, PushConfig
from .services.wallet_service import WalletService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_services() -> List[WalletService]:
    """Create a wallet service for every kind enabled in the settings."""
    kinds = []
    if settings.pass_type_identifier:
        kinds.append(pass_kind(settings.pass_type_identifier))
    if settings.order_type_identifier:
        kinds.append(order_kind(settings.order_type_identifier))

    if not kinds:
        logger.warning("No PASS_TYPE_IDENTIFIER or ORDER_TYPE_IDENTIFIER set - no wallet routes served")
        return []

    push = ApnsPushSender(PushConfig(
        cert_path=settings.apns_cert_path or "",
        key_path=settings.apns_key_path or "",
        key_id=settings.apns_key_id or "",
        team_id=settings.apns_team_id or "",
        use_sandbox=settings.apns_use_sandbox,
    ))
    builder = load_builder(settings.artifact_builder)

    return [
        WalletService(
            kind,
            async_session,
            builder,
            push,
            max_push_concurrency=settings.push_max_concurrency,
        )
        for kind in kinds
    ]


async def shutdown_services(services: List[WalletService]):
    """Drain every service's fanouts, then close each push transport once."""
    for service in services:
        await service.shutdown()

    transports = []
    for service in services:
        if not any(service.push is t for t in transports):
            transports.append(service.push)
    for transport in transports:
        transport.close()


def route_prefix_for(kind: DistributableKind) -> str:
    """Mount prefix for a kind's routes (bare /v1 paths when unset)."""
    prefixes = {
        "passes": settings.pass_route_prefix,
        "orders": settings.order_route_prefix,
    }
    return prefixes.get(kind.resource, "")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    kinds = ", ".join(s.type_identifier for s in app.state.wallet_services) or "none"
    logger.info(f"Starting walletsync (kinds: {kinds})")

    await init_db()
    logger.info("Database initialized")

    yield

    await shutdown_services(app.state.wallet_services)
    await close_db()
    logger.info("Shutdown complete")


def create_app(services: Optional[List[WalletService]] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Wallet services to expose; built from settings when omitted
    """
    if services is None:
        services = build_services()

    app = FastAPI(
        title="walletsync",
        description="Apple Wallet web service - pass and order updates",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.wallet_services = services

    app.add_exception_handler(WalletError, wallet_error_handler)

    # One /v1/log route per mount prefix
    log_prefixes = set()
    for service in services:
        prefix = route_prefix_for(service.kind)
        app.include_router(
            create_wallet_router(service, prefix, include_log=prefix not in log_prefixes)
        )
        log_prefixes.add(prefix)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "kinds": [s.type_identifier for s in app.state.wallet_services],
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
