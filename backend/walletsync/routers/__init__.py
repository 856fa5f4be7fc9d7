"""API routers."""
from .wallet import create_wallet_router, wallet_error_handler

__all__ = ["create_wallet_router", "wallet_error_handler"]
