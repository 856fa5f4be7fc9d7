"""Wallet protocol services."""
from .auth_gate import AuthGate
from .conditional_fetch import Artifact, ConditionalFetchHandler
from .delta_sync import ChangedItems, DeltaSyncResolver
from .push_fanout import FanoutResult, PushFanoutCoordinator
from .push_sender import ApnsPushSender, PushConfig, PushResult
from .registration_manager import RegistrationManager, RegistrationStatus
from .wallet_service import WalletService

__all__ = [
    "AuthGate",
    "Artifact",
    "ConditionalFetchHandler",
    "ChangedItems",
    "DeltaSyncResolver",
    "FanoutResult",
    "PushFanoutCoordinator",
    "ApnsPushSender",
    "PushConfig",
    "PushResult",
    "RegistrationManager",
    "RegistrationStatus",
    "WalletService",
]
