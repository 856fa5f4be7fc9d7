"""Push notification transport using APNs.

Wallet pushes carry no content: they only tell the device to poll for
changed items. Each wallet kind pushes on its own topic (the type
identifier), so one APNs client is kept per topic.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from aioapns import APNs, NotificationRequest, PushType

logger = logging.getLogger(__name__)

# APNs reasons meaning the token will never be deliverable again
PERMANENT_FAILURE_REASONS = frozenset({"BadDeviceToken", "Unregistered"})


class PushResult(enum.Enum):
    """Outcome of a single push attempt."""
    OK = "ok"
    BAD_TOKEN = "bad_token"
    TRANSIENT_ERROR = "transient_error"


class PushTransport(Protocol):
    """Best-effort delivery of a wake-up push to one device token."""

    async def send(self, token: str, topic: str) -> PushResult:
        ...

    def close(self):
        ...


@dataclass
class PushConfig:
    """APNs configuration."""
    cert_path: str = ""  # PEM with certificate and private key
    key_path: str = ""  # Path to .p8 key file (token auth)
    key_id: str = ""
    team_id: str = ""
    use_sandbox: bool = False

    @property
    def uses_certificate(self) -> bool:
        return bool(self.cert_path)

    @property
    def is_complete(self) -> bool:
        return self.uses_certificate or all([self.key_path, self.key_id, self.team_id])


class ApnsPushSender:
    """Sends empty background notifications via APNs."""

    def __init__(self, config: PushConfig):
        self._config = config
        self._clients: Dict[str, APNs] = {}
        if not config.is_complete:
            logger.warning("APNs not fully configured - wallet pushes will be dropped")

    def _client_for(self, topic: str) -> Optional[APNs]:
        """Lazily create the APNs client for ``topic``."""
        if topic in self._clients:
            return self._clients[topic]
        if not self._config.is_complete:
            return None

        if self._config.uses_certificate:
            client = APNs(
                client_cert=self._config.cert_path,
                topic=topic,
                use_sandbox=self._config.use_sandbox,
            )
        else:
            client = APNs(
                key=self._config.key_path,
                key_id=self._config.key_id,
                team_id=self._config.team_id,
                topic=topic,
                use_sandbox=self._config.use_sandbox,
            )
        logger.info(f"APNs client configured for {topic} (sandbox={self._config.use_sandbox})")
        self._clients[topic] = client
        return client

    async def send(self, token: str, topic: str) -> PushResult:
        """Send one empty push to ``token`` on ``topic``.

        Returns:
            BAD_TOKEN if APNs rejected the token permanently,
            TRANSIENT_ERROR for any other failure, OK otherwise
        """
        try:
            client = self._client_for(topic)
        except Exception as e:
            logger.error(f"Failed to configure APNs client for {topic}: {e}")
            return PushResult.TRANSIENT_ERROR
        if client is None:
            logger.debug("Push notifications not configured, skipping")
            return PushResult.TRANSIENT_ERROR

        request = NotificationRequest(
            device_token=token,
            message={"aps": {}},
            push_type=PushType.BACKGROUND,
        )

        try:
            response = await client.send_notification(request)
        except Exception as e:
            logger.error(f"Failed to send push notification: {e}")
            return PushResult.TRANSIENT_ERROR

        if response.is_successful:
            logger.info(f"Push notification sent to {token[:16]}...")
            return PushResult.OK

        if response.description in PERMANENT_FAILURE_REASONS:
            logger.info(f"APNs rejected token {token[:16]}...: {response.description}")
            return PushResult.BAD_TOKEN

        logger.warning(
            f"Push notification failed: {response.description} "
            f"(token: {token[:16]}...)"
        )
        return PushResult.TRANSIENT_ERROR

    def close(self):
        """Drop cached clients."""
        self._clients.clear()
