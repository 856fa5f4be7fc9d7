"""Bearer-credential check scoped to a single item."""
import hmac
import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import Unauthorized
from ..kinds import DistributableKind
from ..models import Item
from . import store

logger = logging.getLogger(__name__)


def normalize_item_id(raw: str) -> Optional[str]:
    """Canonical string form of a UUID item id, or None if malformed."""
    try:
        return str(uuid.UUID(raw))
    except (ValueError, TypeError, AttributeError):
        return None


class AuthGate:
    """Validates ``Authorization: <scheme> <token>`` against an item's token.

    Every failure is reported as Unauthorized, including a malformed item id,
    so callers cannot tell a bad id from a bad token.
    """

    def __init__(self, kind: DistributableKind, session_factory: async_sessionmaker[AsyncSession]):
        self.kind = kind
        self._session_factory = session_factory

    def extract_token(self, authorization: Optional[str]) -> Optional[str]:
        """Token part of an Authorization header using this kind's scheme."""
        if not authorization:
            return None
        prefix = f"{self.kind.auth_scheme} "
        if not authorization.startswith(prefix):
            return None
        token = authorization[len(prefix):].strip()
        return token or None

    async def authorize(self, item_id: str, presented_token: Optional[str]) -> Item:
        """Return the item if ``presented_token`` is its authentication token.

        Raises:
            Unauthorized: On any mismatch, missing value or malformed id
        """
        normalized = normalize_item_id(item_id)
        if normalized is None or not presented_token:
            raise Unauthorized()

        async with self._session_factory() as session:
            item = await store.get_item(session, normalized)

        if item is None:
            raise Unauthorized()

        expected = self.kind.token_of(item)
        if not hmac.compare_digest(expected.encode(), presented_token.encode()):
            logger.debug(f"Rejected credential for item {normalized}")
            raise Unauthorized()
        return item

