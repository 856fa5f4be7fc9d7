"""Freshness negotiation and artifact delivery."""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import NotFound, NotModified
from ..utils.timestamps import to_epoch
from . import store
from .auth_gate import normalize_item_id
from .builder import ArtifactBuilder, run_builder

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    """Built artifact and the item version it reflects (epoch seconds)."""
    content: bytes
    last_modified: float


class ConditionalFetchHandler:
    """Serves the latest artifact only when it is newer than the client's copy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], builder: ArtifactBuilder):
        self._session_factory = session_factory
        self._builder = builder

    async def fetch(
        self,
        item_id: str,
        type_identifier: str,
        if_modified_since: Optional[float] = None,
    ) -> Artifact:
        """Build the item's artifact if it changed after ``if_modified_since``.

        A missing watermark counts as 0. A watermark equal to ``updated_at``
        is not older, so it yields NotModified.

        Raises:
            NotFound: Item of this type absent, or its user data missing
            NotModified: Watermark is not strictly older than ``updated_at``
        """
        watermark = if_modified_since if if_modified_since is not None else 0.0
        normalized = normalize_item_id(item_id)
        if normalized is None:
            raise NotFound("Item not found")

        async with self._session_factory() as session:
            item = await store.get_item(session, normalized, type_identifier)
            if item is None:
                raise NotFound("Item not found")

            updated_at = to_epoch(item.updated_at)
            if not watermark < updated_at:
                raise NotModified()

            user_data = await store.get_user_data(session, normalized)

        if user_data is None:
            logger.error(f"Item {normalized} has no user data")
            raise NotFound("Item data not found")

        content = await run_builder(self._builder, user_data)
        return Artifact(content=content, last_modified=updated_at)
