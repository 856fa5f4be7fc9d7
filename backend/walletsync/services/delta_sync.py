"""Change discovery: which items changed for a device since a watermark."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import NoContent
from ..utils.timestamps import from_epoch, to_epoch
from . import store

logger = logging.getLogger(__name__)


@dataclass
class ChangedItems:
    """Item ids with the newest ``updated_at`` among them (epoch seconds)."""
    item_ids: List[str]
    last_modified: float


class DeltaSyncResolver:
    """Resolves the items registered to a device that changed since ``since``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def query(
        self,
        device_library_id: str,
        type_identifier: str,
        since: Optional[float] = None,
    ) -> ChangedItems:
        """Changed item ids plus the next watermark.

        ``since`` is exclusive: an item whose ``updated_at`` equals the
        watermark is not returned again.

        Raises:
            NoContent: If no registered item matches
        """
        since_dt = None
        if since is not None:
            try:
                since_dt = from_epoch(since)
            except OverflowError:
                # Beyond the representable range: nothing can be newer
                if since > 0:
                    raise NoContent()

        async with self._session_factory() as session:
            rows = await store.changed_items_for_device(
                session, device_library_id, type_identifier, since_dt
            )

        if not rows:
            raise NoContent()

        item_ids = [item_id for item_id, _ in rows]
        last_modified = max(to_epoch(updated_at) for _, updated_at in rows)
        logger.debug(f"{len(item_ids)} changed item(s) for device {device_library_id}")
        return ChangedItems(item_ids=item_ids, last_modified=last_modified)
