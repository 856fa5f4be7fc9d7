"""Push fanout: wake every device registered to an item.

Sends are independent and best-effort. The only result acted upon is a
permanently invalid token, which removes the device and its registrations.
"""
import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import store
from .push_sender import PushResult, PushTransport

logger = logging.getLogger(__name__)

# Default bound on concurrent sends within one fanout
MAX_CONCURRENT_PUSHES = 10


@dataclass
class FanoutResult:
    """Counts for one fanout; used for logging only."""
    sent: int = 0
    dropped: int = 0
    pruned: int = 0


class PushFanoutCoordinator:
    """Notifies all registered devices of an item and prunes dead tokens."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transport: PushTransport,
        max_concurrency: int = MAX_CONCURRENT_PUSHES,
    ):
        self._session_factory = session_factory
        self._transport = transport
        self._max_concurrency = max(1, max_concurrency)

    async def notify_all(self, item_id: str, type_identifier: str) -> FanoutResult:
        """Push to every device registered to the item. Never raises."""
        result = FanoutResult()
        try:
            async with self._session_factory() as session:
                registrations = await store.registrations_for_item(session, item_id, type_identifier)
            # (device id, token, topic) snapshots; no ORM objects cross the gather
            targets = [
                (reg.device.id, reg.device.push_token, reg.item.type_identifier)
                for reg in registrations
            ]
        except Exception as e:
            logger.error(f"Error loading registrations for item {item_id}: {e}")
            return result

        if not targets:
            logger.debug(f"No registered devices for item {item_id}")
            return result

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def send_with_limit(token: str, topic: str) -> PushResult:
            async with semaphore:
                try:
                    return await self._transport.send(token, topic)
                except Exception as e:
                    logger.error(f"Push transport error for {token[:16]}...: {e}")
                    return PushResult.TRANSIENT_ERROR

        outcomes = await asyncio.gather(
            *[send_with_limit(token, topic) for _, token, topic in targets]
        )

        bad_device_ids = []
        for (device_id, _, _), outcome in zip(targets, outcomes):
            if outcome is PushResult.OK:
                result.sent += 1
            elif outcome is PushResult.BAD_TOKEN:
                if device_id not in bad_device_ids:
                    bad_device_ids.append(device_id)
            else:
                result.dropped += 1

        if bad_device_ids:
            try:
                async with self._session_factory() as session:
                    result.pruned = await store.delete_devices(session, bad_device_ids)
            except Exception as e:
                logger.error(f"Failed to prune devices {bad_device_ids}: {e}")

        logger.info(
            f"Fanout for item {item_id}: {result.sent} sent, "
            f"{result.dropped} dropped, {result.pruned} device(s) pruned"
        )
        return result
