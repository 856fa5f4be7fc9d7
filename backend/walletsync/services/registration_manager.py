"""Device registration lifecycle."""
import enum
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import NotFound
from ..kinds import DistributableKind
from . import store
from .auth_gate import normalize_item_id
from .delta_sync import ChangedItems, DeltaSyncResolver

logger = logging.getLogger(__name__)


class RegistrationStatus(enum.Enum):
    """Outcome of a registration request."""
    CREATED = 201
    ALREADY_REGISTERED = 200


class RegistrationManager:
    """Owns the Device/Registration join for one distributable kind."""

    def __init__(
        self,
        kind: DistributableKind,
        session_factory: async_sessionmaker[AsyncSession],
        resolver: Optional[DeltaSyncResolver] = None,
    ):
        self.kind = kind
        self._session_factory = session_factory
        self._resolver = resolver or DeltaSyncResolver(session_factory)

    async def register(self, device_library_id: str, push_token: str, item_id: str) -> RegistrationStatus:
        """Register a device for updates to an item.

        Idempotent: registering the same pair again is a success that
        creates nothing, even when two requests race.

        Raises:
            NotFound: If no item of this kind has ``item_id``
        """
        normalized = normalize_item_id(item_id)
        if normalized is None:
            raise NotFound("Item not found")

        async with self._session_factory() as session:
            item = await store.get_item(session, normalized, self.kind.type_identifier)
            if item is None:
                raise NotFound("Item not found")

            # Plain ids: a rollback on a lost insert race expires loaded objects
            device = await store.get_or_create_device(session, device_library_id, push_token)
            created = await store.create_registration(session, device.id, normalized)

        if not created:
            logger.debug(f"Device {device_library_id} already registered for {normalized}")
            return RegistrationStatus.ALREADY_REGISTERED

        logger.info(f"Device {device_library_id} registered for {normalized}")
        return RegistrationStatus.CREATED

    async def unregister(self, device_library_id: str, item_id: str):
        """Remove a device's registration for an item. The device is kept.

        Raises:
            NotFound: If no such registration exists
        """
        normalized = normalize_item_id(item_id)
        if normalized is None:
            raise NotFound("Registration not found")

        async with self._session_factory() as session:
            registration = await store.find_registration(
                session, device_library_id, self.kind.type_identifier, normalized
            )
            if registration is None:
                raise NotFound("Registration not found")
            await store.delete_registration(session, registration)

        logger.info(f"Device {device_library_id} unregistered from {normalized}")

    async def devices_changed_since(
        self,
        device_library_id: str,
        type_identifier: str,
        since: Optional[float] = None,
    ) -> ChangedItems:
        """See :meth:`DeltaSyncResolver.query`."""
        return await self._resolver.query(device_library_id, type_identifier, since)
