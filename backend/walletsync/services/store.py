"""Repository functions over the wallet tables.

Every query the wallet services need is declared here with its filter
semantics, so the services never build SQL themselves. All functions take an
open ``AsyncSession``; committing is left to the caller unless stated.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Device, Item, Registration, UserData
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


async def get_item(
    session: AsyncSession,
    item_id: str,
    type_identifier: Optional[str] = None,
) -> Optional[Item]:
    """Item by id, additionally filtered by type identifier when given."""
    query = select(Item).where(Item.id == item_id)
    if type_identifier is not None:
        query = query.where(Item.type_identifier == type_identifier)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def bump_updated_at(
    session: AsyncSession,
    item_id: str,
    previous: datetime,
    updated_at: datetime,
) -> bool:
    """Move an item's updated_at from ``previous`` to ``updated_at``.

    The write only applies while the stored value still equals ``previous``,
    so a concurrent mutation that committed first makes this a no-op. Not
    committed.

    Returns:
        True if the row was updated
    """
    result = await session.execute(
        update(Item)
        .where(Item.id == item_id, Item.updated_at == previous)
        .values(updated_at=updated_at)
    )
    return result.rowcount == 1


async def get_user_data(session: AsyncSession, item_id: str) -> Optional[UserData]:
    """UserData linked to an item."""
    result = await session.execute(
        select(UserData).where(UserData.item_id == item_id)
    )
    return result.scalar_one_or_none()


async def find_device(
    session: AsyncSession,
    library_identifier: str,
    push_token: str,
) -> Optional[Device]:
    """Device by its (library identifier, push token) pair."""
    result = await session.execute(
        select(Device).where(
            Device.library_identifier == library_identifier,
            Device.push_token == push_token,
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_device(
    session: AsyncSession,
    library_identifier: str,
    push_token: str,
) -> Device:
    """Return the device for the pair, creating and committing it if absent.

    A concurrent insert of the same pair surfaces as an IntegrityError; the
    transaction is rolled back and the winner's row is returned.
    """
    device = await find_device(session, library_identifier, push_token)
    if device:
        return device

    device = Device(library_identifier=library_identifier, push_token=push_token)
    session.add(device)
    try:
        await retry_on_lock(session.commit)
    except IntegrityError:
        await session.rollback()
        device = await find_device(session, library_identifier, push_token)
        if device is None:
            raise
        return device

    logger.info(f"New device registered: {push_token[:16]}...")
    return device


async def find_registration(
    session: AsyncSession,
    library_identifier: str,
    type_identifier: str,
    item_id: str,
) -> Optional[Registration]:
    """Registration of any device with this library identifier to the item.

    Scoped to items of ``type_identifier``.
    """
    result = await session.execute(
        select(Registration)
        .join(Registration.device)
        .join(Registration.item)
        .where(
            Device.library_identifier == library_identifier,
            Item.type_identifier == type_identifier,
            Item.id == item_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_registration(session: AsyncSession, device_id: int, item_id: str) -> bool:
    """Create the (device, item) registration and commit.

    Returns:
        True if a row was created, False if the pair was already registered
        (including when a concurrent request won the race)
    """
    result = await session.execute(
        select(Registration.id).where(
            Registration.device_id == device_id,
            Registration.item_id == item_id,
        )
    )
    if result.scalar_one_or_none() is not None:
        return False

    session.add(Registration(device_id=device_id, item_id=item_id))
    try:
        await retry_on_lock(session.commit)
    except IntegrityError:
        await session.rollback()
        return False
    return True


async def delete_registration(session: AsyncSession, registration: Registration):
    """Delete one registration and commit. The device is kept."""
    await session.delete(registration)
    await retry_on_lock(session.commit)


async def changed_items_for_device(
    session: AsyncSession,
    library_identifier: str,
    type_identifier: str,
    since: Optional[datetime] = None,
) -> List[Tuple[str, datetime]]:
    """(item id, updated_at) pairs registered to a device library.

    Joins Registration -> Device -> Item, filtered by library identifier and
    type identifier. When ``since`` is given only items with
    ``updated_at > since`` (strictly) are returned. Ids are distinct and
    ordered by ``(updated_at, id)``.
    """
    query = (
        select(Item.id, Item.updated_at)
        .join(Registration, Registration.item_id == Item.id)
        .join(Device, Registration.device_id == Device.id)
        .where(
            Device.library_identifier == library_identifier,
            Item.type_identifier == type_identifier,
        )
        .distinct()
        .order_by(Item.updated_at, Item.id)
    )
    if since is not None:
        query = query.where(Item.updated_at > since)
    result = await session.execute(query)
    return [(row[0], row[1]) for row in result.all()]


async def registrations_for_item(
    session: AsyncSession,
    item_id: str,
    type_identifier: str,
) -> List[Registration]:
    """All registrations of an item, with Device and Item eagerly loaded."""
    result = await session.execute(
        select(Registration)
        .join(Registration.item)
        .options(selectinload(Registration.device), selectinload(Registration.item))
        .where(
            Item.id == item_id,
            Item.type_identifier == type_identifier,
        )
    )
    return list(result.scalars().all())


async def delete_devices(session: AsyncSession, device_ids: List[int]) -> int:
    """Delete devices together with all their registrations and commit.

    Returns:
        Number of devices removed (already-deleted ids are skipped)
    """
    if not device_ids:
        return 0
    await session.execute(
        delete(Registration).where(Registration.device_id.in_(device_ids))
    )
    result = await session.execute(
        delete(Device).where(Device.id.in_(device_ids))
    )
    await retry_on_lock(session.commit)
    return result.rowcount or 0
