"""Wallet service - one distributable kind wired to store, builder and push.

This is the object an application holds on to: it creates items, applies
mutations (bumping ``updated_at`` and firing the push fanout), builds
artifacts, and exposes the protocol components the routers call.
"""
import asyncio
import base64
import json
import logging
import secrets
from typing import List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import NotFound
from ..kinds import DistributableKind
from ..models import Item, UserData
from ..utils.db_utils import retry_on_lock
from ..utils.timestamps import next_timestamp
from . import store
from .auth_gate import AuthGate, normalize_item_id
from .builder import (
    MAX_BUNDLE_SIZE,
    MIN_BUNDLE_SIZE,
    ArtifactBuilder,
    bundle_artifacts,
    run_builder,
)
from .conditional_fetch import ConditionalFetchHandler
from .delta_sync import DeltaSyncResolver
from .push_fanout import FanoutResult, MAX_CONCURRENT_PUSHES, PushFanoutCoordinator
from .push_sender import PushTransport
from .registration_manager import RegistrationManager

logger = logging.getLogger(__name__)

# Random bytes behind each item's authentication token
AUTH_TOKEN_BYTES = 12

# Re-reads allowed when another writer bumps the same item first
MAX_MUTATION_ATTEMPTS = 5


def generate_authentication_token() -> str:
    """Fresh opaque bearer secret for a new item."""
    return base64.b64encode(secrets.token_bytes(AUTH_TOKEN_BYTES)).decode("ascii")


class WalletService:
    """Serves one distributable kind."""

    def __init__(
        self,
        kind: DistributableKind,
        session_factory: async_sessionmaker[AsyncSession],
        builder: ArtifactBuilder,
        push: PushTransport,
        max_push_concurrency: int = MAX_CONCURRENT_PUSHES,
    ):
        self.kind = kind
        self._session_factory = session_factory
        self._builder = builder
        self._push = push
        self._pending_fanouts: Set[asyncio.Task] = set()

        self.auth_gate = AuthGate(kind, session_factory)
        self.resolver = DeltaSyncResolver(session_factory)
        self.registrations = RegistrationManager(kind, session_factory, self.resolver)
        self.fetcher = ConditionalFetchHandler(session_factory, builder)
        self.fanout = PushFanoutCoordinator(session_factory, push, max_push_concurrency)

    @property
    def type_identifier(self) -> str:
        return self.kind.type_identifier

    # Item lifecycle

    async def create_item(self, payload: Optional[dict] = None) -> Item:
        """Issue a new item of this kind with its user data."""
        async with self._session_factory() as session:
            item = Item(
                type_identifier=self.kind.type_identifier,
                authentication_token=generate_authentication_token(),
            )
            session.add(item)
            await session.flush()
            session.add(UserData(item_id=item.id, payload=json.dumps(payload or {})))
            await retry_on_lock(session.commit)

        logger.info(f"Created {self.kind.name} item {item.id}")
        return item

    async def update_item(self, item_id: str, payload: dict) -> Item:
        """Replace an item's user data, bump its version and notify devices.

        The fanout runs in the background; this returns once the write is
        committed.

        Raises:
            NotFound: If no item of this kind has ``item_id``
        """
        return await self._mutate(item_id, payload)

    async def touch_item(self, item_id: str) -> Item:
        """Bump an item's version after an external change and notify devices."""
        return await self._mutate(item_id, None)

    async def _mutate(self, item_id: str, payload: Optional[dict]) -> Item:
        normalized = normalize_item_id(item_id)
        if normalized is None:
            raise NotFound("Item not found")

        for attempt in range(MAX_MUTATION_ATTEMPTS):
            async with self._session_factory() as session:
                item = await store.get_item(session, normalized, self.kind.type_identifier)
                if item is None:
                    raise NotFound("Item not found")

                # The bump goes first so it holds the row until commit
                previous = item.updated_at
                if not await store.bump_updated_at(
                    session, normalized, previous, next_timestamp(previous)
                ):
                    await session.rollback()
                    logger.debug(f"Item {normalized} changed concurrently, retrying ({attempt + 1})")
                    continue

                if payload is not None:
                    user_data = await store.get_user_data(session, normalized)
                    if user_data is None:
                        session.add(UserData(item_id=normalized, payload=json.dumps(payload)))
                    else:
                        user_data.payload = json.dumps(payload)

                await retry_on_lock(session.commit)

            self.schedule_fanout(normalized)
            return item

        raise RuntimeError(
            f"Item {normalized} kept changing concurrently after {MAX_MUTATION_ATTEMPTS} attempts"
        )

    # Push

    def schedule_fanout(self, item_id: str) -> asyncio.Task:
        """Start a fanout for ``item_id`` without waiting for it."""
        task = asyncio.create_task(self.send_push_notifications(item_id))
        self._pending_fanouts.add(task)
        task.add_done_callback(self._pending_fanouts.discard)
        return task

    async def send_push_notifications(self, item_id: str) -> FanoutResult:
        """Notify every device registered to the item and wait for the sends."""
        return await self.fanout.notify_all(item_id, self.kind.type_identifier)

    async def wait_for_fanouts(self):
        """Wait for all fanouts started so far."""
        if self._pending_fanouts:
            await asyncio.gather(*list(self._pending_fanouts), return_exceptions=True)

    # Artifacts

    async def build(self, item_id: str) -> bytes:
        """Build the artifact for one item regardless of freshness.

        Raises:
            NotFound: If the item or its user data is missing
        """
        normalized = normalize_item_id(item_id)
        if normalized is None:
            raise NotFound("Item not found")

        async with self._session_factory() as session:
            item = await store.get_item(session, normalized, self.kind.type_identifier)
            user_data = await store.get_user_data(session, normalized) if item else None

        if user_data is None:
            raise NotFound("Item not found")
        return await run_builder(self._builder, user_data)

    async def build_bundle(self, item_ids: List[str]) -> bytes:
        """Zip several artifacts so a user can download them at once.

        Raises:
            ValueError: If fewer than 2 or more than 10 ids are given
            NotFound: If any item is missing
        """
        if not MIN_BUNDLE_SIZE <= len(item_ids) <= MAX_BUNDLE_SIZE:
            raise ValueError(
                f"A bundle needs between {MIN_BUNDLE_SIZE} and {MAX_BUNDLE_SIZE} items, got {len(item_ids)}"
            )
        artifacts = [await self.build(item_id) for item_id in item_ids]
        return bundle_artifacts(artifacts, self.kind.bundle_member, self.kind.bundle_extension)

    @property
    def push(self) -> PushTransport:
        return self._push

    async def shutdown(self):
        """Finish pending fanouts.

        The push transport may be shared with other services, so closing it
        is left to the owner.
        """
        await self.wait_for_fanouts()
