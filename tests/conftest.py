"""Shared fixtures: a throwaway SQLite store and fake push/builder collaborators."""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import update

from walletsync.database import create_engine_for_url, create_session_factory, create_tables
from walletsync.kinds import pass_kind
from walletsync.models import Item
from walletsync.services.push_sender import PushResult
from walletsync.services.wallet_service import WalletService
from walletsync.utils.timestamps import from_epoch

TYPE_IDENTIFIER = "t.example.Foo"


class FakePush:
    """Records sends; per-token outcomes can be preset (an exception is raised)."""

    def __init__(self):
        self.outcomes = {}
        self.sent = []
        self.delay = 0
        self.close_calls = 0
        self.sent_at_close = None

    async def send(self, token, topic):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append((token, topic))
        outcome = self.outcomes.get(token, PushResult.OK)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.close_calls += 1
        self.sent_at_close = len(self.sent)


class FakeBuilder:
    """Returns the payload prefixed with a marker and counts calls."""

    def __init__(self):
        self.calls = 0

    def build(self, user_data):
        self.calls += 1
        return b"artifact:" + user_data.payload.encode()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def builder():
    return FakeBuilder()


@pytest.fixture
def kind():
    return pass_kind(TYPE_IDENTIFIER)


@pytest.fixture
def service(kind, session_factory, builder, push):
    return WalletService(kind, session_factory, builder, push)


@pytest.fixture
def set_updated_at(session_factory):
    """Coroutine function pinning an item's updated_at to an epoch value."""

    async def _set(item_id, epoch_seconds):
        async with session_factory() as session:
            await session.execute(
                update(Item).where(Item.id == item_id).values(updated_at=from_epoch(epoch_seconds))
            )
            await session.commit()

    return _set
