"""Tests for conditional artifact fetch."""
import uuid

import pytest
from sqlalchemy import delete

from walletsync.errors import NotFound, NotModified
from walletsync.models import UserData


class TestConditionalFetch:
    """ConditionalFetchHandler.fetch"""

    @pytest.mark.asyncio
    async def test_older_watermark_returns_artifact(self, service, builder, set_updated_at):
        item = await service.create_item({"title": "Pass"})
        await set_updated_at(item.id, 100)

        artifact = await service.fetcher.fetch(item.id, service.type_identifier, 50)

        assert artifact.content == b'artifact:{"title": "Pass"}'
        assert artifact.last_modified == 100
        assert builder.calls == 1

    @pytest.mark.asyncio
    async def test_equal_watermark_not_modified(self, service, builder, set_updated_at):
        item = await service.create_item()
        await set_updated_at(item.id, 100)

        with pytest.raises(NotModified):
            await service.fetcher.fetch(item.id, service.type_identifier, 100)
        assert builder.calls == 0

    @pytest.mark.asyncio
    async def test_newer_watermark_not_modified(self, service, set_updated_at):
        item = await service.create_item()
        await set_updated_at(item.id, 100)

        with pytest.raises(NotModified):
            await service.fetcher.fetch(item.id, service.type_identifier, 2147483647)

    @pytest.mark.asyncio
    async def test_missing_watermark_defaults_to_zero(self, service, set_updated_at):
        item = await service.create_item()
        await set_updated_at(item.id, 100)

        artifact = await service.fetcher.fetch(item.id, service.type_identifier, None)

        assert artifact.last_modified == 100

    @pytest.mark.asyncio
    async def test_wrong_type_identifier_not_found(self, service):
        item = await service.create_item()

        with pytest.raises(NotFound):
            await service.fetcher.fetch(item.id, "t.example.Other", 0)

    @pytest.mark.asyncio
    async def test_unknown_item_not_found(self, service):
        with pytest.raises(NotFound):
            await service.fetcher.fetch(str(uuid.uuid4()), service.type_identifier, 0)

    @pytest.mark.asyncio
    async def test_missing_user_data_not_found(self, service, session_factory, builder):
        item = await service.create_item()
        async with session_factory() as session:
            await session.execute(delete(UserData).where(UserData.item_id == item.id))
            await session.commit()

        with pytest.raises(NotFound):
            await service.fetcher.fetch(item.id, service.type_identifier, 0)
        assert builder.calls == 0

    @pytest.mark.asyncio
    async def test_async_builder_is_awaited(self, session_factory, service, set_updated_at):
        from walletsync.services.conditional_fetch import ConditionalFetchHandler

        class AsyncBuilder:
            async def build(self, user_data):
                return b"async"

        item = await service.create_item()
        await set_updated_at(item.id, 100)
        handler = ConditionalFetchHandler(session_factory, AsyncBuilder())

        artifact = await handler.fetch(item.id, service.type_identifier, 0)

        assert artifact.content == b"async"
