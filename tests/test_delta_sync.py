"""Tests for change discovery since a watermark."""
import pytest

from walletsync.errors import NoContent


class TestDeltaSync:
    """DeltaSyncResolver.query via RegistrationManager.devices_changed_since"""

    @pytest.mark.asyncio
    async def test_no_registrations_is_no_content(self, service):
        with pytest.raises(NoContent):
            await service.registrations.devices_changed_since("D1", service.type_identifier, 0)

    @pytest.mark.asyncio
    async def test_returns_ids_and_max_watermark(self, service, set_updated_at):
        older = await service.create_item()
        newer = await service.create_item()
        await set_updated_at(older.id, 100)
        await set_updated_at(newer.id, 250)
        await service.registrations.register("D1", "pt1", older.id)
        await service.registrations.register("D1", "pt1", newer.id)

        changed = await service.registrations.devices_changed_since("D1", service.type_identifier)

        assert changed.item_ids == [older.id, newer.id]
        assert changed.last_modified == 250

    @pytest.mark.asyncio
    async def test_since_is_exclusive(self, service, set_updated_at):
        item = await service.create_item()
        await set_updated_at(item.id, 100)
        await service.registrations.register("D1", "pt1", item.id)

        changed = await service.registrations.devices_changed_since("D1", service.type_identifier, 50)
        assert changed.item_ids == [item.id]

        with pytest.raises(NoContent):
            await service.registrations.devices_changed_since(
                "D1", service.type_identifier, changed.last_modified
            )

    @pytest.mark.asyncio
    async def test_only_newer_items_returned(self, service, set_updated_at):
        stale = await service.create_item()
        fresh = await service.create_item()
        await set_updated_at(stale.id, 100)
        await set_updated_at(fresh.id, 300)
        await service.registrations.register("D1", "pt1", stale.id)
        await service.registrations.register("D1", "pt1", fresh.id)

        changed = await service.registrations.devices_changed_since("D1", service.type_identifier, 100)

        assert changed.item_ids == [fresh.id]
        assert changed.last_modified == 300

    @pytest.mark.asyncio
    async def test_other_type_identifier_is_no_content(self, service):
        item = await service.create_item()
        await service.registrations.register("D1", "pt1", item.id)

        with pytest.raises(NoContent):
            await service.registrations.devices_changed_since("D1", "t.example.Other")

    @pytest.mark.asyncio
    async def test_other_device_sees_nothing(self, service):
        item = await service.create_item()
        await service.registrations.register("D1", "pt1", item.id)

        with pytest.raises(NoContent):
            await service.registrations.devices_changed_since("D2", service.type_identifier)

    @pytest.mark.asyncio
    async def test_item_registered_with_two_tokens_listed_once(self, service):
        item = await service.create_item()
        await service.registrations.register("D1", "pt1", item.id)
        await service.registrations.register("D1", "pt2", item.id)

        changed = await service.registrations.devices_changed_since("D1", service.type_identifier)

        assert changed.item_ids == [item.id]

    @pytest.mark.asyncio
    async def test_far_future_watermark_is_no_content(self, service):
        item = await service.create_item()
        await service.registrations.register("D1", "pt1", item.id)

        with pytest.raises(NoContent):
            await service.registrations.devices_changed_since("D1", service.type_identifier, 1e300)
