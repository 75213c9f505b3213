"""Tests for the per-session entity cache."""

from unittest.mock import AsyncMock, Mock

import pytest

from src.assistant.entity_cache import EntityPrefetchCache
from src.backend.base import BackendError, EntityService


def vehicle(entity_id):
    return {"id": entity_id, "make": "Toyota", "model": "Prado", "year": 2022, "price": 150000}


class TestEntityPrefetchCache:

    def setup_method(self):
        self.service = Mock(spec=EntityService)
        self.service.get_entity = AsyncMock(side_effect=vehicle)
        self.cache = EntityPrefetchCache(self.service)

    @pytest.mark.asyncio
    async def test_second_resolve_uses_cache(self):
        first = await self.cache.resolve(7)
        second = await self.cache.resolve(7)

        assert first == second == vehicle(7)
        self.service.get_entity.assert_awaited_once_with(7)
        assert 7 in self.cache

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self):
        self.service.get_entity.side_effect = BackendError("timeout")

        assert await self.cache.resolve(7) is None
        assert 7 not in self.cache

        self.service.get_entity.side_effect = vehicle
        assert await self.cache.resolve(7) == vehicle(7)
        assert self.service.get_entity.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_entity_returns_none(self):
        self.service.get_entity.side_effect = None
        self.service.get_entity.return_value = None

        assert await self.cache.resolve(99) is None
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_resolve_many_caps_and_drops_failures(self):
        async def fetch(entity_id):
            if entity_id == 3:
                raise BackendError("gone")
            return vehicle(entity_id)

        self.service.get_entity.side_effect = fetch
        resolved = await self.cache.resolve_many(range(1, 12), limit=8)

        assert [v["id"] for v in resolved] == [1, 2, 4, 5, 6, 7, 8]
        assert self.service.get_entity.await_count == 8

    @pytest.mark.asyncio
    async def test_clear(self):
        await self.cache.resolve(1)
        self.cache.clear()
        await self.cache.resolve(1)

        assert self.service.get_entity.await_count == 2
