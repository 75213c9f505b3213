"""Per-session cache of vehicle details referenced by assistant replies."""

from typing import Any, Dict, Iterable, List, Optional

from src.backend.base import EntityService
from src.utils.logger_config import get_logger

logger = get_logger(__name__)


class EntityPrefetchCache:
    """Entity id to last fetched payload. No expiry; cleared explicitly."""

    def __init__(self, entity_service: EntityService):
        self.entity_service = entity_service
        self._entries: Dict[int, Dict[str, Any]] = {}

    def __contains__(self, entity_id: int) -> bool:
        return entity_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def resolve(self, entity_id: int) -> Optional[Dict[str, Any]]:
        """Cached payload, or fetch and cache it. Returns None when the fetch fails."""
        if entity_id in self._entries:
            return self._entries[entity_id]

        try:
            payload = await self.entity_service.get_entity(entity_id)
        except Exception as e:
            logger.warning(f"Failed to fetch entity {entity_id}: {e}")
            return None

        if payload is None:
            logger.debug(f"Entity {entity_id} not found")
            return None

        self._entries[entity_id] = payload
        return payload

    async def resolve_many(self, entity_ids: Iterable[int], limit: int = 8) -> List[Dict[str, Any]]:
        """Resolve the first ``limit`` ids in order, dropping any that fail."""
        resolved = []
        for entity_id in list(entity_ids)[:limit]:
            payload = await self.resolve(entity_id)
            if payload is not None:
                resolved.append(payload)
        return resolved

    def clear(self) -> None:
        self._entries.clear()
