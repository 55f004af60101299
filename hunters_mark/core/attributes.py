"""Namespaced key/value attributes stored on host documents."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Tuple

from ..errors import StoreWriteFailed
from .entity_manager import EntityManager

logger = logging.getLogger(__name__)

MODULE_NAMESPACE = "hunters-mark"


class AttributeStore:
    """Document-style attribute storage.

    Reads hand back a deep copy and writes store a deep copy, so two
    interleaved read-modify-write sequences on the same key really can
    overwrite each other. Each call yields to the event loop once, the same
    way a round-trip to the host's database would.
    """

    def __init__(self, entity_manager: EntityManager) -> None:
        self._entities = entity_manager
        # Maps (entity id, namespace) -> {key: value}
        self._data: Dict[Tuple[int, str], Dict[str, Any]] = {}

    async def get(self, entity_id: int, namespace: str, key: str) -> Any:
        """Return the value under ``namespace.key`` or ``None``."""

        await asyncio.sleep(0)
        value = self._data.get((entity_id, namespace), {}).get(key)
        return copy.deepcopy(value)

    async def set(self, entity_id: int, namespace: str, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        self._check_writable(entity_id, namespace, key)
        self._data.setdefault((entity_id, namespace), {})[key] = copy.deepcopy(value)
        logger.debug("set %s.%s on entity %s", namespace, key, entity_id)

    async def delete(self, entity_id: int, namespace: str, key: str) -> None:
        await asyncio.sleep(0)
        self._check_writable(entity_id, namespace, key)
        bucket = self._data.get((entity_id, namespace))
        if bucket is None:
            return
        bucket.pop(key, None)
        if not bucket:
            self._data.pop((entity_id, namespace), None)
        logger.debug("deleted %s.%s on entity %s", namespace, key, entity_id)

    def forget(self, entity_id: int) -> None:
        """Drop everything stored on ``entity_id`` (entity destroyed)."""
        for bucket_key in [k for k in self._data if k[0] == entity_id]:
            self._data.pop(bucket_key, None)

    def _check_writable(self, entity_id: int, namespace: str, key: str) -> None:
        if not self._entities.has_entity(entity_id):
            raise StoreWriteFailed(
                "Cannot write to a document that no longer exists",
                {"entity": entity_id, "key": f"{namespace}.{key}"},
            )


__all__ = ["AttributeStore", "MODULE_NAMESPACE"]
