from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from comments_app.core.time import now_ts


class NameCache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryNameCache:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class DynamoNameCache:
    """One slot per (client_id, cache_key). Last writer wins, no expiry."""

    def __init__(self, client_id: str, table: Any = None):
        if table is None:
            from comments_app.core.tables import T

            table = T.name_cache
        self._table = table
        self.client_id = client_id

    def get(self, key: str) -> Optional[str]:
        it = self._table.get_item(Key={"client_id": self.client_id, "cache_key": key}).get("Item")
        if not it:
            return None
        value = it.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._table.put_item(Item={
            "client_id": self.client_id,
            "cache_key": key,
            "value": value,
            "updated_at": now_ts(),
        })
