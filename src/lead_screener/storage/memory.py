"""In-memory storage backend. Data is lost on restart."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class MemoryStore:
    """Dict-backed store used when no persistent backend is configured."""

    name = "memory"

    def __init__(self):
        self._items: Dict[str, Dict[str, Any]] = {}

    async def save(self, key: str, data: Any) -> None:
        self._items[key] = {
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def load(self, key: str) -> Optional[Any]:
        item = self._items.get(key)
        return item["data"] if item else None

    async def close(self) -> None:
        return None
