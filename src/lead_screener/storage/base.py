"""Key-value storage interface for opaque client data."""
from typing import Any, Optional, Protocol


class KeyValueStore(Protocol):
    name: str

    async def save(self, key: str, data: Any) -> None: ...

    async def load(self, key: str) -> Optional[Any]: ...

    async def close(self) -> None: ...
