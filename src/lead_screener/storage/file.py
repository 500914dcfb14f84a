"""Local file storage backend: one JSON document per key."""
import asyncio
import hashlib
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..core.errors import StorageError
from ..core.logging import logger


class FileStore:
    """
    Stores each key as ``<dir>/<sanitized key>_<key hash>.json``.

    The hash keeps keys that sanitize to the same name (``a-b``, ``a_b``) apart.

    Document layout: ``{key, data, timestamp, environment, version}``.
    """

    name = "file"

    def __init__(self, base_dir: str = "./data", environment: str = "development", version: int = 1):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.environment = environment
        self.version = version
        self._lock = asyncio.Lock()

    def path_for(self, key: str) -> Path:
        safe_name = re.sub(r"[^a-zA-Z0-9]", "_", key)
        key_hash = hashlib.sha256(key.encode()).hexdigest()[:8]
        return self.base_dir / f"{safe_name}_{key_hash}.json"

    async def save(self, key: str, data: Any) -> None:
        path = self.path_for(key)
        document = {
            "key": key,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": self.environment,
            "version": self.version,
        }
        try:
            async with self._lock:
                path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save {key} to {path}: {e}")
            raise StorageError(f"Failed to save {key}: {e}", self.name) from e
        logger.info(f"Saved {key} to {path}")

    async def load(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            logger.debug(f"No stored file for {key}")
            return None

        try:
            async with self._lock:
                document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Invalid storage file {path}: {e}")
            return None
        return document.get("data")

    async def close(self) -> None:
        return None
