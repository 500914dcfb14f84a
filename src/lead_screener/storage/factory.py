"""Storage backend selection."""
from typing import Optional

from ..core.config import Settings, settings as default_settings
from ..core.logging import logger
from .base import KeyValueStore
from .cloud import KVRestStore, SupabaseStore
from .file import FileStore
from .memory import MemoryStore


BACKENDS = ("auto", "file", "memory", "kv", "supabase")


def _kv(config: Settings) -> Optional[KVRestStore]:
    if config.KV_REST_API_URL and config.KV_REST_API_TOKEN:
        return KVRestStore(config.KV_REST_API_URL, config.KV_REST_API_TOKEN, timeout=config.STORAGE_TIMEOUT)
    return None


def _supabase(config: Settings) -> Optional[SupabaseStore]:
    if config.SUPABASE_URL and config.SUPABASE_ANON_KEY:
        return SupabaseStore(config.SUPABASE_URL, config.SUPABASE_ANON_KEY, timeout=config.STORAGE_TIMEOUT)
    return None


def _file(config: Settings) -> FileStore:
    return FileStore(config.STORAGE_DIR, environment=config.APP_ENV, version=config.STORAGE_VERSION)


def create_store(config: Optional[Settings] = None) -> KeyValueStore:
    """
    Build the configured storage backend.

    With STORAGE_BACKEND=auto, production uses the first cloud backend whose
    credentials are present (KV, then Supabase) and falls back to memory;
    other environments use local files.

    Raises:
        ValueError: If a backend is forced but unknown or missing credentials
    """
    config = config or default_settings
    backend = config.STORAGE_BACKEND

    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend: {backend}")

    if backend == "auto":
        if not config.is_production:
            store = _file(config)
        else:
            store = _kv(config) or _supabase(config)
            if store is None:
                logger.warning("No cloud storage configured, using memory storage (lost on restart)")
                store = MemoryStore()
    elif backend == "file":
        store = _file(config)
    elif backend == "memory":
        store = MemoryStore()
    else:
        store = _kv(config) if backend == "kv" else _supabase(config)
        if store is None:
            raise ValueError(f"Storage backend {backend} is missing credentials")

    logger.info(f"Using {store.name} storage backend")
    return store
