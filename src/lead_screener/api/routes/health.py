"""Health check endpoints."""
from fastapi import APIRouter, Depends
from typing import Dict, Any
import psutil
import time

from ...core.config import Settings
from ...storage.base import KeyValueStore
from ...tasks.registry import TaskRegistry
from ..dependencies import get_registry, get_settings, get_store


router = APIRouter()


@router.get("/health", summary="Basic health check")
async def health_check(config: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": config.APP_VERSION,
        "service": config.APP_NAME
    }


@router.get("/health/detailed", summary="Detailed health check")
async def detailed_health_check(
    config: Settings = Depends(get_settings),
    registry: TaskRegistry = Depends(get_registry),
    store: KeyValueStore = Depends(get_store)
) -> Dict[str, Any]:
    """Health check with process memory, task counts and storage backend."""
    process = psutil.Process()
    memory = psutil.virtual_memory()

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": config.APP_VERSION,
        "service": config.APP_NAME,
        "environment": config.APP_ENV,
        "memory": {
            "rssMb": round(process.memory_info().rss / 1024 / 1024, 1),
            "systemPercent": memory.percent,
            "cleanupThresholdMb": config.MEMORY_CLEANUP_MB,
            "criticalThresholdMb": config.MEMORY_CRITICAL_MB
        },
        "tasks": registry.summary(),
        "storage": store.name,
        "configuration": {
            "maxTasks": config.MAX_TASKS,
            "activeTaskPolicy": registry.policy.value,
            "crawlerTimeout": config.CRAWLER_TIMEOUT
        }
    }
