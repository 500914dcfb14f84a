"""Opaque key-value storage for dashboard state."""
from fastapi import APIRouter, Depends, Query

from ...models.requests import StorageRequest
from ...models.responses import StorageLoadResponse, StorageSaveResponse
from ...storage.base import KeyValueStore
from ..dependencies import get_store


router = APIRouter()


@router.post("/storage", response_model=StorageSaveResponse, summary="Save a value")
async def save_value(
    request: StorageRequest,
    store: KeyValueStore = Depends(get_store)
) -> StorageSaveResponse:
    await store.save(request.key, request.data)
    return StorageSaveResponse(key=request.key, backend=store.name)


@router.get("/storage", response_model=StorageLoadResponse, summary="Load a value")
async def load_value(
    key: str = Query(..., min_length=1),
    store: KeyValueStore = Depends(get_store)
) -> StorageLoadResponse:
    """Missing keys return ``data: null`` rather than 404."""
    return StorageLoadResponse(data=await store.load(key))
