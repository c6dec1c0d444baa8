from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from api.dependencies import get_storage
from pdf_to_image.errors import StorageError
from pdf_to_image.storage import LocalDiskProvider, StorageProvider

router = APIRouter(tags=["files"])


@router.get("/files/{key:path}", summary="Download a stored page image")
def get_file(key: str, storage: StorageProvider = Depends(get_storage)) -> FileResponse:
    if not isinstance(storage, LocalDiskProvider):
        raise HTTPException(status_code=400, detail="STORAGE_NOT_LOCAL")
    try:
        path = storage.resolve_local_path(key)
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="NOT_FOUND") from exc
    if not path.is_file():
        raise HTTPException(status_code=404, detail="NOT_FOUND")
    return FileResponse(path)


__all__ = ["router"]
