"""Upload endpoint: stores an image and returns the URL to reference it by."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from questline.storage.service import BaseBlobStorage, get_blob_storage, store_image

router = APIRouter(prefix="/api/v1/uploads", tags=["Uploads"])


class UploadResponse(BaseModel):
    url: str
    content_type: str
    size: int


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    storage: BaseBlobStorage = Depends(get_blob_storage),
) -> UploadResponse:
    """Store an avatar or task image. Only image/* content is accepted."""
    stored = await store_image(storage, file)
    return UploadResponse(url=stored.url, content_type=stored.content_type, size=stored.size)
