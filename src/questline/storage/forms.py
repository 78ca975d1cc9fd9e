"""Create requests that may carry an image file next to their fields.

The create routes accept either a JSON body or ``multipart/form-data`` whose
text parts are the same fields and whose file part is the image to store.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from questline.errors import InvalidArgument
from questline.storage.service import BaseBlobStorage, store_image

ModelT = TypeVar("ModelT", bound=BaseModel)
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def multipart_openapi(schema: type[BaseModel], file_field: str) -> dict:
    """``openapi_extra`` documenting both encodings, since the body is parsed by hand."""
    json_schema = schema.model_json_schema()
    form_schema = {
        **json_schema,
        "properties": {**json_schema.get("properties", {}), file_field: {"type": "string", "format": "binary"}},
    }
    return {
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": json_schema},
                "multipart/form-data": {"schema": form_schema},
            },
        }
    }


async def read_create_request(
    request: Request,
    schema: type[ModelT],
    file_field: str,
) -> tuple[ModelT, UploadFile | None]:
    """Parse the body into ``schema`` and return the optional file part."""
    upload: UploadFile | None = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data = {key: value for key, value in form.multi_items() if isinstance(value, str)}
        part = form.get(file_field)
        if isinstance(part, UploadFile) and part.filename:
            upload = part
    else:
        try:
            data = await request.json()
        except ValueError:
            msg = "Request body must be JSON or multipart form data"
            raise InvalidArgument(msg) from None

    try:
        return schema.model_validate(data), upload
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


async def resolve_image_url(
    storage: BaseBlobStorage,
    upload: UploadFile | None,
    url: str | None,
    field: str,
) -> str | None:
    """Store the uploaded image, if any, and return the URL to persist."""
    if upload is None:
        return url
    if url:
        msg = f"Send either an image file or {field}, not both"
        raise InvalidArgument(msg)
    stored = await store_image(storage, upload)
    return stored.url
