"""
Request plumbing shared by the routers.

Clients send JSON for most writes and multipart forms for uploads, so the
body is read once into a plain dict and validated against a schema inside
the handler.
"""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from keepsake.core.errors import ValidationError
from keepsake.storage.media import MediaStore

SchemaT = TypeVar("SchemaT", bound=BaseModel)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def request_payload(request: Request) -> dict[str, Any]:
    """The request body as a dict: form fields (files included) or a JSON object."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return dict(form)

    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_payload(model: type[SchemaT], payload: dict[str, Any]) -> SchemaT:
    """Validate a payload, reporting the first bad field as a 400."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise ValidationError(f"Invalid value for {field}")


def uploaded_file(payload: dict[str, Any], field: str) -> UploadFile | None:
    value = payload.get(field)
    return value if isinstance(value, UploadFile) else None


def require_id(value: int | None, label: str) -> int:
    if not value:
        raise ValidationError(f"{label} ID required")
    return value


def page_window(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """Clamp paging parameters: page >= 1, 1 <= limit <= max_limit."""
    return max(1, page), min(max_limit, max(1, limit))


def get_media(request: Request) -> MediaStore:
    return request.app.state.media
