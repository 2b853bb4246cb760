"""
Response envelope.

Every endpoint answers with `{success, message, data}`; paginated lists add
a `pagination` block.
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from keepsake.core.utils import page_count


def success(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": True, "message": message, "data": data}),
    )


def error(message: str = "Error", status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def paginate(data: list[Any], total: int, page: int, limit: int, message: str = "Success") -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder({
            "success": True,
            "message": message,
            "data": data,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": page_count(total, limit),
            },
        }),
    )
