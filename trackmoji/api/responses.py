"""
Response Envelope

Every API response (except /health and /) has the shape:

    {"success": true,  "data": ...}
    {"success": false, "error": {"message": ..., ...}}

Payloads are serialized with camelCase aliases.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success(
    data: Any,
    status_code: int = 200,
    exclude_none: bool = False,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "data": jsonable_encoder(data, by_alias=True, exclude_none=exclude_none),
        },
    )


def failure(
    status_code: int,
    message: str,
    extra: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    error = {"message": message}
    if extra:
        error.update(jsonable_encoder(extra))
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )
