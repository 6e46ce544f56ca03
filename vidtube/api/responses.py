"""Helpers building enveloped JSON responses."""

from typing import Any, Optional

from fastapi.responses import JSONResponse

from vidtube.models.response import ApiResponse, ErrorResponse


def api_response(
    status_code: int,
    data: Any = None,
    message: str = "Success",
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Wrap a payload in the success envelope."""
    body = ApiResponse(status_code=status_code, data=data, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )


def error_response(
    status_code: int,
    message: str,
    errors: Optional[list] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Wrap an error in the error envelope."""
    body = ErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )
