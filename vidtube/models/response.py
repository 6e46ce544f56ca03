"""Response envelopes shared by every endpoint."""

from typing import Any

from pydantic import Field, computed_field

from vidtube.models.user import CamelModel


class ApiResponse(CamelModel):
    """Success envelope.

    Attributes:
        status_code: HTTP status of the response
        data: Endpoint payload
        message: Human-readable outcome
        success: True for any status below 400
    """

    status_code: int
    data: Any = None
    message: str = "Success"

    @computed_field
    @property
    def success(self) -> bool:
        return self.status_code < 400


class ErrorResponse(CamelModel):
    """Error envelope. `data` is always null and `success` always false."""

    status_code: int
    data: None = None
    message: str
    success: bool = False
    errors: list[Any] = Field(default_factory=list)
