"""Response envelope shared by every endpoint."""

from typing import Any

from pydantic import BaseModel


class ApiResponse(BaseModel):
    success: bool = True
    message: str
    error: str | None = None
    data: Any | None = None
