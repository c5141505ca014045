from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class XsrfRejectionOut(BaseModel):
    """Error body returned when a destructive request lacks the XSRF marker."""
    model_config = ConfigDict(extra='forbid')

    statusCode: int
    error: str
    message: str
