"""
Common schemas for API responses.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel


class Message(BaseModel):
    """Generic message response."""

    message: str


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str
    kind: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
