# Backend/app/core/responses.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException

from app.config import settings

GENERIC_ERROR_TEXT = "An error occurred"


class ApiError(HTTPException):
    """
    HTTPException that also carries the underlying error text.

    The text ends up in the envelope's `error` field, but only when the
    service runs with ENVIRONMENT=development.
    """

    def __init__(self, status_code: int, message: str, error: Optional[str] = None):
        super().__init__(status_code=status_code, detail=message)
        self.error = error


def success_envelope(
    data: Any = None,
    message: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def error_envelope(message: str, error: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error if settings.is_development else GENERIC_ERROR_TEXT
    body.update(extra)
    return body
