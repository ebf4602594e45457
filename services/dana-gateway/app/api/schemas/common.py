from __future__ import annotations
from typing import Any
from pydantic import BaseModel


class SuccessResponse(BaseModel):
    success: bool = True
    message: str
    data: Any = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    details: Any = None
