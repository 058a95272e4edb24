from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List

"""
Pydantic models for HTTP responses outside the compilation engine
"""

class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"

class ErrorResponse(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    status: int
    error: str
    message: str
    validationErrors: Optional[List[str]] = None
