"""
Authentication schemas for the ReportDesk occurrence service
"""

from pydantic import BaseModel, Field
import uuid
from typing import Optional


class TokenPayload(BaseModel):
    """Identity resolved from a bearer token and passed explicitly to services"""
    user_id: uuid.UUID = Field(..., description="User identifier")
    username: str = Field(..., description="Username")
    jti: Optional[str] = Field(None, description="JWT ID")
    exp: Optional[int] = Field(None, description="Expiration timestamp")


__all__ = ["TokenPayload"]
