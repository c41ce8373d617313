"""
Pydantic schemas for occurrence evaluations
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class EvaluationCreate(BaseModel):
    """Schema for rating a resolved occurrence"""
    score: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5"
    )
    comment: Optional[str] = Field(
        None,
        max_length=500,
        description="Optional comment"
    )

    @field_validator('score', mode='before')
    @classmethod
    def reject_booleans(cls, v):
        if isinstance(v, bool):
            raise ValueError("Score must be an integer")
        return v

    @field_validator('comment')
    @classmethod
    def blank_comment_is_none(cls, v):
        return v or None


class EvaluationRead(BaseModel):
    """Schema for reading an evaluation"""
    id: UUID
    occurrence_id: UUID
    owner_id: UUID
    score: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EvaluationCreatedResponse(BaseModel):
    message: str
    evaluation: EvaluationRead
