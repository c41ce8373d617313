"""
Pydantic schemas for Occurrences and their attachments
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .evaluation import EvaluationRead


class OccurrenceStatus(str, Enum):
    """Occurrence status workflow, in lifecycle order"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @property
    def rank(self) -> int:
        return list(OccurrenceStatus).index(self)


class OccurrenceCreate(BaseModel):
    """Schema for the text fields of a new occurrence"""
    location: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Where the occurrence was observed",
        examples=["Block A"]
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Occurrence category",
        examples=["Lighting", "Plumbing"]
    )
    asset_id: Optional[str] = Field(
        None,
        max_length=255,
        description="Optional - physical asset identifier"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="Description of the problem",
        examples=["Lamp broken"]
    )

    @field_validator('asset_id')
    @classmethod
    def blank_asset_is_none(cls, v):
        return v or None

    class Config:
        str_strip_whitespace = True


class AttachmentRead(BaseModel):
    """Schema for reading attachment metadata"""
    id: UUID
    occurrence_id: UUID
    file_path: str = Field(
        ...,
        description="Opaque storage reference"
    )
    original_filename: Optional[str] = None
    content_type: str
    file_size: int
    created_at: datetime

    class Config:
        from_attributes = True


class OccurrenceRead(BaseModel):
    """Schema for reading an occurrence"""
    id: UUID
    owner_id: UUID
    location: str
    category: str
    asset_id: Optional[str] = None
    description: str
    status: OccurrenceStatus
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OccurrenceDetail(OccurrenceRead):
    """Occurrence with its attachments and evaluation"""
    attachments: List[AttachmentRead] = Field(default_factory=list)
    evaluation: Optional[EvaluationRead] = None


class TimelineEntry(BaseModel):
    status: OccurrenceStatus
    at: datetime


class OccurrenceHistory(BaseModel):
    """Alternate view of an occurrence focused on its lifecycle"""
    id: UUID
    location: str
    category: str
    status: OccurrenceStatus
    timeline: List[TimelineEntry]
    evaluation: Optional[EvaluationRead] = None
    can_evaluate: bool = Field(
        ...,
        description="Whether the occurrence is resolved and still unrated"
    )


class OccurrenceCreatedResponse(BaseModel):
    message: str
    occurrence: OccurrenceDetail
