"""
Attachment persistence
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.attachment import OccurrenceAttachment


class AttachmentRepository:
    """CRUD over occurrence attachment rows"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def add(
        self,
        occurrence_id: UUID,
        file_path: str,
        content_type: str,
        file_size: int,
        original_filename: Optional[str] = None,
    ) -> OccurrenceAttachment:
        """Stage an attachment row; the caller commits"""
        attachment = OccurrenceAttachment(
            occurrence_id=occurrence_id,
            file_path=file_path,
            original_filename=original_filename,
            content_type=content_type,
            file_size=file_size,
        )
        self.db.add(attachment)
        return attachment

    async def commit(self, attachments: List[OccurrenceAttachment]) -> List[OccurrenceAttachment]:
        await self.db.commit()
        for attachment in attachments:
            await self.db.refresh(attachment)
        return attachments

    async def rollback(self) -> None:
        await self.db.rollback()

    async def list_for_occurrence(self, occurrence_id: UUID) -> List[OccurrenceAttachment]:
        result = await self.db.execute(
            select(OccurrenceAttachment)
            .where(OccurrenceAttachment.occurrence_id == occurrence_id)
            .order_by(OccurrenceAttachment.created_at)
        )
        return list(result.scalars().all())

    async def get(self, occurrence_id: UUID, attachment_id: UUID) -> Optional[OccurrenceAttachment]:
        result = await self.db.execute(
            select(OccurrenceAttachment).where(
                OccurrenceAttachment.id == attachment_id,
                OccurrenceAttachment.occurrence_id == occurrence_id,
            )
        )
        return result.scalar_one_or_none()
