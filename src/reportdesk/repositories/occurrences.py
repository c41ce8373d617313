"""
Occurrence persistence
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.occurrence import Occurrence


class OccurrenceRepository:
    """CRUD over the occurrences table"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self,
        owner_id: UUID,
        location: str,
        category: str,
        description: str,
        asset_id: Optional[str] = None,
        status: str = "open",
    ) -> Occurrence:
        occurrence = Occurrence(
            owner_id=owner_id,
            location=location,
            category=category,
            asset_id=asset_id,
            description=description,
            status=status,
        )
        self.db.add(occurrence)
        await self.db.commit()
        await self.db.refresh(occurrence)
        return occurrence

    async def get(self, occurrence_id: UUID) -> Optional[Occurrence]:
        result = await self.db.execute(
            select(Occurrence).where(Occurrence.id == occurrence_id)
        )
        return result.scalar_one_or_none()

    async def list_for_owner(self, owner_id: UUID) -> List[Occurrence]:
        """All occurrences of one owner, newest first"""
        result = await self.db.execute(
            select(Occurrence)
            .where(Occurrence.owner_id == owner_id)
            .order_by(desc(Occurrence.created_at))
        )
        return list(result.scalars().all())

    async def set_status(self, occurrence: Occurrence, status: str, at: datetime) -> Occurrence:
        occurrence.status = status
        if status == "resolved":
            occurrence.resolved_at = at
        elif status == "closed":
            occurrence.closed_at = at
        await self.db.commit()
        await self.db.refresh(occurrence)
        return occurrence
