"""
Evaluation persistence
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.evaluation import OccurrenceEvaluation


class DuplicateEvaluation(Exception):
    """The unique constraint on occurrence_id rejected an insert"""

    def __init__(self, occurrence_id: UUID):
        super().__init__(f"Occurrence {occurrence_id} already has an evaluation")
        self.occurrence_id = occurrence_id


class EvaluationRepository:
    """CRUD over occurrence evaluation rows"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(
        self,
        occurrence_id: UUID,
        owner_id: UUID,
        score: int,
        comment: Optional[str] = None,
    ) -> OccurrenceEvaluation:
        evaluation = OccurrenceEvaluation(
            occurrence_id=occurrence_id,
            owner_id=owner_id,
            score=score,
            comment=comment,
        )
        self.db.add(evaluation)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateEvaluation(occurrence_id) from e
        await self.db.refresh(evaluation)
        return evaluation

    async def get_for_occurrence(self, occurrence_id: UUID) -> Optional[OccurrenceEvaluation]:
        result = await self.db.execute(
            select(OccurrenceEvaluation).where(OccurrenceEvaluation.occurrence_id == occurrence_id)
        )
        return result.scalar_one_or_none()

    async def exists_for_occurrence(self, occurrence_id: UUID) -> bool:
        result = await self.db.execute(
            select(func.count(OccurrenceEvaluation.id))
            .where(OccurrenceEvaluation.occurrence_id == occurrence_id)
        )
        return result.scalar() > 0
