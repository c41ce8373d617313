"""
Occurrence lifecycle service.

Creates occurrences together with their image attachments, serves the
owner and detail reads, and records the one-shot evaluation an owner may
leave once staff have resolved the occurrence. The caller identity is
always passed in explicitly.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..models.attachment import OccurrenceAttachment
from ..models.evaluation import OccurrenceEvaluation
from ..models.occurrence import Occurrence
from ..repositories import (
    AttachmentRepository,
    DuplicateEvaluation,
    EvaluationRepository,
    OccurrenceRepository,
)
from ..schemas.evaluation import EvaluationCreate
from ..schemas.occurrence import OccurrenceCreate, OccurrenceStatus
from ..utils.errors import (
    AttachmentStorageError,
    InvalidStatusTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from .storage.attachment_store import AttachmentStore
from .uploads import InspectedImage, UploadedFile, validate_image_upload

logger = logging.getLogger(__name__)

EVALUATION_DENIED_MESSAGE = "This occurrence cannot be evaluated."

# Reasons reported with PermissionDenied on evaluation
NOT_OWNER = "not_owner"
NOT_RESOLVED = "not_resolved"
ALREADY_EVALUATED = "already_evaluated"


def field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by dotted field name"""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(field, []).append(error["msg"])
    return errors


class OccurrenceService:
    """Orchestrates occurrences, their attachments and evaluations"""

    def __init__(self, db: AsyncSession, store: AttachmentStore,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.occurrences = OccurrenceRepository(db)
        self.attachments = AttachmentRepository(db)
        self.evaluations = EvaluationRepository(db)
        self.store = store
        self.max_attachments = settings.max_attachments
        self.max_attachment_bytes = settings.max_attachment_bytes

    def validate_submission(
        self, data: Mapping[str, Any], files: Sequence[UploadedFile]
    ) -> Tuple[OccurrenceCreate, List[InspectedImage]]:
        """
        Validate the text fields and every file in one pass.

        Raises:
            ValidationError: with all violated fields, never just the first
        """
        errors: Dict[str, List[str]] = {}
        occurrence_input = None
        try:
            occurrence_input = OccurrenceCreate.model_validate(dict(data))
        except PydanticValidationError as e:
            errors.update(field_errors(e))

        if len(files) > self.max_attachments:
            errors["attachments"] = [
                f"The attachments must not have more than {self.max_attachments} items."
            ]

        inspections = []
        for index, upload in enumerate(files):
            field = f"attachments.{index}"
            messages, inspected = validate_image_upload(upload, field, self.max_attachment_bytes)
            if messages:
                errors[field] = messages
            inspections.append(inspected)

        if errors:
            logger.info(f"Occurrence submission rejected: {sorted(errors)}")
            raise ValidationError(errors)
        return occurrence_input, inspections

    async def submit(
        self,
        owner_id: UUID,
        data: Mapping[str, Any],
        files: Sequence[UploadedFile] = (),
    ) -> Occurrence:
        """
        Create an occurrence in the open status and store its attachments.

        The occurrence row is committed before any file is written. If a
        file cannot be stored, the pending attachment rows are discarded and
        AttachmentStorageError is raised; the occurrence stays, without
        attachments.
        """
        occurrence_input, inspections = self.validate_submission(data, files)

        occurrence = await self.occurrences.add(
            owner_id=owner_id,
            location=occurrence_input.location,
            category=occurrence_input.category,
            asset_id=occurrence_input.asset_id,
            description=occurrence_input.description,
            status=OccurrenceStatus.OPEN.value,
        )
        logger.info(f"Occurrence {occurrence.id} registered by {owner_id} ({occurrence.category})")

        if files:
            await self._store_attachments(occurrence.id, files, inspections)
        return occurrence

    async def _store_attachments(
        self,
        occurrence_id: UUID,
        files: Sequence[UploadedFile],
        inspections: Sequence[InspectedImage],
    ) -> List[OccurrenceAttachment]:
        staged = []
        try:
            for upload, inspected in zip(files, inspections):
                path = self.store.save(upload.data, inspected.extension, inspected.content_type)
                staged.append(self.attachments.add(
                    occurrence_id=occurrence_id,
                    file_path=path,
                    content_type=inspected.content_type,
                    file_size=upload.size,
                    original_filename=upload.filename,
                ))
            attachments = await self.attachments.commit(staged)
        except (OSError, ValueError, BotoCoreError, ClientError, SQLAlchemyError) as e:
            await self.attachments.rollback()
            logger.exception(
                f"Storing attachments for occurrence {occurrence_id} failed after "
                f"{len(staged)} of {len(files)} files: {e}"
            )
            raise AttachmentStorageError(
                "The occurrence was registered but its attachments could not be stored."
            ) from e

        logger.info(f"Stored {len(attachments)} attachments for occurrence {occurrence_id}")
        return attachments

    async def get_for_owner(self, owner_id: UUID) -> List[Occurrence]:
        """Occurrences submitted by owner_id, newest first"""
        return await self.occurrences.list_for_owner(owner_id)

    async def get_by_id(self, occurrence_id: UUID) -> Occurrence:
        # No ownership check: staff and other users may view any occurrence by id
        occurrence = await self.occurrences.get(occurrence_id)
        if occurrence is None:
            raise NotFound("Occurrence", occurrence_id)
        return occurrence

    async def get_detail(
        self, occurrence_id: UUID
    ) -> Tuple[Occurrence, List[OccurrenceAttachment], Optional[OccurrenceEvaluation]]:
        occurrence = await self.get_by_id(occurrence_id)
        attachments = await self.attachments.list_for_occurrence(occurrence.id)
        evaluation = await self.evaluations.get_for_occurrence(occurrence.id)
        return occurrence, attachments, evaluation

    async def get_attachment_content(
        self, occurrence_id: UUID, attachment_id: UUID
    ) -> Tuple[OccurrenceAttachment, bytes]:
        attachment = await self.attachments.get(occurrence_id, attachment_id)
        if attachment is None:
            raise NotFound("Attachment", attachment_id)
        try:
            data = self.store.load(attachment.file_path)
        except FileNotFoundError:
            logger.error(f"Attachment {attachment_id} points at missing file {attachment.file_path}")
            raise NotFound("Attachment", attachment_id)
        return attachment, data

    async def submit_evaluation(
        self,
        owner_id: UUID,
        occurrence_id: UUID,
        score: Any,
        comment: Optional[str] = None,
    ) -> OccurrenceEvaluation:
        """
        Record the owner's rating of a resolved occurrence.

        The owner, status and not-yet-evaluated preconditions are checked
        together before the input is validated.

        Raises:
            NotFound: occurrence does not exist
            PermissionDenied: any precondition fails
            ValidationError: score not in 1..5 or comment too long
        """
        occurrence = await self.get_by_id(occurrence_id)

        reasons = []
        if occurrence.owner_id != owner_id:
            reasons.append(NOT_OWNER)
        if occurrence.status != OccurrenceStatus.RESOLVED.value:
            reasons.append(NOT_RESOLVED)
        if await self.evaluations.exists_for_occurrence(occurrence_id):
            reasons.append(ALREADY_EVALUATED)
        if reasons:
            logger.warning(f"Evaluation of occurrence {occurrence_id} by {owner_id} denied: {reasons}")
            # Callers who do not own the occurrence learn nothing about its state
            if NOT_OWNER in reasons:
                reasons = [NOT_OWNER]
            raise PermissionDenied(EVALUATION_DENIED_MESSAGE, reasons)

        try:
            evaluation_input = EvaluationCreate.model_validate({"score": score, "comment": comment})
        except PydanticValidationError as e:
            raise ValidationError(field_errors(e))

        try:
            evaluation = await self.evaluations.add(
                occurrence_id=occurrence_id,
                owner_id=owner_id,
                score=evaluation_input.score,
                comment=evaluation_input.comment,
            )
        except DuplicateEvaluation:
            logger.warning(f"Concurrent evaluation of occurrence {occurrence_id} rejected by constraint")
            raise PermissionDenied(EVALUATION_DENIED_MESSAGE, [ALREADY_EVALUATED])

        logger.info(f"Evaluation {evaluation.id} recorded for occurrence {occurrence_id} (score {evaluation.score})")
        return evaluation

    async def advance_status(self, occurrence_id: UUID, new_status: Any) -> Occurrence:
        """Move an occurrence forward in its lifecycle; staff use only"""
        try:
            target = OccurrenceStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in OccurrenceStatus)
            raise ValidationError({"status": [f"Status must be one of: {allowed}"]})

        occurrence = await self.get_by_id(occurrence_id)
        current = OccurrenceStatus(occurrence.status)
        if target.rank <= current.rank:
            logger.warning(f"Rejected status change of {occurrence_id} from {current.value} to {target.value}")
            raise InvalidStatusTransition(current.value, target.value)

        occurrence = await self.occurrences.set_status(occurrence, target.value, datetime.now(timezone.utc))
        logger.info(f"Occurrence {occurrence_id} moved from {current.value} to {target.value}")
        return occurrence

    @staticmethod
    def can_evaluate(occurrence: Occurrence,
                     evaluation: Optional[OccurrenceEvaluation]) -> bool:
        return occurrence.status == OccurrenceStatus.RESOLVED.value and evaluation is None
