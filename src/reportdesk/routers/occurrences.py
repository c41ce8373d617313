"""
Occurrences API Router

Submission, listing and detail views of occurrences, attachment download,
and evaluation of resolved occurrences by their owner.
"""

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database.core import get_db
from ..dependencies import get_current_active_user
from ..schemas.auth import TokenPayload
from ..schemas.evaluation import EvaluationCreatedResponse, EvaluationRead
from ..schemas.occurrence import (
    AttachmentRead,
    OccurrenceCreatedResponse,
    OccurrenceDetail,
    OccurrenceHistory,
    OccurrenceRead,
    OccurrenceStatus,
    TimelineEntry,
)
from ..services.occurrence_service import OccurrenceService
from ..services.storage.attachment_store import AttachmentStore, get_attachment_store
from ..services.uploads import UploadedFile

router = APIRouter(prefix="/v1/occurrences", tags=["occurrences"])

OCCURRENCE_CREATED_MESSAGE = "Occurrence registered successfully."
EVALUATION_CREATED_MESSAGE = "Evaluation registered successfully."


def get_occurrence_service(
    db: AsyncSession = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
) -> OccurrenceService:
    return OccurrenceService(db, store)


def build_detail(occurrence, attachments, evaluation) -> OccurrenceDetail:
    return OccurrenceDetail(
        **OccurrenceRead.model_validate(occurrence).model_dump(),
        attachments=[AttachmentRead.model_validate(a) for a in attachments],
        evaluation=EvaluationRead.model_validate(evaluation) if evaluation else None,
    )


def build_timeline(occurrence) -> List[TimelineEntry]:
    timeline = [TimelineEntry(status=OccurrenceStatus.OPEN, at=occurrence.created_at)]
    if occurrence.resolved_at:
        timeline.append(TimelineEntry(status=OccurrenceStatus.RESOLVED, at=occurrence.resolved_at))
    if occurrence.closed_at:
        timeline.append(TimelineEntry(status=OccurrenceStatus.CLOSED, at=occurrence.closed_at))
    return timeline


async def read_uploads(
    uploads: Optional[List[UploadFile]], max_files: int, max_bytes: int
) -> List[UploadedFile]:
    """
    Read multipart parts into memory, skipping empty file inputs.

    At most ``max_bytes + 1`` bytes are read per part and at most
    ``max_files + 1`` parts are kept, enough for the size and count rules
    to report a violation.
    """
    files = []
    for upload in uploads or []:
        if len(files) > max_files:
            break
        data = await upload.read(max_bytes + 1)
        if not upload.filename and not data:
            continue
        files.append(UploadedFile(filename=upload.filename, content_type=upload.content_type, data=data))
    return files


@router.get("/", response_model=List[OccurrenceRead])
async def list_my_occurrences(
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Occurrences submitted by the caller, newest first"""
    return await service.get_for_owner(current_user.user_id)


@router.post("/", response_model=OccurrenceCreatedResponse, status_code=201)
async def create_occurrence(
    location: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    asset_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None, description="Up to 4 JPEG/PNG images"),
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Register a new occurrence with optional photo attachments"""
    fields = {
        "location": location,
        "category": category,
        "asset_id": asset_id,
        "description": description,
    }
    data = {key: value for key, value in fields.items() if value is not None}
    settings = get_settings()
    files = await read_uploads(attachments, settings.max_attachments, settings.max_attachment_bytes)

    occurrence = await service.submit(current_user.user_id, data, files)
    occurrence, stored, evaluation = await service.get_detail(occurrence.id)
    return OccurrenceCreatedResponse(
        message=OCCURRENCE_CREATED_MESSAGE,
        occurrence=build_detail(occurrence, stored, evaluation),
    )


@router.get("/{occurrence_id}", response_model=OccurrenceDetail)
async def get_occurrence(
    occurrence_id: uuid.UUID,
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Single occurrence with attachments and evaluation"""
    occurrence, attachments, evaluation = await service.get_detail(occurrence_id)
    return build_detail(occurrence, attachments, evaluation)


@router.get("/{occurrence_id}/history", response_model=OccurrenceHistory)
async def get_occurrence_history(
    occurrence_id: uuid.UUID,
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Lifecycle view of an occurrence: status timeline and evaluation"""
    occurrence, _, evaluation = await service.get_detail(occurrence_id)
    return OccurrenceHistory(
        id=occurrence.id,
        location=occurrence.location,
        category=occurrence.category,
        status=occurrence.status,
        timeline=build_timeline(occurrence),
        evaluation=EvaluationRead.model_validate(evaluation) if evaluation else None,
        can_evaluate=(
            occurrence.owner_id == current_user.user_id
            and service.can_evaluate(occurrence, evaluation)
        ),
    )


@router.get("/{occurrence_id}/attachments/{attachment_id}")
async def download_attachment(
    occurrence_id: uuid.UUID,
    attachment_id: uuid.UUID,
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Raw bytes of a stored attachment image"""
    attachment, data = await service.get_attachment_content(occurrence_id, attachment_id)
    filename = attachment.file_path.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type=attachment.content_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.post("/{occurrence_id}/evaluation", response_model=EvaluationCreatedResponse, status_code=201)
async def evaluate_occurrence(
    occurrence_id: uuid.UUID,
    payload: Optional[Dict[str, Any]] = Body(None),
    service: OccurrenceService = Depends(get_occurrence_service),
    current_user: TokenPayload = Depends(get_current_active_user)
):
    """Rate a resolved occurrence; allowed once, for its owner only"""
    payload = payload or {}
    evaluation = await service.submit_evaluation(
        owner_id=current_user.user_id,
        occurrence_id=occurrence_id,
        score=payload.get("score"),
        comment=payload.get("comment"),
    )
    return EvaluationCreatedResponse(
        message=EVALUATION_CREATED_MESSAGE,
        evaluation=EvaluationRead.model_validate(evaluation),
    )
