"""
Integration tests for OccurrenceService against an in-memory database.

Covers submission with attachments, owner listing, detail reads, status
advancement and the evaluation preconditions.
"""

import uuid
from unittest.mock import AsyncMock, Mock, patch

import pytest

from conftest import make_image_bytes, make_upload
from reportdesk.repositories import DuplicateEvaluation
from reportdesk.services.occurrence_service import (
    ALREADY_EVALUATED,
    EVALUATION_DENIED_MESSAGE,
    NOT_OWNER,
    NOT_RESOLVED,
    OccurrenceService,
)
from reportdesk.services.uploads import UploadedFile, inspect_image
from reportdesk.utils.errors import (
    AttachmentStorageError,
    InvalidStatusTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)

VALID_FIELDS = {"location": "Block A", "category": "Lighting", "description": "Lamp broken"}

pytestmark = pytest.mark.integration


@pytest.fixture
def service(db_session, attachment_store, settings):
    return OccurrenceService(db_session, attachment_store, settings)


@pytest.fixture
def owner_id():
    return uuid.uuid4()


async def resolved_occurrence(service, owner_id):
    occurrence = await service.submit(owner_id, VALID_FIELDS)
    return await service.advance_status(occurrence.id, "resolved")


class TestSubmit:

    async def test_creates_open_occurrence_for_caller(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        assert occurrence.status == "open"
        assert occurrence.owner_id == owner_id
        assert occurrence.asset_id is None
        assert occurrence.resolved_at is None

    async def test_two_images_create_two_attachments(self, service, owner_id, attachment_store):
        files = [make_upload("a.jpg"), make_upload("b.png", "PNG", "image/png")]

        occurrence = await service.submit(owner_id, {**VALID_FIELDS, "asset_id": "PAT-001"}, files)
        _, attachments, evaluation = await service.get_detail(occurrence.id)

        assert occurrence.status == "open"
        assert occurrence.asset_id == "PAT-001"
        assert len(attachments) == 2
        assert len({a.file_path for a in attachments}) == 2
        assert {a.content_type for a in attachments} == {"image/jpeg", "image/png"}
        assert {a.original_filename for a in attachments} == {"a.jpg", "b.png"}
        assert evaluation is None
        for attachment in attachments:
            assert attachment_store.load(attachment.file_path)

    async def test_exactly_max_attachments_accepted(self, service, owner_id):
        files = [make_upload(f"{i}.jpg") for i in range(4)]

        occurrence = await service.submit(owner_id, VALID_FIELDS, files)
        _, attachments, _ = await service.get_detail(occurrence.id)

        assert len(attachments) == 4

    async def test_too_many_attachments_rejected(self, service, owner_id):
        files = [make_upload(f"{i}.jpg") for i in range(5)]

        with pytest.raises(ValidationError) as exc_info:
            await service.submit(owner_id, VALID_FIELDS, files)

        assert "attachments" in exc_info.value.errors
        assert await service.get_for_owner(owner_id) == []

    async def test_non_image_rejected_regardless_of_count(self, service, owner_id):
        files = [make_upload("a.jpg"), UploadedFile("doc.jpg", "image/jpeg", b"plain text")]

        with pytest.raises(ValidationError) as exc_info:
            await service.submit(owner_id, VALID_FIELDS, files)

        assert list(exc_info.value.errors) == ["attachments.1"]
        assert await service.get_for_owner(owner_id) == []

    async def test_oversized_image_rejected(self, db_session, attachment_store, settings, owner_id):
        data = make_image_bytes("PNG")
        settings.max_attachment_kb = 0
        service = OccurrenceService(db_session, attachment_store, settings)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit(owner_id, VALID_FIELDS, [UploadedFile("a.png", "image/png", data)])

        assert exc_info.value.errors["attachments.0"] == [
            "The attachments.0 must not be greater than 0 kilobytes."
        ]

    async def test_each_image_is_decoded_once(self, service, owner_id):
        files = [make_upload("a.jpg"), make_upload("b.png", "PNG", "image/png")]

        with patch("reportdesk.services.uploads.inspect_image", wraps=inspect_image) as decode:
            await service.submit(owner_id, VALID_FIELDS, files)

        assert decode.call_count == 2

    async def test_all_field_errors_reported_together(self, service, owner_id):
        files = [UploadedFile("x.txt", "text/plain", b"nope")]

        with pytest.raises(ValidationError) as exc_info:
            await service.submit(owner_id, {"location": "Block A"}, files)

        assert set(exc_info.value.errors) == {"category", "description", "attachments.0"}

    async def test_storage_failure_keeps_occurrence_without_attachments(
        self, db_session, attachment_store, settings, owner_id
    ):
        attachment_store.save = Mock(side_effect=OSError("disk full"))
        service = OccurrenceService(db_session, attachment_store, settings)

        with pytest.raises(AttachmentStorageError):
            await service.submit(owner_id, VALID_FIELDS, [make_upload()])

        occurrences = await service.get_for_owner(owner_id)
        assert len(occurrences) == 1
        _, attachments, _ = await service.get_detail(occurrences[0].id)
        assert attachments == []


class TestReads:

    async def test_get_for_owner_is_scoped_and_newest_first(self, service, owner_id):
        other_owner = uuid.uuid4()
        first = await service.submit(owner_id, {**VALID_FIELDS, "location": "First"})
        await service.submit(other_owner, VALID_FIELDS)
        second = await service.submit(owner_id, {**VALID_FIELDS, "location": "Second"})

        occurrences = await service.get_for_owner(owner_id)

        assert [o.id for o in occurrences] == [second.id, first.id]
        assert all(o.owner_id == owner_id for o in occurrences)

    async def test_get_for_owner_without_occurrences(self, service):
        assert await service.get_for_owner(uuid.uuid4()) == []

    async def test_get_by_id_has_no_ownership_check(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        found = await service.get_by_id(occurrence.id)

        assert found.id == occurrence.id

    async def test_get_by_id_unknown(self, service):
        with pytest.raises(NotFound):
            await service.get_by_id(uuid.uuid4())

    async def test_attachment_content(self, service, owner_id):
        upload = make_upload("lamp.png", "PNG", "image/png")
        occurrence = await service.submit(owner_id, VALID_FIELDS, [upload])
        _, attachments, _ = await service.get_detail(occurrence.id)

        attachment, data = await service.get_attachment_content(occurrence.id, attachments[0].id)

        assert data == upload.data
        assert attachment.content_type == "image/png"

    async def test_attachment_of_other_occurrence_not_found(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS, [make_upload()])
        other = await service.submit(owner_id, VALID_FIELDS)
        _, attachments, _ = await service.get_detail(occurrence.id)

        with pytest.raises(NotFound):
            await service.get_attachment_content(other.id, attachments[0].id)


class TestAdvanceStatus:

    async def test_moves_forward_and_stamps_times(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        occurrence = await service.advance_status(occurrence.id, "in_progress")
        assert occurrence.status == "in_progress"
        occurrence = await service.advance_status(occurrence.id, "resolved")
        assert occurrence.resolved_at is not None
        occurrence = await service.advance_status(occurrence.id, "closed")
        assert occurrence.closed_at is not None

    @pytest.mark.parametrize("target", ["open", "in_progress"])
    async def test_backward_or_same_rejected(self, service, owner_id, target):
        occurrence = await service.submit(owner_id, VALID_FIELDS)
        await service.advance_status(occurrence.id, "in_progress")

        with pytest.raises(InvalidStatusTransition):
            await service.advance_status(occurrence.id, target)

    async def test_unknown_status_rejected(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        with pytest.raises(ValidationError) as exc_info:
            await service.advance_status(occurrence.id, "archived")

        assert "status" in exc_info.value.errors


class TestSubmitEvaluation:

    async def test_owner_rates_resolved_occurrence(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)

        evaluation = await service.submit_evaluation(owner_id, occurrence.id, 5, "Fixed quickly")

        assert evaluation.score == 5
        assert evaluation.comment == "Fixed quickly"
        assert evaluation.owner_id == owner_id
        _, _, stored = await service.get_detail(occurrence.id)
        assert stored.id == evaluation.id

    @pytest.mark.parametrize("score", [1, 5])
    async def test_boundary_scores_accepted(self, service, owner_id, score):
        occurrence = await resolved_occurrence(service, owner_id)

        evaluation = await service.submit_evaluation(owner_id, occurrence.id, score)

        assert evaluation.score == score
        assert evaluation.comment is None

    @pytest.mark.parametrize("score", [0, 6, None, "abc"])
    async def test_out_of_range_scores_rejected(self, service, owner_id, score):
        occurrence = await resolved_occurrence(service, owner_id)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, score)

        assert "score" in exc_info.value.errors
        assert await service.evaluations.get_for_occurrence(occurrence.id) is None

    async def test_comment_too_long_rejected(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)

        with pytest.raises(ValidationError) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, 4, "x" * 501)

        assert "comment" in exc_info.value.errors

    async def test_wrong_owner_denied(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(uuid.uuid4(), occurrence.id, 4)

        assert exc_info.value.message == EVALUATION_DENIED_MESSAGE
        assert exc_info.value.reasons == [NOT_OWNER]

    @pytest.mark.parametrize("status", [None, "in_progress", "closed"])
    async def test_not_resolved_denied(self, service, owner_id, status):
        occurrence = await service.submit(owner_id, VALID_FIELDS)
        if status:
            occurrence = await service.advance_status(occurrence.id, status)

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, 4)

        assert exc_info.value.reasons == [NOT_RESOLVED]
        assert await service.evaluations.get_for_occurrence(occurrence.id) is None

    async def test_second_evaluation_denied(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)
        await service.submit_evaluation(owner_id, occurrence.id, 4)

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, 2)

        assert exc_info.value.reasons == [ALREADY_EVALUATED]
        evaluation = await service.evaluations.get_for_occurrence(occurrence.id)
        assert evaluation.score == 4

    async def test_non_owner_only_learns_not_owner(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(uuid.uuid4(), occurrence.id, 4)

        assert exc_info.value.reasons == [NOT_OWNER]

    async def test_owner_sees_all_failed_preconditions(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)
        await service.submit_evaluation(owner_id, occurrence.id, 4)
        await service.advance_status(occurrence.id, "closed")

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, 5)

        assert exc_info.value.reasons == [NOT_RESOLVED, ALREADY_EVALUATED]

    async def test_permission_checked_before_input(self, service, owner_id):
        occurrence = await service.submit(owner_id, VALID_FIELDS)

        with pytest.raises(PermissionDenied):
            await service.submit_evaluation(owner_id, occurrence.id, 99)

    async def test_unknown_occurrence(self, service, owner_id):
        with pytest.raises(NotFound):
            await service.submit_evaluation(owner_id, uuid.uuid4(), 4)

    async def test_constraint_blocks_duplicate_when_check_is_bypassed(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)
        occurrence_id = occurrence.id
        await service.submit_evaluation(owner_id, occurrence_id, 4)
        service.evaluations.exists_for_occurrence = AsyncMock(return_value=False)

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(owner_id, occurrence_id, 1)

        assert exc_info.value.reasons == [ALREADY_EVALUATED]

    async def test_duplicate_from_repository_is_mapped(self, service, owner_id):
        occurrence = await resolved_occurrence(service, owner_id)
        service.evaluations.add = AsyncMock(side_effect=DuplicateEvaluation(occurrence.id))

        with pytest.raises(PermissionDenied) as exc_info:
            await service.submit_evaluation(owner_id, occurrence.id, 3)

        assert exc_info.value.reasons == [ALREADY_EVALUATED]

    def test_can_evaluate(self):
        class Row:
            status = "resolved"

        assert OccurrenceService.can_evaluate(Row(), None)
        assert not OccurrenceService.can_evaluate(Row(), object())
        Row.status = "closed"
        assert not OccurrenceService.can_evaluate(Row(), None)
