"""
Material creation, visibility, search and usage counters.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.errors import AuthorizationError, NotFoundError, ValidationError
from edubridge.orm.material import ApprovalStatus, MaterialType
from edubridge.schemas.material_schemas import MaterialFilter
from edubridge.schemas.settings_schemas import SystemPolicyUpdate, UploadRestrictions
from edubridge.services import material_service
from edubridge.services.settings_service import update_system_policy

MB = 1024 * 1024


class TestCreateMaterial:

    @pytest.mark.asyncio
    async def test_student_upload_starts_pending(self, upload, student):
        material = await upload(student)

        assert material.approval_status == ApprovalStatus.pending
        assert material.approved_by is None
        assert material.approved_date is None
        assert material.uploader_role == "student"
        assert material.uploader_name == student.full_name
        assert material.download_count == 0
        assert material.views == 0

    @pytest.mark.asyncio
    async def test_lecturer_upload_is_auto_approved(self, upload, lecturer):
        material = await upload(lecturer)

        assert material.approval_status == ApprovalStatus.approved
        assert material.approved_date is not None
        assert material.uploader_role == "lecturer"

    @pytest.mark.asyncio
    async def test_subject_name_comes_from_catalog(self, upload, student):
        material = await upload(student, subject_code="DPP20023")
        assert material.subject_name == "INTERNATIONAL BUSINESS"

    @pytest.mark.asyncio
    async def test_admin_cannot_upload(self, upload, admin):
        with pytest.raises(AuthorizationError):
            await upload(admin)

    @pytest.mark.asyncio
    async def test_unknown_subject_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, subject_code="XYZ99999")
        assert exc_info.value.field == "subject_code"

    @pytest.mark.asyncio
    async def test_subject_from_other_programme_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, subject_code="DRM30013", programme_id="DBS")
        assert exc_info.value.field == "subject_code"

    @pytest.mark.asyncio
    async def test_semester_must_match_subject(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, semester=2)
        assert exc_info.value.field == "semester"

    @pytest.mark.asyncio
    async def test_oversized_file_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, file_size=11 * MB)
        assert exc_info.value.field == "file_size"

    @pytest.mark.asyncio
    async def test_empty_file_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, file_size=0)
        assert exc_info.value.field == "file_size"

    @pytest.mark.asyncio
    async def test_disallowed_type_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, file_type="image/png", file_name="scan.png")
        assert exc_info.value.field == "file_type"

    @pytest.mark.asyncio
    async def test_long_file_name_is_rejected(self, upload, student):
        with pytest.raises(ValidationError) as exc_info:
            await upload(student, file_name="a" * 101 + ".pdf")
        assert exc_info.value.field == "file_name"

    @pytest.mark.asyncio
    async def test_failed_validation_writes_nothing(self, db_session: AsyncSession, upload, student):
        with pytest.raises(ValidationError):
            await upload(student, file_size=50 * MB)
        assert await material_service.list_uploads(db_session, student.id) == []

    @pytest.mark.asyncio
    async def test_auto_approval_can_be_switched_off(self, db_session, upload, lecturer, admin):
        await update_system_policy(
            db_session, admin,
            SystemPolicyUpdate(restrictions=UploadRestrictions(lecturer_auto_approval=False)),
        )
        material = await upload(lecturer)
        assert material.approval_status == ApprovalStatus.pending

    @pytest.mark.asyncio
    async def test_students_limited_to_notes(self, db_session, upload, student, admin):
        await update_system_policy(
            db_session, admin,
            SystemPolicyUpdate(restrictions=UploadRestrictions(students_can_only_upload_notes=True)),
        )
        with pytest.raises(AuthorizationError):
            await upload(student, material_type=MaterialType.exam_paper)
        material = await upload(student, material_type=MaterialType.note)
        assert material.material_type == MaterialType.note

    @pytest.mark.asyncio
    async def test_students_limited_to_own_programme(self, db_session, upload, student, admin):
        await update_system_policy(
            db_session, admin,
            SystemPolicyUpdate(restrictions=UploadRestrictions(students_can_only_upload_to_own_programme=True)),
        )
        with pytest.raises(AuthorizationError):
            await upload(student, subject_code="DRM30013", programme_id="DRM")


class TestMaterialReads:

    @pytest.mark.asyncio
    async def test_pending_material_hidden_from_other_students(
        self, db_session, upload, student, other_student, lecturer, other_lecturer, admin
    ):
        material = await upload(student)

        assert (await material_service.get_material(db_session, material.id, student)).id == material.id
        assert (await material_service.get_material(db_session, material.id, admin)).id == material.id
        assert (await material_service.get_material(db_session, material.id, lecturer)).id == material.id

        with pytest.raises(NotFoundError):
            await material_service.get_material(db_session, material.id, other_student)
        with pytest.raises(NotFoundError):
            await material_service.get_material(db_session, material.id, other_lecturer)

    @pytest.mark.asyncio
    async def test_list_returns_only_approved_newest_first(self, db_session, upload, student, lecturer):
        await upload(student, title="Pending notes")
        first = await upload(lecturer, title="Week 1")
        second = await upload(lecturer, title="Week 2")

        materials = await material_service.list_materials(db_session)
        assert [m.id for m in materials] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session, upload, lecturer, other_lecturer):
        await upload(lecturer, subject_code="DPP20023")
        await upload(lecturer, subject_code="DPB30073", material_type=MaterialType.exam_paper)
        await upload(other_lecturer, subject_code="DRM30013", programme_id="DRM")

        by_programme = await material_service.list_materials(db_session, MaterialFilter(programme_id="DRM"))
        assert [m.subject_code for m in by_programme] == ["DRM30013"]

        by_type = await material_service.list_materials(
            db_session, MaterialFilter(material_type=MaterialType.exam_paper)
        )
        assert [m.subject_code for m in by_type] == ["DPB30073"]

    @pytest.mark.asyncio
    async def test_list_uploads_includes_every_status(self, db_session, upload, student):
        await upload(student, title="One")
        await upload(student, title="Two")
        uploads = await material_service.list_uploads(db_session, student.id)
        assert len(uploads) == 2
        assert all(m.approval_status == ApprovalStatus.pending for m in uploads)


class TestSearch:

    @pytest.mark.asyncio
    async def test_title_match_outranks_description_match(self, db_session, upload, lecturer):
        weak = await upload(lecturer, title="Week 3 slides")
        strong = await upload(lecturer, title="Trade theory")

        weak.description = "covers trade agreements"
        await db_session.commit()

        hits, total = await material_service.search_materials(db_session, query="trade")
        assert total == 2
        assert hits[0].material.id == strong.id
        assert hits[0].relevance_score == 3
        assert hits[1].material.id == weak.id
        assert hits[1].relevance_score == 2
        assert hits[1].matched_fields == ["description"]

    @pytest.mark.asyncio
    async def test_subject_name_and_code_both_score(self, db_session, upload, lecturer):
        await upload(lecturer, title="Midterm revision", subject_code="DPP20023")
        hits, _ = await material_service.search_materials(db_session, query="international")
        assert hits[0].matched_fields == ["subject_name"]

        hits, _ = await material_service.search_materials(db_session, query="dpp20023")
        assert hits[0].matched_fields == ["subject_code"]

    @pytest.mark.asyncio
    async def test_pending_materials_not_searchable(self, db_session, upload, student):
        await upload(student, title="Trade notes")
        hits, total = await material_service.search_materials(db_session, query="trade")
        assert hits == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_paging_reports_full_total(self, db_session, upload, lecturer):
        for week in range(5):
            await upload(lecturer, title=f"Notes week {week}")
        hits, total = await material_service.search_materials(
            db_session, query="notes", sort_by="title", sort_order="asc", limit=2, offset=2
        )
        assert total == 5
        assert [hit.material.title for hit in hits] == ["Notes week 2", "Notes week 3"]

    @pytest.mark.asyncio
    async def test_bad_sort_field(self, db_session):
        with pytest.raises(ValidationError):
            await material_service.search_materials(db_session, query="x", sort_by="size")


class TestCounters:

    @pytest.mark.asyncio
    async def test_download_count_increments(self, db_session, upload, lecturer):
        material = await upload(lecturer)

        assert await material_service.increment_download_count(db_session, material.id) is True
        assert await material_service.increment_download_count(db_session, material.id) is True

        await db_session.refresh(material)
        assert material.download_count == 2
        assert material.last_accessed is not None

    @pytest.mark.asyncio
    async def test_views_increment_independently(self, db_session, upload, lecturer):
        material = await upload(lecturer)
        await material_service.record_view(db_session, material.id)

        await db_session.refresh(material)
        assert material.views == 1
        assert material.download_count == 0

    @pytest.mark.asyncio
    async def test_unknown_material_touches_nothing(self, db_session, catalog):
        assert await material_service.increment_download_count(db_session, 9999) is False

    @pytest.mark.asyncio
    async def test_popular_orders_by_downloads(self, db_session, upload, lecturer):
        quiet = await upload(lecturer, title="Quiet")
        busy = await upload(lecturer, title="Busy")
        for _ in range(3):
            await material_service.increment_download_count(db_session, busy.id)
        await material_service.increment_download_count(db_session, quiet.id)

        popular = await material_service.get_popular_materials(db_session, limit=2)
        assert [m.id for m in popular] == [busy.id, quiet.id]

    @pytest.mark.asyncio
    async def test_lecturer_stats(self, db_session, upload, lecturer, student):
        own = await upload(lecturer)
        await material_service.increment_download_count(db_session, own.id)
        await upload(student)
        await upload(student, subject_code="DPB30073")

        stats = await material_service.get_lecturer_stats(db_session, lecturer)
        assert stats == {"materials_uploaded": 1, "total_downloads": 1, "pending_approvals": 1}
