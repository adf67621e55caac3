"""
Catalog reads and admin maintenance
"""
import pytest

from edubridge.errors import ConflictError, NotFoundError, ValidationError
from edubridge.services import catalog_service
from edubridge.services.admin_log import list_admin_actions, AdminAction


class TestCatalogReads:

    @pytest.mark.asyncio
    async def test_list_programmes(self, db_session, catalog):
        programmes = await catalog_service.list_programmes(db_session)
        assert [p.id for p in programmes] == ["DBS", "DRM"]

    @pytest.mark.asyncio
    async def test_list_subjects_for_semester(self, db_session, catalog):
        subjects = await catalog_service.list_subjects(db_session, "DBS", 3)
        assert [s.code for s in subjects] == ["DPB30073", "DPP20023"]

    @pytest.mark.asyncio
    async def test_empty_semester_is_empty_list(self, db_session, catalog):
        assert await catalog_service.list_subjects(db_session, "DBS", 5) == []
        assert await catalog_service.list_subjects(db_session, "NOPE", 1) == []

    @pytest.mark.asyncio
    async def test_subjects_grouped_by_semester(self, db_session, catalog):
        grouped = await catalog_service.list_subjects_by_programme(db_session, "DBS")
        assert {sem: [s.code for s in subjects] for sem, subjects in grouped.items()} == {
            1: ["DUE10012"],
            3: ["DPB30073", "DPP20023"],
        }

    @pytest.mark.asyncio
    async def test_find_subject_is_programme_bound(self, db_session, catalog):
        assert (await catalog_service.find_subject(db_session, "DBS", "DPP20023")).name == "INTERNATIONAL BUSINESS"
        assert await catalog_service.find_subject(db_session, "DRM", "DPP20023") is None

    @pytest.mark.asyncio
    async def test_find_subjects_by_code(self, db_session, catalog):
        subjects = await catalog_service.find_subjects_by_code(db_session, ["DRM30013", "DUE10012", "", "XXX"])
        assert [s.code for s in subjects] == ["DRM30013", "DUE10012"]
        assert await catalog_service.find_subjects_by_code(db_session, []) == []


class TestCatalogAdmin:

    @pytest.mark.asyncio
    async def test_create_programme(self, db_session, admin):
        programme = await catalog_service.create_programme(
            db_session, admin, " dit ", "Diploma in Information Technology", "IT", total_semesters=6
        )
        assert programme.id == "DIT"
        assert programme.code == "DIT"
        assert programme.total_semesters == 6

        entries = await list_admin_actions(db_session, target_type="programme", target_id="DIT")
        assert [entry.action for entry in entries] == [AdminAction.CREATE_PROGRAMME]

    @pytest.mark.asyncio
    async def test_duplicate_programme(self, db_session, admin):
        with pytest.raises(ConflictError):
            await catalog_service.create_programme(db_session, admin, "DBS", "Again", "Commerce")

    @pytest.mark.asyncio
    async def test_deactivated_programme_hidden(self, db_session, admin):
        await catalog_service.set_programme_active(db_session, admin, "DRM", False)

        assert [p.id for p in await catalog_service.list_programmes(db_session)] == ["DBS"]
        everything = await catalog_service.list_programmes(db_session, include_inactive=True)
        assert [p.id for p in everything] == ["DBS", "DRM"]

    @pytest.mark.asyncio
    async def test_set_active_unknown_programme(self, db_session, admin):
        with pytest.raises(NotFoundError):
            await catalog_service.set_programme_active(db_session, admin, "NOPE", True)

    @pytest.mark.asyncio
    async def test_create_subject(self, db_session, admin):
        subject = await catalog_service.create_subject(
            db_session, admin, "DBS", "dpb20043", "Principles of Marketing", semester=2
        )
        assert subject.code == "DPB20043"
        assert subject.credit_hours == 3

        semester_two = await catalog_service.list_subjects(db_session, "DBS", 2)
        assert [s.code for s in semester_two] == ["DPB20043"]

    @pytest.mark.asyncio
    async def test_same_code_allowed_in_another_programme(self, db_session, admin):
        subject = await catalog_service.create_subject(
            db_session, admin, "DRM", "DUE10012", "COMMUNICATIVE ENGLISH 1", semester=1
        )
        assert subject.programme_id == "DRM"

    @pytest.mark.asyncio
    async def test_duplicate_subject(self, db_session, admin):
        with pytest.raises(ConflictError):
            await catalog_service.create_subject(db_session, admin, "DBS", "DPP20023", "Dup", semester=3)

    @pytest.mark.asyncio
    async def test_semester_out_of_range(self, db_session, admin):
        with pytest.raises(ValidationError) as exc_info:
            await catalog_service.create_subject(db_session, admin, "DBS", "DPB60013", "Too late", semester=6)
        assert exc_info.value.field == "semester"

    @pytest.mark.asyncio
    async def test_subject_for_unknown_programme(self, db_session, admin):
        with pytest.raises(ValidationError) as exc_info:
            await catalog_service.create_subject(db_session, admin, "NOPE", "X1", "X", semester=1)
        assert exc_info.value.field == "programme_id"
