"""
Comment and attachment screening tests
"""
import pytest

from edubridge.errors import AuthorizationError, NotFoundError, ValidationError, ErrorCode
from edubridge.orm.material import MaterialType
from edubridge.orm.notification import NotificationKind
from edubridge.schemas.comment_schemas import Attachment
from edubridge.schemas.settings_schemas import CommentFilePolicy, PlatformSettings, SystemPolicyUpdate
from edubridge.services import comment_service
from edubridge.services.comment_service import RejectionReason, screen_attachments
from edubridge.services.notification_service import list_notifications
from edubridge.services.settings_service import update_system_policy

MB = 1024 * 1024


def attachment(name: str, size: int = 1 * MB, file_type: str = "application/pdf") -> Attachment:
    return Attachment(
        file_name=name,
        file_size=size,
        file_type=file_type,
        download_url=f"https://files.example.edu/comments/{name}",
    )


class TestScreenAttachments:

    def test_mixed_batch_keeps_valid_files(self):
        files = [
            attachment("worked-example.pdf"),
            attachment("whiteboard.png", size=6 * MB, file_type="image/png"),
            attachment("setup.exe", file_type="application/x-msdownload"),
            attachment("answer.jpg", file_type="image/jpeg"),
        ]

        screening = screen_attachments(files, CommentFilePolicy())

        assert [f.file_name for f in screening.accepted] == ["worked-example.pdf", "answer.jpg"]
        assert [(r.file_name, r.reason) for r in screening.rejected] == [
            ("whiteboard.png", RejectionReason.FILE_TOO_LARGE),
            ("setup.exe", RejectionReason.FILE_TYPE_NOT_ALLOWED),
        ]

    def test_file_count_limit_counts_accepted_files(self):
        files = [
            attachment("bad.exe", file_type="application/x-msdownload"),
            attachment("a.pdf"),
            attachment("b.pdf"),
            attachment("c.pdf"),
            attachment("d.pdf"),
        ]

        screening = screen_attachments(files, CommentFilePolicy(max_files=3))

        assert [f.file_name for f in screening.accepted] == ["a.pdf", "b.pdf", "c.pdf"]
        assert [r.reason for r in screening.rejected] == [
            RejectionReason.FILE_TYPE_NOT_ALLOWED,
            RejectionReason.TOO_MANY_FILES,
        ]

    def test_empty_file(self):
        screening = screen_attachments([attachment("blank.pdf", size=0)], CommentFilePolicy())
        assert screening.accepted == []
        assert screening.rejected[0].reason == RejectionReason.EMPTY_FILE

    def test_no_files(self):
        screening = screen_attachments([], CommentFilePolicy())
        assert screening.accepted == []
        assert screening.rejected == []


class TestAddComment:

    @pytest.mark.asyncio
    async def test_round_trip(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)

        comment, rejected = await comment_service.add_comment(
            db_session, material.id, "  Is chapter 2 examinable?  ",
            [attachment("question.pdf")], student.id,
        )

        assert rejected == []
        assert comment.content == "Is chapter 2 examinable?"
        assert comment.author_name == student.full_name
        assert comment.author_role == "student"
        assert comment.attachments[0]["file_name"] == "question.pdf"

        comments = await comment_service.list_comments(db_session, material.id)
        assert [c.id for c in comments] == [comment.id]

    @pytest.mark.asyncio
    async def test_partial_attachments_still_store_comment(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        files = [
            attachment("notes.pdf"),
            attachment("huge.pdf", size=20 * MB),
            attachment("clip.mp4", file_type="video/mp4"),
            attachment("photo.png", file_type="image/png"),
        ]

        comment, rejected = await comment_service.add_comment(
            db_session, material.id, "See attached", files, student.id
        )

        assert len(comment.attachments) == 2
        assert {r.reason for r in rejected} == {
            RejectionReason.FILE_TOO_LARGE,
            RejectionReason.FILE_TYPE_NOT_ALLOWED,
        }

    @pytest.mark.asyncio
    async def test_listing_is_oldest_first(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        first, _ = await comment_service.add_comment(db_session, material.id, "First", [], student.id)
        second, _ = await comment_service.add_comment(db_session, material.id, "Second", [], lecturer.id)

        comments = await comment_service.list_comments(db_session, material.id)
        assert [c.id for c in comments] == [first.id, second.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   "])
    async def test_blank_content(self, db_session, upload, lecturer, student, content):
        material = await upload(lecturer)
        with pytest.raises(ValidationError) as exc_info:
            await comment_service.add_comment(db_session, material.id, content, [], student.id)
        assert exc_info.value.field == "content"

    @pytest.mark.asyncio
    async def test_exam_papers_take_no_comments(self, db_session, upload, lecturer, student):
        paper = await upload(lecturer, material_type=MaterialType.exam_paper)
        with pytest.raises(ValidationError) as exc_info:
            await comment_service.add_comment(db_session, paper.id, "Answers?", [], student.id)
        assert exc_info.value.code == ErrorCode.COMMENTS_NOT_ALLOWED

        assert await comment_service.list_comments(db_session, paper.id) == []

    @pytest.mark.asyncio
    async def test_answer_schemes_take_comments(self, db_session, upload, lecturer, student):
        scheme = await upload(lecturer, material_type=MaterialType.answer_scheme)
        comment, _ = await comment_service.add_comment(db_session, scheme.id, "Q3 looks off", [], student.id)
        assert comment.material_id == scheme.id

    @pytest.mark.asyncio
    async def test_unknown_material(self, db_session, catalog, student):
        with pytest.raises(NotFoundError):
            await comment_service.add_comment(db_session, 9999, "Hello", [], student.id)

    @pytest.mark.asyncio
    async def test_hidden_material_looks_unknown(self, db_session, upload, student, other_student):
        material = await upload(student)

        with pytest.raises(NotFoundError) as exc_info:
            await comment_service.add_comment(db_session, material.id, "Can I see this?", [], other_student.id)
        assert exc_info.value.code == ErrorCode.MATERIAL_NOT_FOUND
        assert await list_notifications(db_session, student.id) == []

        with pytest.raises(NotFoundError):
            await comment_service.list_comments(db_session, material.id, viewer=other_student)

    @pytest.mark.asyncio
    async def test_pending_material_open_to_reviewer(self, db_session, upload, student, lecturer):
        material = await upload(student)
        await comment_service.add_comment(db_session, material.id, "Please cite sources", [], lecturer.id)

        assert len(await comment_service.list_comments(db_session, material.id, viewer=student)) == 1
        assert len(await comment_service.list_comments(db_session, material.id, viewer=lecturer)) == 1

    @pytest.mark.asyncio
    async def test_comments_disabled(self, db_session, upload, lecturer, student, admin):
        material = await upload(lecturer)
        await update_system_policy(
            db_session, admin, SystemPolicyUpdate(platform=PlatformSettings(enable_comments=False))
        )

        with pytest.raises(ValidationError):
            await comment_service.add_comment(db_session, material.id, "Hello", [], student.id)


class TestCommentNotifications:

    @pytest.mark.asyncio
    async def test_uploader_notified(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        comment, _ = await comment_service.add_comment(
            db_session, material.id, "x" * 150, [], student.id
        )

        notifications = await list_notifications(db_session, lecturer.id)
        assert len(notifications) == 1
        notification = notifications[0]
        assert notification.kind == NotificationKind.comment
        assert notification.comment_id == comment.id
        assert notification.actor_id == student.id
        assert notification.comment_preview == "x" * 100 + "..."

    @pytest.mark.asyncio
    async def test_own_comment_not_notified(self, db_session, upload, lecturer):
        material = await upload(lecturer)
        await comment_service.add_comment(db_session, material.id, "Errata: slide 4", [], lecturer.id)

        assert await list_notifications(db_session, lecturer.id) == []

    @pytest.mark.asyncio
    async def test_notifications_disabled(self, db_session, upload, lecturer, student, admin):
        material = await upload(lecturer)
        await update_system_policy(
            db_session, admin, SystemPolicyUpdate(platform=PlatformSettings(enable_notifications=False))
        )

        comment, _ = await comment_service.add_comment(db_session, material.id, "Hello", [], student.id)
        assert comment.id is not None
        assert await list_notifications(db_session, lecturer.id) == []


class TestDeleteComment:

    @pytest.mark.asyncio
    async def test_author_deletes(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        comment, _ = await comment_service.add_comment(db_session, material.id, "Typo", [], student.id)

        await comment_service.delete_comment(db_session, material.id, comment.id, student.id)
        assert await comment_service.list_comments(db_session, material.id) == []

    @pytest.mark.asyncio
    async def test_non_author_refused(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        comment, _ = await comment_service.add_comment(db_session, material.id, "Mine", [], student.id)

        with pytest.raises(AuthorizationError):
            await comment_service.delete_comment(db_session, material.id, comment.id, lecturer.id)

        comments = await comment_service.list_comments(db_session, material.id)
        assert [c.id for c in comments] == [comment.id]

    @pytest.mark.asyncio
    async def test_wrong_material(self, db_session, upload, lecturer, student):
        material = await upload(lecturer)
        other = await upload(lecturer, title="Other")
        comment, _ = await comment_service.add_comment(db_session, material.id, "Here", [], student.id)

        with pytest.raises(NotFoundError):
            await comment_service.delete_comment(db_session, other.id, comment.id, student.id)
