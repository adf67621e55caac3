"""
edubridge/services/comment_service.py
Comments on materials

Attachments are screened one by one: invalid files are reported with a
reason and dropped while the valid ones in the same batch are kept.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.errors import AuthorizationError, NotFoundError, ValidationError, ErrorCode
from edubridge.orm.comment import Comment
from edubridge.orm.material import Material, MaterialType
from edubridge.orm.user import User
from edubridge.schemas.comment_schemas import Attachment, RejectedAttachment
from edubridge.schemas.settings_schemas import CommentFilePolicy
from edubridge.services.material_service import can_view, get_material
from edubridge.services.notification_service import create_comment_notification
from edubridge.services.settings_service import get_system_policy, SettingsCache

logger = logging.getLogger(__name__)


class RejectionReason:
    FILE_TOO_LARGE = "file_too_large"
    FILE_TYPE_NOT_ALLOWED = "file_type_not_allowed"
    EMPTY_FILE = "empty_file"
    TOO_MANY_FILES = "too_many_files"


@dataclass
class AttachmentScreening:
    accepted: List[Attachment] = field(default_factory=list)
    rejected: List[RejectedAttachment] = field(default_factory=list)


def screen_attachments(files: Sequence[Attachment], policy: CommentFilePolicy) -> AttachmentScreening:
    """Check each file in submission order against the comment attachment policy."""
    screening = AttachmentScreening()
    max_mb = policy.max_file_size / (1024 * 1024)

    for file in files:
        if len(screening.accepted) >= policy.max_files:
            reason = RejectionReason.TOO_MANY_FILES
            message = f"Maximum {policy.max_files} files per comment"
        elif file.file_size <= 0:
            reason = RejectionReason.EMPTY_FILE
            message = "File is empty"
        elif file.file_size > policy.max_file_size:
            reason = RejectionReason.FILE_TOO_LARGE
            message = f"File exceeds the {max_mb:g}MB limit"
        elif file.file_type not in policy.allowed_file_types:
            reason = RejectionReason.FILE_TYPE_NOT_ALLOWED
            message = f"File type {file.file_type} is not allowed"
        else:
            screening.accepted.append(file)
            continue

        screening.rejected.append(
            RejectedAttachment(file_name=file.file_name, reason=reason, message=message)
        )

    return screening


async def add_comment(
    db: AsyncSession,
    material_id: int,
    content: str,
    attachments: Sequence[Attachment],
    author_id: int,
    author_name: Optional[str] = None,
    author_role: Optional[str] = None,
    cache: Optional[SettingsCache] = None,
) -> Tuple[Comment, List[RejectedAttachment]]:
    """
    Store a comment with its accepted attachments.

    Returns:
        (comment, rejected attachments)

    Raises:
        ValidationError: empty content, exam paper, or comments disabled
        NotFoundError: unknown material or author, or a material the author
            cannot see
    """
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty", field="content", code=ErrorCode.MISSING_FIELD)

    material = await db.get(Material, material_id)
    if material is None:
        raise NotFoundError("Material", material_id, code=ErrorCode.MATERIAL_NOT_FOUND)

    author = await db.get(User, author_id)
    if author is None:
        raise NotFoundError("User", author_id, code=ErrorCode.USER_NOT_FOUND)

    # hidden materials answer like unknown ones
    if not can_view(material, author):
        raise NotFoundError("Material", material_id, code=ErrorCode.MATERIAL_NOT_FOUND)

    if material.material_type == MaterialType.exam_paper:
        raise ValidationError("Comments are not allowed on exam papers",
                              field="material_id", code=ErrorCode.COMMENTS_NOT_ALLOWED)

    policy = await get_system_policy(db, cache)
    if not policy.platform.enable_comments:
        raise ValidationError("Comments are currently disabled", code=ErrorCode.COMMENTS_NOT_ALLOWED)

    screening = screen_attachments(attachments, policy.comment_files)
    if screening.rejected:
        logger.info(
            f"Comment on material {material_id} by user {author_id}: "
            f"{len(screening.rejected)} attachment(s) rejected "
            f"({', '.join(r.reason for r in screening.rejected)})"
        )

    comment = Comment(
        material_id=material_id,
        content=content,
        attachments=[file.model_dump() for file in screening.accepted],
        author_id=author.id,
        author_name=author_name or author.full_name,
        author_role=author_role or author.role.value,
    )
    db.add(comment)
    await db.commit()
    await db.refresh(comment)

    logger.info(f"Comment {comment.id} added to material {material_id} by user {author_id}")

    await create_comment_notification(db, material, comment, author, cache=cache)
    return comment, screening.rejected


async def list_comments(db: AsyncSession, material_id: int, viewer: Optional[User] = None) -> List[Comment]:
    """Oldest first. With a viewer, the material must be visible to them (NotFoundError otherwise)."""
    if viewer is not None:
        await get_material(db, material_id, viewer=viewer)
    result = await db.execute(
        select(Comment)
        .where(Comment.material_id == material_id)
        .order_by(Comment.created_at, Comment.id)
    )
    return list(result.scalars().all())


async def delete_comment(db: AsyncSession, material_id: int, comment_id: int, actor_id: int) -> None:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.material_id == material_id)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment", comment_id, code=ErrorCode.COMMENT_NOT_FOUND)

    if comment.author_id != actor_id:
        logger.warning(f"User {actor_id} tried to delete comment {comment_id} by user {comment.author_id}")
        raise AuthorizationError("You can only delete your own comments", code=ErrorCode.OWNERSHIP_VIOLATION)

    await db.delete(comment)
    await db.commit()
    logger.info(f"Comment {comment_id} deleted from material {material_id} by its author")
