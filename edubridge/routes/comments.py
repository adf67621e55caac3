"""
edubridge/routes/comments.py
Comment API, nested under materials
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import get_settings_cache, run_db_operation
from edubridge.orm.user import User
from edubridge.rate_limit import limiter, COMMENT_RATE_LIMIT
from edubridge.schemas.comment_schemas import CommentCreate, CommentResponse, AddCommentResponse
from edubridge.security.rbac import get_current_user
from edubridge.services import comment_service
from edubridge.services.settings_service import SettingsCache

router = APIRouter(prefix="/materials/{material_id}/comments", tags=["comments"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[CommentResponse])
async def list_comments(
    request: Request,
    material_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await run_db_operation(
        request, db,
        lambda: comment_service.list_comments(db, material_id, viewer=current_user),
        "list_comments",
    )


@router.post("", response_model=AddCommentResponse, status_code=201)
@limiter.limit(COMMENT_RATE_LIMIT)
async def add_comment(
    request: Request,
    material_id: int,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: SettingsCache = Depends(get_settings_cache),
):
    """
    Add a comment. Invalid attachments are dropped and listed in
    `rejected_attachments`; the comment is stored with the rest.
    """
    comment, rejected = await run_db_operation(
        request, db,
        lambda: comment_service.add_comment(
            db,
            material_id=material_id,
            content=data.content,
            attachments=data.attachments,
            author_id=current_user.id,
            author_name=current_user.full_name,
            author_role=current_user.role.value,
            cache=cache,
        ),
        "add_comment",
        idempotent=False,
    )
    return AddCommentResponse(
        comment=CommentResponse.model_validate(comment),
        rejected_attachments=rejected,
    )


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    request: Request,
    material_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await run_db_operation(
        request, db,
        lambda: comment_service.delete_comment(db, material_id, comment_id, current_user.id),
        "delete_comment",
        idempotent=False,
    )
    return Response(status_code=204)
