"""
edubridge/schemas/comment_schemas.py
Request/Response schemas for comments
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime


class Attachment(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int
    file_type: str
    download_url: str = Field(..., min_length=1, max_length=1000)


class RejectedAttachment(BaseModel):
    file_name: str
    reason: str
    message: str


class CommentCreate(BaseModel):
    # Blank content is rejected by the comment service with a 400
    content: str = Field("", max_length=5000)
    attachments: List[Attachment] = Field(default_factory=list)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: int
    content: str
    attachments: List[Attachment]
    author_id: int
    author_name: str
    author_role: str
    created_at: datetime


class AddCommentResponse(BaseModel):
    comment: CommentResponse
    rejected_attachments: List[RejectedAttachment]
