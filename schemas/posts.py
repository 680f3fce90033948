from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, validator
from schemas.shared import MediaType, ModerationStatus, UserSummary

MAX_CAPTION_LENGTH = 2200
MAX_COMMENT_LENGTH = 1000


class PostUpdate(BaseModel):
    caption: Optional[str] = None

    @validator('caption')
    def validate_caption(cls, v):
        if v is not None and len(v) > MAX_CAPTION_LENGTH:
            raise ValueError(f'Caption must be at most {MAX_CAPTION_LENGTH} characters long')
        return v


class CommentCreate(BaseModel):
    text: Optional[str] = None

    @validator('text')
    def validate_text(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) > MAX_COMMENT_LENGTH:
            raise ValueError(f'Comment must be at most {MAX_COMMENT_LENGTH} characters long')
        return v


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user: Optional[UserSummary] = None
    text: str
    created_at: datetime


class PostResponse(BaseModel):
    id: str
    user: Optional[UserSummary] = None
    media_url: str
    media_type: MediaType
    caption: Optional[str] = None
    likes: List[str] = []
    like_count: int
    comments: List[CommentResponse] = []
    share_count: int
    created_at: datetime
    status: ModerationStatus


class ModerationRequest(BaseModel):
    status: Optional[str] = None


class LikeResponse(BaseModel):
    id: str
    likes: int


class ShareResponse(BaseModel):
    id: str
    share_count: int


class FollowResponse(BaseModel):
    id: str
    follower_id: str
    following_id: str
    created_at: datetime
    follower: Optional[UserSummary] = None
    following: Optional[UserSummary] = None


class CascadeResponse(BaseModel):
    detail: str
    deleted: Dict[str, int]
    failed_steps: List[str] = []
