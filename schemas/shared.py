from enum import Enum
from pydantic import BaseModel


class Role(str, Enum):
    USER = "user"
    INFLUENCER = "influencer"
    ADMIN = "admin"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class UserSummary(BaseModel):
    id: str
    email: str
    role: Role


class MessageResponse(BaseModel):
    detail: str
