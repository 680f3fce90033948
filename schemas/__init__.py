# Schemas package
from .shared import Role, ModerationStatus, MediaType, UserSummary, MessageResponse
from .auth import RegisterRequest, LoginRequest, LoginResponse, UserResponse, ProfileResponse, ProfileUpdate, RoleUpdate
from .posts import PostUpdate, PostResponse, CommentCreate, CommentResponse, ModerationRequest, LikeResponse, ShareResponse, FollowResponse, CascadeResponse
