"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
import re

from .domain.models import ConnectionStatus


# User schemas
class CurrentUser(BaseModel):
    """Verified caller identity supplied by the identity collaborator"""
    id: int


class PublicProfile(BaseModel):
    """Public profile fields shown next to content"""
    id: int
    name: str
    handle: str
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class AuthorSummary(BaseModel):
    """Author fields on feed items"""
    name: str
    handle: str
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfile(BaseModel):
    """User profile with graph counts"""
    id: int
    name: str
    handle: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    follower_count: int = 0
    following_count: int = 0


class PersonResponse(BaseModel):
    """Another user's profile as seen by the caller"""
    profile: UserProfile
    status: ConnectionStatus
    posts: Optional[List["FeedPost"]] = None


class UpdateProfile(BaseModel):
    """Update profile request"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    handle: Optional[str] = Field(None, min_length=3, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)

    @validator("handle")
    def validate_handle(cls, v):
        """Validate handle format"""
        if v is not None and not re.match(r"^[a-zA-Z0-9_\.]+$", v):
            raise ValueError("Handle can only contain letters, numbers, underscores, and dots")
        return v


class UpdateAvatar(BaseModel):
    """Avatar reference produced by the media collaborator"""
    avatar_url: str = Field(..., min_length=1, max_length=2048)


class ConnectionsResponse(BaseModel):
    """Followers and followings"""
    followers: List[PublicProfile]
    followings: List[PublicProfile]


class RelationshipsResponse(BaseModel):
    """Relationship sets of the caller"""
    user_id: int
    follower_ids: List[int]
    following_ids: List[int]
    mutual_ids: List[int]
    pending_outgoing: List[int]
    pending_incoming: List[int]


class PeopleResponse(BaseModel):
    """Discoverable users"""
    people: List[PublicProfile]
    count: int


# Graph schemas
class FollowRequestResponse(BaseModel):
    """Pending follow request"""
    id: int
    requester_id: int
    requestee_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class IncomingRequest(BaseModel):
    """Pending request with the requester's profile"""
    id: int
    requester_id: int
    requester: PublicProfile
    created_at: datetime


class IncomingRequestsResponse(BaseModel):
    requests: List[IncomingRequest]
    count: int


class FollowEdgeResponse(BaseModel):
    """Accepted follow relationship"""
    follower_id: int
    followee_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class RelationshipResponse(BaseModel):
    """Response with relationship info between two users"""
    user_id: int
    target_user_id: int
    status: ConnectionStatus
    is_following: bool
    is_followed_by: bool
    is_mutual: bool
    is_requested: bool
    has_requested_you: bool


# Post schemas
class PostCreate(BaseModel):
    """Create post request"""
    content: Optional[str] = Field(None, max_length=2200)
    media_url: Optional[str] = Field(None, max_length=2048)


class PostUpdate(BaseModel):
    """Update post request"""
    content: Optional[str] = Field(None, max_length=2200)
    media_url: Optional[str] = Field(None, max_length=2048)


class PostResponse(BaseModel):
    """Post as stored"""
    id: int
    author_id: int
    content: str
    media_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeedPost(PostResponse):
    """Post annotated for the viewer"""
    author: AuthorSummary
    like_count: int
    comment_count: int
    is_liked_by_viewer: bool


class FeedResponse(BaseModel):
    """Feed response with pagination"""
    items: List[FeedPost]
    total: int
    page: int
    page_size: int
    has_more: bool


class DetailPost(PostResponse):
    """Single post; the author carries its id for ownership checks"""
    author: PublicProfile
    like_count: int
    comment_count: int
    is_liked_by_viewer: bool


class CommentAuthor(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class CommentResponse(BaseModel):
    """Comment with author"""
    id: int
    post_id: int
    author_id: int
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[CommentAuthor] = None


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=1000)


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    count: int


class PostDetailResponse(BaseModel):
    """Post with comments"""
    post: DetailPost
    comments: List[CommentResponse]
    current_user_id: int


class LikeResponse(BaseModel):
    """Like state after a like/unlike action"""
    post_id: int
    is_liked: bool
    like_count: int


class LikeCountResponse(BaseModel):
    post_id: int
    like_count: int


# Message schemas
class MessageCreate(BaseModel):
    content: str = Field(..., max_length=2000)


class DirectMessageResponse(BaseModel):
    """Direct message"""
    id: int
    sender_id: int
    receiver_id: int
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class ThreadResponse(BaseModel):
    """Messages with one partner, oldest first"""
    messages: List[DirectMessageResponse]
    receiver: PublicProfile


class ConversationsResponse(BaseModel):
    """Distinct conversation partners"""
    conversations: List[PublicProfile]
    count: int


class MessageResponse(BaseModel):
    """Generic message response"""
    message: str


PersonResponse.model_rebuild()
