"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set
from enum import Enum


class ConnectionStatus(str, Enum):
    """Relationship between an ordered pair of users (a, b)"""
    MUTUAL = "mutual"
    A_FOLLOWS_B = "a_follows_b"
    B_FOLLOWS_A = "b_follows_a"
    REQUESTED_BY_A = "requested_by_a"
    REQUESTED_BY_B = "requested_by_b"
    NONE = "none"

    @property
    def is_connected(self) -> bool:
        """At least one follow edge exists between the pair"""
        return self in (
            ConnectionStatus.MUTUAL,
            ConnectionStatus.A_FOLLOWS_B,
            ConnectionStatus.B_FOLLOWS_A,
        )


@dataclass
class User:
    """User domain model"""
    id: int
    name: str
    handle: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Post:
    """Post domain model"""
    id: int
    author_id: int
    content: str
    media_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Like:
    """Like - unique per (user, post)"""
    user_id: int
    post_id: int
    created_at: Optional[datetime] = None


@dataclass
class Comment:
    """Comment domain model"""
    id: int
    author_id: int
    post_id: int
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class FollowEdge:
    """Accepted follow: follower_id follows followee_id"""
    id: int
    follower_id: int
    followee_id: int
    created_at: Optional[datetime] = None


@dataclass
class FollowRequest:
    """Pending follow: requester_id asked to follow requestee_id"""
    id: int
    requester_id: int
    requestee_id: int
    created_at: Optional[datetime] = None


@dataclass
class Message:
    """Direct message, immutable once created"""
    id: int
    sender_id: int
    receiver_id: int
    content: str
    created_at: Optional[datetime] = None

    def partner_of(self, user_id: int) -> int:
        """The party of this message that is not user_id"""
        return self.receiver_id if self.sender_id == user_id else self.sender_id


@dataclass
class Relationships:
    """Relationship sets of one user"""
    user_id: int
    follower_ids: Set[int] = field(default_factory=set)
    following_ids: Set[int] = field(default_factory=set)
    pending_outgoing: Set[int] = field(default_factory=set)
    pending_incoming: Set[int] = field(default_factory=set)

    @property
    def mutual_ids(self) -> Set[int]:
        return self.follower_ids & self.following_ids


@dataclass
class AnnotatedPost:
    """Post as seen by a particular viewer"""
    post: Post
    author: User
    like_count: int = 0
    comment_count: int = 0
    is_liked_by_viewer: bool = False


@dataclass
class AnnotatedComment:
    """Comment together with its author profile"""
    comment: Comment
    author: User
