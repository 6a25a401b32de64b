"""
Repository interfaces - Define contracts for data access
"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Optional, List, Dict, Any, Iterable, Set
from .models import User, Post, Comment, FollowEdge, FollowRequest, Message


class IEntityStore(ABC):
    """
    Persistent relational state for users, posts, likes, comments,
    follow edges, follow requests and messages.

    Uniqueness violations raise Conflict; rows are never half-written.
    Implementations keep adjacency indexes keyed by user id so graph,
    feed and conversation queries scale with relationship degree.
    """

    @abstractmethod
    def transaction(self, snapshot: bool = False) -> AsyncContextManager["IEntityStore"]:
        """
        Open a transaction and yield a store bound to it

        Commits on normal exit, rolls back when the block raises. With
        snapshot=True every read in the block sees the same committed state.
        Edge lookups inside a transaction hold their rows until it ends.
        """
        pass

    # Users
    @abstractmethod
    async def create_user(self, name: str, handle: str,
                          password_hash: Optional[str] = None,
                          bio: Optional[str] = None,
                          avatar_url: Optional[str] = None) -> User:
        """Create a new user"""
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        """Find user by ID"""
        pass

    @abstractmethod
    async def get_user_by_handle(self, handle: str) -> Optional[User]:
        """Find user by handle"""
        pass

    @abstractmethod
    async def get_users(self, user_ids: Iterable[int]) -> List[User]:
        """Batch fetch users, ordered by id"""
        pass

    @abstractmethod
    async def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        """Update profile fields"""
        pass

    @abstractmethod
    async def list_users_except(self, excluded_ids: Iterable[int]) -> List[User]:
        """All users whose id is not in excluded_ids, ordered by id"""
        pass

    @abstractmethod
    async def find_system_account_ids(self, handle_prefix: str) -> Set[int]:
        """Ids of placeholder accounts whose handle starts with handle_prefix"""
        pass

    # Follow graph
    @abstractmethod
    async def get_follower_ids(self, user_id: int) -> Set[int]:
        """{x : FollowEdge(x, user_id)}"""
        pass

    @abstractmethod
    async def get_following_ids(self, user_id: int) -> Set[int]:
        """{x : FollowEdge(user_id, x)}"""
        pass

    @abstractmethod
    async def get_outgoing_request_ids(self, user_id: int) -> Set[int]:
        """{x : FollowRequest(user_id, x)}"""
        pass

    @abstractmethod
    async def get_incoming_request_ids(self, user_id: int) -> Set[int]:
        """{x : FollowRequest(x, user_id)}"""
        pass

    @abstractmethod
    async def get_follow_edge(self, follower_id: int, followee_id: int) -> Optional[FollowEdge]:
        """Find the directed edge follower -> followee"""
        pass

    @abstractmethod
    async def create_follow_edge(self, follower_id: int, followee_id: int) -> FollowEdge:
        """Insert a directed edge"""
        pass

    @abstractmethod
    async def delete_follow_edge(self, follower_id: int, followee_id: int) -> bool:
        """Delete a directed edge, True if a row was removed"""
        pass

    @abstractmethod
    async def create_follow_request(self, requester_id: int, requestee_id: int) -> FollowRequest:
        """Insert a pending request"""
        pass

    @abstractmethod
    async def get_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        """Find request by ID"""
        pass

    @abstractmethod
    async def find_follow_request(self, requester_id: int, requestee_id: int) -> Optional[FollowRequest]:
        """Find request by ordered pair"""
        pass

    @abstractmethod
    async def list_incoming_requests(self, user_id: int) -> List[FollowRequest]:
        """Requests addressed to user_id, newest first"""
        pass

    @abstractmethod
    async def delete_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        """Conditionally delete a request, returning the removed row or None"""
        pass

    # Posts
    @abstractmethod
    async def create_post(self, author_id: int, content: str,
                          media_url: Optional[str] = None) -> Post:
        """Create a new post"""
        pass

    @abstractmethod
    async def get_post(self, post_id: int) -> Optional[Post]:
        """Find post by ID"""
        pass

    @abstractmethod
    async def update_post(self, post_id: int, updates: Dict[str, Any]) -> Post:
        """Update post content/media"""
        pass

    @abstractmethod
    async def delete_post(self, post_id: int) -> bool:
        """Delete post together with its likes and comments"""
        pass

    @abstractmethod
    async def list_posts_by_authors(self, author_ids: Iterable[int],
                                    limit: Optional[int] = None,
                                    offset: int = 0) -> List[Post]:
        """Posts by any of author_ids, newest first, ties by id descending"""
        pass

    @abstractmethod
    async def count_posts_by_authors(self, author_ids: Iterable[int]) -> int:
        """Number of posts by any of author_ids"""
        pass

    @abstractmethod
    async def count_likes(self, post_ids: Iterable[int]) -> Dict[int, int]:
        """Like count per post id"""
        pass

    @abstractmethod
    async def count_comments(self, post_ids: Iterable[int]) -> Dict[int, int]:
        """Comment count per post id"""
        pass

    @abstractmethod
    async def get_liked_post_ids(self, user_id: int, post_ids: Iterable[int]) -> Set[int]:
        """Subset of post_ids liked by user_id"""
        pass

    # Likes
    @abstractmethod
    async def add_like(self, user_id: int, post_id: int) -> bool:
        """Insert if absent, True if a row was created"""
        pass

    @abstractmethod
    async def remove_like(self, user_id: int, post_id: int) -> bool:
        """Delete if present, True if a row was removed"""
        pass

    # Comments
    @abstractmethod
    async def create_comment(self, author_id: int, post_id: int, content: str) -> Comment:
        """Create a new comment"""
        pass

    @abstractmethod
    async def get_comment(self, comment_id: int) -> Optional[Comment]:
        """Find comment by ID"""
        pass

    @abstractmethod
    async def update_comment(self, comment_id: int, content: str) -> Comment:
        """Update comment text"""
        pass

    @abstractmethod
    async def delete_comment(self, comment_id: int) -> bool:
        """Delete comment"""
        pass

    @abstractmethod
    async def list_comments(self, post_id: int) -> List[Comment]:
        """Comments on a post, newest first"""
        pass

    # Messages
    @abstractmethod
    async def create_message(self, sender_id: int, receiver_id: int, content: str) -> Message:
        """Create a new message"""
        pass

    @abstractmethod
    async def list_thread(self, user_id: int, partner_id: int) -> List[Message]:
        """Messages between the two users, oldest first"""
        pass

    @abstractmethod
    async def list_messages_for_user(self, user_id: int) -> List[Message]:
        """Messages sent or received by user_id, newest first"""
        pass
