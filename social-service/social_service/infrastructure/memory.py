"""
In-memory entity store

Keeps the same relational rows as the PostgreSQL schema plus adjacency
indexes keyed by user id, so graph lookups cost O(degree). Used for
local development (STORE_BACKEND=memory) and for tests.
"""
import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import AsyncIterator, Optional, List, Dict, Any, Iterable, Set, Tuple, Union
import logging

from ..domain.models import User, Post, Like, Comment, FollowEdge, FollowRequest, Message
from ..domain.repositories import IEntityStore
from ..errors import Conflict, NotFound

logger = logging.getLogger(__name__)


class _Tables:
    """Rows, uniqueness keys and adjacency indexes"""

    def __init__(self):
        self.sequences: Dict[str, int] = {
            name: 0
            for name in ("users", "posts", "comments", "follow_edges", "follow_requests", "messages")
        }

        self.users: Dict[int, User] = {}
        self.user_ids_by_handle: Dict[str, int] = {}

        self.posts: Dict[int, Post] = {}
        self.posts_by_author: Dict[int, List[int]] = {}

        self.likes: Dict[Tuple[int, int], Like] = {}
        self.likers_by_post: Dict[int, Set[int]] = {}

        self.comments: Dict[int, Comment] = {}
        self.comments_by_post: Dict[int, List[int]] = {}

        self.edges: Dict[Tuple[int, int], FollowEdge] = {}
        self.followers: Dict[int, Set[int]] = {}
        self.following: Dict[int, Set[int]] = {}

        self.requests: Dict[int, FollowRequest] = {}
        self.request_ids_by_pair: Dict[Tuple[int, int], int] = {}
        self.outgoing: Dict[int, Set[int]] = {}
        self.incoming: Dict[int, Set[int]] = {}

        self.messages: Dict[int, Message] = {}
        self.messages_by_user: Dict[int, List[int]] = {}

    def next_id(self, table: str) -> int:
        self.sequences[table] += 1
        return self.sequences[table]


_MISSING = object()


class _Journal:
    """Prior value of every table entry a transaction touched"""

    def __init__(self):
        self.entries: Dict[Tuple[str, Any], Any] = {}

    def remember(self, name: str, table: dict, key: Any) -> None:
        if (name, key) not in self.entries:
            self.entries[(name, key)] = copy.deepcopy(table[key]) if key in table else _MISSING

    def rollback(self, tables: _Tables) -> None:
        for (name, key), value in self.entries.items():
            table = getattr(tables, name)
            if value is _MISSING:
                table.pop(key, None)
            else:
                table[key] = value


class _JournaledTable:
    """Dict view that records an entry before it is read or written"""

    def __init__(self, name: str, table: dict, journal: _Journal):
        self.name = name
        self.table = table
        self.journal = journal

    def _touch(self, key):
        self.journal.remember(self.name, self.table, key)

    def __getitem__(self, key):
        self._touch(key)
        return self.table[key]

    def __setitem__(self, key, value):
        self._touch(key)
        self.table[key] = value

    def __delitem__(self, key):
        self._touch(key)
        del self.table[key]

    def __contains__(self, key):
        return key in self.table

    def __iter__(self):
        return iter(self.table)

    def __len__(self):
        return len(self.table)

    def get(self, key, default=None):
        self._touch(key)
        return self.table.get(key, default)

    def setdefault(self, key, default=None):
        self._touch(key)
        return self.table.setdefault(key, default)

    def pop(self, key, *default):
        self._touch(key)
        return self.table.pop(key, *default)

    def items(self):
        return self.table.items()

    def keys(self):
        return self.table.keys()

    def values(self):
        return self.table.values()


class _JournaledTables:
    """
    Tables as seen from inside a transaction

    Only the entries the transaction reaches are copied, so rollback cost
    follows the rows touched rather than the size of the store.
    """

    def __init__(self, tables: _Tables, journal: _Journal):
        self.tables = tables
        self.journal = journal

    def __getattr__(self, name: str) -> _JournaledTable:
        return _JournaledTable(name, getattr(self.tables, name), self.journal)

    def next_id(self, table: str) -> int:
        sequences = self.sequences
        sequences[table] += 1
        return sequences[table]


def _newest_first(item) -> Tuple[datetime, int]:
    return (item.created_at, item.id)


class InMemoryEntityStore(IEntityStore):
    """Entity store implementation backed by process memory"""

    def __init__(self, tables: Optional[Union[_Tables, _JournaledTables]] = None,
                 lock: Optional[asyncio.Lock] = None,
                 pinned: bool = False):
        self.tables = tables or _Tables()
        self.lock = lock or asyncio.Lock()
        self.pinned = pinned

    @asynccontextmanager
    async def transaction(self, snapshot: bool = False) -> AsyncIterator["InMemoryEntityStore"]:
        # holding the lock already gives every read one consistent view
        if self.pinned:
            yield self
            return
        async with self.lock:
            journal = _Journal()
            try:
                yield InMemoryEntityStore(_JournaledTables(self.tables, journal), self.lock, pinned=True)
            except BaseException:
                journal.rollback(self.tables)
                logger.debug("In-memory transaction rolled back")
                raise

    def _require_user(self, user_id: int) -> None:
        if user_id not in self.tables.users:
            raise NotFound("User not found")

    def _require_post(self, post_id: int) -> None:
        if post_id not in self.tables.posts:
            raise NotFound("Post not found")

    # Users
    async def create_user(self, name: str, handle: str,
                          password_hash: Optional[str] = None,
                          bio: Optional[str] = None,
                          avatar_url: Optional[str] = None) -> User:
        t = self.tables
        if handle in t.user_ids_by_handle:
            raise Conflict("Handle already taken")
        now = datetime.utcnow()
        user = User(
            id=t.next_id("users"),
            name=name,
            handle=handle,
            bio=bio,
            avatar_url=avatar_url,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        t.users[user.id] = user
        t.user_ids_by_handle[handle] = user.id
        return replace(user)

    async def get_user(self, user_id: int) -> Optional[User]:
        user = self.tables.users.get(user_id)
        return replace(user) if user else None

    async def get_user_by_handle(self, handle: str) -> Optional[User]:
        user_id = self.tables.user_ids_by_handle.get(handle)
        return await self.get_user(user_id) if user_id is not None else None

    async def get_users(self, user_ids: Iterable[int]) -> List[User]:
        users = self.tables.users
        return [replace(users[i]) for i in sorted(set(user_ids)) if i in users]

    async def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        t = self.tables
        user = t.users.get(user_id)
        if not user:
            raise NotFound("User not found")
        new_handle = updates.get("handle")
        if new_handle is not None and new_handle != user.handle:
            if new_handle in t.user_ids_by_handle:
                raise Conflict("Handle already taken")
            del t.user_ids_by_handle[user.handle]
            t.user_ids_by_handle[new_handle] = user_id
        updated = replace(user, **updates, updated_at=datetime.utcnow())
        t.users[user_id] = updated
        return replace(updated)

    async def list_users_except(self, excluded_ids: Iterable[int]) -> List[User]:
        excluded = set(excluded_ids)
        return [
            replace(user)
            for user_id, user in sorted(self.tables.users.items())
            if user_id not in excluded
        ]

    async def find_system_account_ids(self, handle_prefix: str) -> Set[int]:
        return {
            user_id
            for handle, user_id in self.tables.user_ids_by_handle.items()
            if handle.startswith(handle_prefix)
        }

    # Follow graph
    async def get_follower_ids(self, user_id: int) -> Set[int]:
        return set(self.tables.followers.get(user_id, ()))

    async def get_following_ids(self, user_id: int) -> Set[int]:
        return set(self.tables.following.get(user_id, ()))

    async def get_outgoing_request_ids(self, user_id: int) -> Set[int]:
        return set(self.tables.outgoing.get(user_id, ()))

    async def get_incoming_request_ids(self, user_id: int) -> Set[int]:
        return set(self.tables.incoming.get(user_id, ()))

    async def get_follow_edge(self, follower_id: int, followee_id: int) -> Optional[FollowEdge]:
        edge = self.tables.edges.get((follower_id, followee_id))
        return replace(edge) if edge else None

    async def create_follow_edge(self, follower_id: int, followee_id: int) -> FollowEdge:
        t = self.tables
        self._require_user(follower_id)
        self._require_user(followee_id)
        if (follower_id, followee_id) in t.edges:
            raise Conflict("Already following this user")
        edge = FollowEdge(
            id=t.next_id("follow_edges"),
            follower_id=follower_id,
            followee_id=followee_id,
            created_at=datetime.utcnow(),
        )
        t.edges[(follower_id, followee_id)] = edge
        t.following.setdefault(follower_id, set()).add(followee_id)
        t.followers.setdefault(followee_id, set()).add(follower_id)
        return replace(edge)

    async def delete_follow_edge(self, follower_id: int, followee_id: int) -> bool:
        t = self.tables
        if t.edges.pop((follower_id, followee_id), None) is None:
            return False
        t.following[follower_id].discard(followee_id)
        t.followers[followee_id].discard(follower_id)
        return True

    async def create_follow_request(self, requester_id: int, requestee_id: int) -> FollowRequest:
        t = self.tables
        self._require_user(requester_id)
        self._require_user(requestee_id)
        if (requester_id, requestee_id) in t.request_ids_by_pair:
            raise Conflict("Follow request already pending")
        request = FollowRequest(
            id=t.next_id("follow_requests"),
            requester_id=requester_id,
            requestee_id=requestee_id,
            created_at=datetime.utcnow(),
        )
        t.requests[request.id] = request
        t.request_ids_by_pair[(requester_id, requestee_id)] = request.id
        t.outgoing.setdefault(requester_id, set()).add(requestee_id)
        t.incoming.setdefault(requestee_id, set()).add(requester_id)
        return replace(request)

    async def get_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        request = self.tables.requests.get(request_id)
        return replace(request) if request else None

    async def find_follow_request(self, requester_id: int, requestee_id: int) -> Optional[FollowRequest]:
        request_id = self.tables.request_ids_by_pair.get((requester_id, requestee_id))
        return await self.get_follow_request(request_id) if request_id is not None else None

    async def list_incoming_requests(self, user_id: int) -> List[FollowRequest]:
        t = self.tables
        requests = [
            t.requests[t.request_ids_by_pair[(requester_id, user_id)]]
            for requester_id in t.incoming.get(user_id, ())
        ]
        return [replace(r) for r in sorted(requests, key=_newest_first, reverse=True)]

    async def delete_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        t = self.tables
        request = t.requests.pop(request_id, None)
        if request is None:
            return None
        del t.request_ids_by_pair[(request.requester_id, request.requestee_id)]
        t.outgoing[request.requester_id].discard(request.requestee_id)
        t.incoming[request.requestee_id].discard(request.requester_id)
        return replace(request)

    # Posts
    async def create_post(self, author_id: int, content: str,
                          media_url: Optional[str] = None) -> Post:
        t = self.tables
        self._require_user(author_id)
        now = datetime.utcnow()
        post = Post(
            id=t.next_id("posts"),
            author_id=author_id,
            content=content,
            media_url=media_url,
            created_at=now,
            updated_at=now,
        )
        t.posts[post.id] = post
        t.posts_by_author.setdefault(author_id, []).append(post.id)
        return replace(post)

    async def get_post(self, post_id: int) -> Optional[Post]:
        post = self.tables.posts.get(post_id)
        return replace(post) if post else None

    async def update_post(self, post_id: int, updates: Dict[str, Any]) -> Post:
        t = self.tables
        post = t.posts.get(post_id)
        if not post:
            raise NotFound("Post not found")
        updated = replace(post, **updates, updated_at=datetime.utcnow())
        t.posts[post_id] = updated
        return replace(updated)

    async def delete_post(self, post_id: int) -> bool:
        t = self.tables
        post = t.posts.pop(post_id, None)
        if post is None:
            return False
        t.posts_by_author[post.author_id].remove(post_id)
        for user_id in t.likers_by_post.pop(post_id, set()):
            del t.likes[(user_id, post_id)]
        for comment_id in t.comments_by_post.pop(post_id, []):
            del t.comments[comment_id]
        return True

    def _posts_by_authors(self, author_ids: Iterable[int]) -> List[Post]:
        t = self.tables
        return [
            t.posts[post_id]
            for author_id in set(author_ids)
            for post_id in t.posts_by_author.get(author_id, ())
        ]

    async def list_posts_by_authors(self, author_ids: Iterable[int],
                                    limit: Optional[int] = None,
                                    offset: int = 0) -> List[Post]:
        posts = sorted(self._posts_by_authors(author_ids), key=_newest_first, reverse=True)
        end = None if limit is None else offset + limit
        return [replace(p) for p in posts[offset:end]]

    async def count_posts_by_authors(self, author_ids: Iterable[int]) -> int:
        return len(self._posts_by_authors(author_ids))

    async def count_likes(self, post_ids: Iterable[int]) -> Dict[int, int]:
        likers = self.tables.likers_by_post
        return {post_id: len(likers[post_id]) for post_id in post_ids if likers.get(post_id)}

    async def count_comments(self, post_ids: Iterable[int]) -> Dict[int, int]:
        comments = self.tables.comments_by_post
        return {post_id: len(comments[post_id]) for post_id in post_ids if comments.get(post_id)}

    async def get_liked_post_ids(self, user_id: int, post_ids: Iterable[int]) -> Set[int]:
        likes = self.tables.likes
        return {post_id for post_id in post_ids if (user_id, post_id) in likes}

    # Likes
    async def add_like(self, user_id: int, post_id: int) -> bool:
        t = self.tables
        self._require_user(user_id)
        self._require_post(post_id)
        if (user_id, post_id) in t.likes:
            return False
        t.likes[(user_id, post_id)] = Like(user_id=user_id, post_id=post_id, created_at=datetime.utcnow())
        t.likers_by_post.setdefault(post_id, set()).add(user_id)
        return True

    async def remove_like(self, user_id: int, post_id: int) -> bool:
        t = self.tables
        if t.likes.pop((user_id, post_id), None) is None:
            return False
        t.likers_by_post[post_id].discard(user_id)
        return True

    # Comments
    async def create_comment(self, author_id: int, post_id: int, content: str) -> Comment:
        t = self.tables
        self._require_user(author_id)
        self._require_post(post_id)
        now = datetime.utcnow()
        comment = Comment(
            id=t.next_id("comments"),
            author_id=author_id,
            post_id=post_id,
            content=content,
            created_at=now,
            updated_at=now,
        )
        t.comments[comment.id] = comment
        t.comments_by_post.setdefault(post_id, []).append(comment.id)
        return replace(comment)

    async def get_comment(self, comment_id: int) -> Optional[Comment]:
        comment = self.tables.comments.get(comment_id)
        return replace(comment) if comment else None

    async def update_comment(self, comment_id: int, content: str) -> Comment:
        t = self.tables
        comment = t.comments.get(comment_id)
        if not comment:
            raise NotFound("Comment not found")
        updated = replace(comment, content=content, updated_at=datetime.utcnow())
        t.comments[comment_id] = updated
        return replace(updated)

    async def delete_comment(self, comment_id: int) -> bool:
        t = self.tables
        comment = t.comments.pop(comment_id, None)
        if comment is None:
            return False
        t.comments_by_post[comment.post_id].remove(comment_id)
        return True

    async def list_comments(self, post_id: int) -> List[Comment]:
        t = self.tables
        comments = [t.comments[i] for i in t.comments_by_post.get(post_id, ())]
        return [replace(c) for c in sorted(comments, key=_newest_first, reverse=True)]

    # Messages
    async def create_message(self, sender_id: int, receiver_id: int, content: str) -> Message:
        t = self.tables
        self._require_user(sender_id)
        self._require_user(receiver_id)
        message = Message(
            id=t.next_id("messages"),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            created_at=datetime.utcnow(),
        )
        t.messages[message.id] = message
        t.messages_by_user.setdefault(sender_id, []).append(message.id)
        if receiver_id != sender_id:
            t.messages_by_user.setdefault(receiver_id, []).append(message.id)
        return replace(message)

    async def list_thread(self, user_id: int, partner_id: int) -> List[Message]:
        t = self.tables
        pair = {user_id, partner_id}
        thread = [
            t.messages[i]
            for i in t.messages_by_user.get(user_id, ())
            if {t.messages[i].sender_id, t.messages[i].receiver_id} == pair
        ]
        return [replace(m) for m in sorted(thread, key=_newest_first)]

    async def list_messages_for_user(self, user_id: int) -> List[Message]:
        t = self.tables
        messages = [t.messages[i] for i in t.messages_by_user.get(user_id, ())]
        return [replace(m) for m in sorted(messages, key=_newest_first, reverse=True)]
