"""
Repository implementations - Data access layer
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, List, Dict, Any, Iterable, Set
from datetime import datetime
import logging

import asyncpg

from ...domain.models import User, Post, Comment, FollowEdge, FollowRequest, Message
from ...domain.repositories import IEntityStore
from ...errors import Conflict, NotFound
from .connection import DatabaseConnection, Executor

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, name, handle, bio, avatar_url, password_hash, created_at, updated_at"
POST_COLUMNS = "id, author_id, content, media_url, created_at, updated_at"
COMMENT_COLUMNS = "id, author_id, post_id, content, created_at, updated_at"
MESSAGE_COLUMNS = "id, sender_id, receiver_id, content, created_at"

USER_FIELDS = {"name", "handle", "bio", "avatar_url", "password_hash"}
POST_FIELDS = {"content", "media_url"}


@asynccontextmanager
async def translate_errors(conflict_message: str) -> AsyncIterator[None]:
    """Surface constraint violations as domain errors"""
    try:
        yield
    except asyncpg.UniqueViolationError as e:
        logger.debug(f"Unique violation: {e}")
        raise Conflict(conflict_message)
    except asyncpg.ForeignKeyViolationError as e:
        logger.debug(f"Foreign key violation: {e}")
        raise NotFound("Referenced entity not found")


class PostgresEntityStore(IEntityStore):
    """Entity store implementation using PostgreSQL"""

    def __init__(self, db: DatabaseConnection, conn: Optional[asyncpg.Connection] = None):
        self.db = db
        self.executor = Executor(db, conn)

    @asynccontextmanager
    async def transaction(self, snapshot: bool = False) -> AsyncIterator["PostgresEntityStore"]:
        if self.executor.conn is not None:
            # Already pinned; nested blocks join the outer transaction
            yield self
            return
        isolation = "repeatable_read" if snapshot else None
        async with self.db.transaction(isolation) as conn:
            yield PostgresEntityStore(self.db, conn)

    # Users
    async def create_user(self, name: str, handle: str,
                          password_hash: Optional[str] = None,
                          bio: Optional[str] = None,
                          avatar_url: Optional[str] = None) -> User:
        async with translate_errors("Handle already taken"):
            row = await self.executor.fetch_one(
                f"""
                INSERT INTO users (name, handle, password_hash, bio, avatar_url)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {USER_COLUMNS}
                """,
                name, handle, password_hash, bio, avatar_url
            )
        return User(**row)

    async def get_user(self, user_id: int) -> Optional[User]:
        row = await self.executor.fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id
        )
        return User(**row) if row else None

    async def get_user_by_handle(self, handle: str) -> Optional[User]:
        row = await self.executor.fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE handle = $1", handle
        )
        return User(**row) if row else None

    async def get_users(self, user_ids: Iterable[int]) -> List[User]:
        rows = await self.executor.fetch_all(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ANY($1::bigint[]) ORDER BY id",
            list(user_ids)
        )
        return [User(**row) for row in rows]

    async def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        # Build dynamic update query
        update_fields = []
        values = []
        param_count = 1

        for field, value in updates.items():
            if field not in USER_FIELDS:
                raise ValueError(f"Unknown user field: {field}")
            update_fields.append(f"{field} = ${param_count}")
            values.append(value)
            param_count += 1

        update_fields.append(f"updated_at = ${param_count}")
        values.append(datetime.utcnow())
        param_count += 1

        values.append(user_id)

        async with translate_errors("Handle already taken"):
            row = await self.executor.fetch_one(
                f"""
                UPDATE users
                SET {", ".join(update_fields)}
                WHERE id = ${param_count}
                RETURNING {USER_COLUMNS}
                """,
                *values
            )
        if not row:
            raise NotFound("User not found")
        return User(**row)

    async def list_users_except(self, excluded_ids: Iterable[int]) -> List[User]:
        rows = await self.executor.fetch_all(
            f"""
            SELECT {USER_COLUMNS} FROM users
            WHERE NOT (id = ANY($1::bigint[]))
            ORDER BY id
            """,
            list(excluded_ids)
        )
        return [User(**row) for row in rows]

    async def find_system_account_ids(self, handle_prefix: str) -> Set[int]:
        escaped = handle_prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = await self.executor.fetch_all(
            "SELECT id FROM users WHERE handle LIKE $1",
            f"{escaped}%"
        )
        return {row["id"] for row in rows}

    # Follow graph
    async def get_follower_ids(self, user_id: int) -> Set[int]:
        rows = await self.executor.fetch_all(
            "SELECT follower_id FROM follow_edges WHERE followee_id = $1", user_id
        )
        return {row["follower_id"] for row in rows}

    async def get_following_ids(self, user_id: int) -> Set[int]:
        rows = await self.executor.fetch_all(
            "SELECT followee_id FROM follow_edges WHERE follower_id = $1", user_id
        )
        return {row["followee_id"] for row in rows}

    async def get_outgoing_request_ids(self, user_id: int) -> Set[int]:
        rows = await self.executor.fetch_all(
            "SELECT requestee_id FROM follow_requests WHERE requester_id = $1", user_id
        )
        return {row["requestee_id"] for row in rows}

    async def get_incoming_request_ids(self, user_id: int) -> Set[int]:
        rows = await self.executor.fetch_all(
            "SELECT requester_id FROM follow_requests WHERE requestee_id = $1", user_id
        )
        return {row["requester_id"] for row in rows}

    async def get_follow_edge(self, follower_id: int, followee_id: int) -> Optional[FollowEdge]:
        # inside a transaction the edge cannot be deleted until commit
        lock = "FOR SHARE" if self.executor.conn is not None else ""
        row = await self.executor.fetch_one(
            f"""
            SELECT id, follower_id, followee_id, created_at
            FROM follow_edges
            WHERE follower_id = $1 AND followee_id = $2
            {lock}
            """,
            follower_id, followee_id
        )
        return FollowEdge(**row) if row else None

    async def create_follow_edge(self, follower_id: int, followee_id: int) -> FollowEdge:
        async with translate_errors("Already following this user"):
            row = await self.executor.fetch_one(
                """
                INSERT INTO follow_edges (follower_id, followee_id)
                VALUES ($1, $2)
                RETURNING id, follower_id, followee_id, created_at
                """,
                follower_id, followee_id
            )
        return FollowEdge(**row)

    async def delete_follow_edge(self, follower_id: int, followee_id: int) -> bool:
        row = await self.executor.fetch_one(
            """
            DELETE FROM follow_edges
            WHERE follower_id = $1 AND followee_id = $2
            RETURNING id
            """,
            follower_id, followee_id
        )
        return row is not None

    async def create_follow_request(self, requester_id: int, requestee_id: int) -> FollowRequest:
        async with translate_errors("Follow request already pending"):
            row = await self.executor.fetch_one(
                """
                INSERT INTO follow_requests (requester_id, requestee_id)
                VALUES ($1, $2)
                RETURNING id, requester_id, requestee_id, created_at
                """,
                requester_id, requestee_id
            )
        return FollowRequest(**row)

    async def get_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        row = await self.executor.fetch_one(
            """
            SELECT id, requester_id, requestee_id, created_at
            FROM follow_requests WHERE id = $1
            """,
            request_id
        )
        return FollowRequest(**row) if row else None

    async def find_follow_request(self, requester_id: int, requestee_id: int) -> Optional[FollowRequest]:
        row = await self.executor.fetch_one(
            """
            SELECT id, requester_id, requestee_id, created_at
            FROM follow_requests
            WHERE requester_id = $1 AND requestee_id = $2
            """,
            requester_id, requestee_id
        )
        return FollowRequest(**row) if row else None

    async def list_incoming_requests(self, user_id: int) -> List[FollowRequest]:
        rows = await self.executor.fetch_all(
            """
            SELECT id, requester_id, requestee_id, created_at
            FROM follow_requests
            WHERE requestee_id = $1
            ORDER BY created_at DESC, id DESC
            """,
            user_id
        )
        return [FollowRequest(**row) for row in rows]

    async def delete_follow_request(self, request_id: int) -> Optional[FollowRequest]:
        row = await self.executor.fetch_one(
            """
            DELETE FROM follow_requests WHERE id = $1
            RETURNING id, requester_id, requestee_id, created_at
            """,
            request_id
        )
        return FollowRequest(**row) if row else None

    # Posts
    async def create_post(self, author_id: int, content: str,
                          media_url: Optional[str] = None) -> Post:
        async with translate_errors("Post already exists"):
            row = await self.executor.fetch_one(
                f"""
                INSERT INTO posts (author_id, content, media_url)
                VALUES ($1, $2, $3)
                RETURNING {POST_COLUMNS}
                """,
                author_id, content, media_url
            )
        return Post(**row)

    async def get_post(self, post_id: int) -> Optional[Post]:
        row = await self.executor.fetch_one(
            f"SELECT {POST_COLUMNS} FROM posts WHERE id = $1", post_id
        )
        return Post(**row) if row else None

    async def update_post(self, post_id: int, updates: Dict[str, Any]) -> Post:
        update_fields = []
        values = []
        param_count = 1

        for field, value in updates.items():
            if field not in POST_FIELDS:
                raise ValueError(f"Unknown post field: {field}")
            update_fields.append(f"{field} = ${param_count}")
            values.append(value)
            param_count += 1

        update_fields.append(f"updated_at = ${param_count}")
        values.append(datetime.utcnow())
        param_count += 1

        values.append(post_id)

        row = await self.executor.fetch_one(
            f"""
            UPDATE posts
            SET {", ".join(update_fields)}
            WHERE id = ${param_count}
            RETURNING {POST_COLUMNS}
            """,
            *values
        )
        if not row:
            raise NotFound("Post not found")
        return Post(**row)

    async def delete_post(self, post_id: int) -> bool:
        # likes and comments go with it via ON DELETE CASCADE
        row = await self.executor.fetch_one(
            "DELETE FROM posts WHERE id = $1 RETURNING id", post_id
        )
        return row is not None

    async def list_posts_by_authors(self, author_ids: Iterable[int],
                                    limit: Optional[int] = None,
                                    offset: int = 0) -> List[Post]:
        rows = await self.executor.fetch_all(
            f"""
            SELECT {POST_COLUMNS} FROM posts
            WHERE author_id = ANY($1::bigint[])
            ORDER BY created_at DESC, id DESC
            LIMIT $2 OFFSET $3
            """,
            list(author_ids), limit, offset
        )
        return [Post(**row) for row in rows]

    async def count_posts_by_authors(self, author_ids: Iterable[int]) -> int:
        count = await self.executor.fetch_val(
            "SELECT COUNT(*) FROM posts WHERE author_id = ANY($1::bigint[])",
            list(author_ids)
        )
        return count or 0

    async def count_likes(self, post_ids: Iterable[int]) -> Dict[int, int]:
        rows = await self.executor.fetch_all(
            """
            SELECT post_id, COUNT(*) AS count FROM likes
            WHERE post_id = ANY($1::bigint[])
            GROUP BY post_id
            """,
            list(post_ids)
        )
        return {row["post_id"]: row["count"] for row in rows}

    async def count_comments(self, post_ids: Iterable[int]) -> Dict[int, int]:
        rows = await self.executor.fetch_all(
            """
            SELECT post_id, COUNT(*) AS count FROM comments
            WHERE post_id = ANY($1::bigint[])
            GROUP BY post_id
            """,
            list(post_ids)
        )
        return {row["post_id"]: row["count"] for row in rows}

    async def get_liked_post_ids(self, user_id: int, post_ids: Iterable[int]) -> Set[int]:
        rows = await self.executor.fetch_all(
            """
            SELECT post_id FROM likes
            WHERE user_id = $1 AND post_id = ANY($2::bigint[])
            """,
            user_id, list(post_ids)
        )
        return {row["post_id"] for row in rows}

    # Likes
    async def add_like(self, user_id: int, post_id: int) -> bool:
        async with translate_errors("Already liked"):
            row = await self.executor.fetch_one(
                """
                INSERT INTO likes (user_id, post_id)
                VALUES ($1, $2)
                ON CONFLICT (user_id, post_id) DO NOTHING
                RETURNING post_id
                """,
                user_id, post_id
            )
        return row is not None

    async def remove_like(self, user_id: int, post_id: int) -> bool:
        row = await self.executor.fetch_one(
            """
            DELETE FROM likes WHERE user_id = $1 AND post_id = $2
            RETURNING post_id
            """,
            user_id, post_id
        )
        return row is not None

    # Comments
    async def create_comment(self, author_id: int, post_id: int, content: str) -> Comment:
        async with translate_errors("Comment already exists"):
            row = await self.executor.fetch_one(
                f"""
                INSERT INTO comments (author_id, post_id, content)
                VALUES ($1, $2, $3)
                RETURNING {COMMENT_COLUMNS}
                """,
                author_id, post_id, content
            )
        return Comment(**row)

    async def get_comment(self, comment_id: int) -> Optional[Comment]:
        row = await self.executor.fetch_one(
            f"SELECT {COMMENT_COLUMNS} FROM comments WHERE id = $1", comment_id
        )
        return Comment(**row) if row else None

    async def update_comment(self, comment_id: int, content: str) -> Comment:
        row = await self.executor.fetch_one(
            f"""
            UPDATE comments SET content = $1, updated_at = $2
            WHERE id = $3
            RETURNING {COMMENT_COLUMNS}
            """,
            content, datetime.utcnow(), comment_id
        )
        if not row:
            raise NotFound("Comment not found")
        return Comment(**row)

    async def delete_comment(self, comment_id: int) -> bool:
        row = await self.executor.fetch_one(
            "DELETE FROM comments WHERE id = $1 RETURNING id", comment_id
        )
        return row is not None

    async def list_comments(self, post_id: int) -> List[Comment]:
        rows = await self.executor.fetch_all(
            f"""
            SELECT {COMMENT_COLUMNS} FROM comments
            WHERE post_id = $1
            ORDER BY created_at DESC, id DESC
            """,
            post_id
        )
        return [Comment(**row) for row in rows]

    # Messages
    async def create_message(self, sender_id: int, receiver_id: int, content: str) -> Message:
        async with translate_errors("Message already exists"):
            row = await self.executor.fetch_one(
                f"""
                INSERT INTO messages (sender_id, receiver_id, content)
                VALUES ($1, $2, $3)
                RETURNING {MESSAGE_COLUMNS}
                """,
                sender_id, receiver_id, content
            )
        return Message(**row)

    async def list_thread(self, user_id: int, partner_id: int) -> List[Message]:
        rows = await self.executor.fetch_all(
            f"""
            SELECT {MESSAGE_COLUMNS} FROM messages
            WHERE (sender_id = $1 AND receiver_id = $2)
               OR (sender_id = $2 AND receiver_id = $1)
            ORDER BY created_at ASC, id ASC
            """,
            user_id, partner_id
        )
        return [Message(**row) for row in rows]

    async def list_messages_for_user(self, user_id: int) -> List[Message]:
        rows = await self.executor.fetch_all(
            f"""
            SELECT {MESSAGE_COLUMNS} FROM messages
            WHERE sender_id = $1 OR receiver_id = $1
            ORDER BY created_at DESC, id DESC
            """,
            user_id
        )
        return [Message(**row) for row in rows]
