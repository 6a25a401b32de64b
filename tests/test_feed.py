"""Feed assembler and post service.

Invariants:
    - feed(u) holds only posts by u or by users u follows
    - feed(u) is non-increasing by creation time
    - Page, total and annotations of one feed call read the same state
    - Liking twice keeps one like and is_liked_by_viewer stays true
    - Only authors modify their posts and comments
"""

import pytest

from social_service.errors import Forbidden, NotFound, ValidationError


async def test_feed_only_own_and_followed_authors(feed, posts, store, alice, bob, carol):
    await store.create_follow_edge(alice.id, bob.id)
    own = await posts.create_post(alice.id, "mine")
    followed = await posts.create_post(bob.id, "from bob")
    await posts.create_post(carol.id, "from a stranger")

    items, total, has_more = await feed.feed(alice.id)

    assert {i.post.id for i in items} == {own.id, followed.id}
    assert total == 2
    assert has_more is False


async def test_feed_excludes_followers_posts(feed, posts, store, alice, bob):
    """bob follows alice, alice does not follow bob."""
    await store.create_follow_edge(bob.id, alice.id)
    await posts.create_post(bob.id, "hello alice")

    items, _, _ = await feed.feed(alice.id)
    assert items == []


async def test_feed_is_newest_first(feed, posts, store, alice, bob):
    await store.create_follow_edge(alice.id, bob.id)
    for i in range(4):
        await posts.create_post(alice.id if i % 2 else bob.id, f"post {i}")

    items, _, _ = await feed.feed(alice.id)

    stamps = [(i.post.created_at, i.post.id) for i in items]
    assert stamps == sorted(stamps, reverse=True)
    assert [i.post.content for i in items] == ["post 3", "post 2", "post 1", "post 0"]


async def test_feed_pagination(feed, posts, alice):
    for i in range(5):
        await posts.create_post(alice.id, f"post {i}")

    items, total, has_more = await feed.feed(alice.id, page=1, page_size=2)
    assert [i.post.content for i in items] == ["post 4", "post 3"]
    assert total == 5
    assert has_more is True

    items, _, has_more = await feed.feed(alice.id, page=3, page_size=2)
    assert [i.post.content for i in items] == ["post 0"]
    assert has_more is False


async def test_feed_annotations(feed, posts, store, alice, bob):
    await store.create_follow_edge(alice.id, bob.id)
    post = await posts.create_post(bob.id, "annotate me")
    await posts.like_post(alice.id, post.id)
    await posts.like_post(bob.id, post.id)
    await posts.add_comment(alice.id, post.id, "first")

    items, _, _ = await feed.feed(alice.id)

    item = items[0]
    assert item.author.handle == "bob"
    assert item.like_count == 2
    assert item.comment_count == 1
    assert item.is_liked_by_viewer is True


async def test_feed_reads_in_one_transaction(feed, posts, store, pinned_calls, alice, bob):
    await store.create_follow_edge(alice.id, bob.id)
    await posts.create_post(bob.id, "hello")
    calls = pinned_calls(
        "get_following_ids", "list_posts_by_authors", "count_posts_by_authors", "count_likes",
    )

    items, total, _ = await feed.feed(alice.id, page_size=10)

    assert total == len(items) == 1
    assert [name for name, _ in calls] == [
        "get_following_ids", "list_posts_by_authors", "count_posts_by_authors", "count_likes",
    ]
    assert all(pinned for _, pinned in calls)


async def test_feed_unknown_viewer(feed):
    with pytest.raises(NotFound):
        await feed.feed(999)


async def test_like_twice_is_idempotent(feed, posts, alice):
    post = await posts.create_post(alice.id, "like me")

    assert await posts.like_post(alice.id, post.id) is True
    assert await posts.like_post(alice.id, post.id) is False

    detail, _ = await feed.post_detail(alice.id, post.id)
    assert detail.like_count == 1
    assert detail.is_liked_by_viewer is True


async def test_unlike_absent_like_is_noop(posts, alice):
    post = await posts.create_post(alice.id, "hello")
    assert await posts.unlike_post(alice.id, post.id) is False
    assert await posts.like_count(post.id) == 0


async def test_like_unknown_post(posts, alice):
    with pytest.raises(NotFound):
        await posts.like_post(alice.id, 999)


async def test_post_detail_comments_newest_first(feed, posts, alice, bob):
    post = await posts.create_post(alice.id, "discuss")
    await posts.add_comment(bob.id, post.id, "one")
    await posts.add_comment(alice.id, post.id, "two")

    _, comments = await feed.post_detail(bob.id, post.id)

    assert [c.comment.content for c in comments] == ["two", "one"]
    assert comments[1].author.id == bob.id


async def test_post_detail_unknown_post(feed, alice):
    with pytest.raises(NotFound):
        await feed.post_detail(alice.id, 999)


async def test_create_post_requires_content_or_media(posts, alice):
    with pytest.raises(ValidationError):
        await posts.create_post(alice.id, "   ")

    post = await posts.create_post(alice.id, None, media_url="media/1.jpg")
    assert post.content == ""
    assert post.media_url == "media/1.jpg"


async def test_update_post_by_author(posts, alice):
    post = await posts.create_post(alice.id, "draft")
    updated = await posts.update_post(alice.id, post.id, "final")
    assert updated.content == "final"


async def test_update_post_by_other_is_forbidden(posts, alice, bob):
    post = await posts.create_post(alice.id, "mine")
    with pytest.raises(Forbidden):
        await posts.update_post(bob.id, post.id, "hijacked")


async def test_delete_post_by_other_is_forbidden(posts, alice, bob):
    post = await posts.create_post(alice.id, "mine")
    with pytest.raises(Forbidden):
        await posts.delete_post(bob.id, post.id)


async def test_delete_post_removes_it(posts, store, alice):
    post = await posts.create_post(alice.id, "short lived")
    await posts.delete_post(alice.id, post.id)
    assert await store.get_post(post.id) is None


async def test_comment_edit_and_delete_author_only(posts, store, alice, bob):
    post = await posts.create_post(alice.id, "post")
    comment = await posts.add_comment(bob.id, post.id, "nice")

    with pytest.raises(Forbidden):
        await posts.edit_comment(alice.id, comment.id, "edited by alice")
    with pytest.raises(Forbidden):
        await posts.delete_comment(alice.id, comment.id)

    edited = await posts.edit_comment(bob.id, comment.id, "very nice")
    assert edited.content == "very nice"

    await posts.delete_comment(bob.id, comment.id)
    assert await store.get_comment(comment.id) is None


async def test_blank_comment_rejected(posts, alice):
    post = await posts.create_post(alice.id, "post")
    with pytest.raises(ValidationError):
        await posts.add_comment(alice.id, post.id, "")
