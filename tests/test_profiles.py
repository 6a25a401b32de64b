"""Profile service - own profile, updates, other people and request listings."""

import pytest

from social_service.application.connections import ConnectionWorkflow
from social_service.application.profiles import ProfileService
from social_service.domain.models import ConnectionStatus
from social_service.errors import Conflict, NotFound, ValidationError
from social_service.infrastructure.cache import RedisCache


class DictCache(RedisCache):
    """RedisCache keeping entries in a dict instead of a server."""

    def __init__(self):
        super().__init__()
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ttl=300):
        self.data[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)


async def test_me_includes_counts(profiles, store, alice, bob, carol):
    await store.create_follow_edge(bob.id, alice.id)
    await store.create_follow_edge(carol.id, alice.id)
    await store.create_follow_edge(alice.id, bob.id)

    user, stats = await profiles.me(alice.id)

    assert user.handle == "alice"
    assert stats == {"follower_count": 2, "following_count": 1}


async def test_update_profile(profiles, alice):
    user = await profiles.update_profile(alice.id, name="Alice A.", bio="hi there")
    assert user.name == "Alice A."
    assert user.bio == "hi there"
    assert user.handle == "alice"


async def test_update_profile_handle_taken(profiles, alice, bob):
    with pytest.raises(Conflict):
        await profiles.update_profile(alice.id, handle="bob")


async def test_update_profile_keep_own_handle(profiles, alice):
    user = await profiles.update_profile(alice.id, handle="alice", name="Alice")
    assert user.handle == "alice"


async def test_update_profile_nothing_to_update(profiles, alice):
    with pytest.raises(ValidationError):
        await profiles.update_profile(alice.id)


async def test_update_avatar(profiles, alice):
    user = await profiles.update_avatar(alice.id, "avatars/alice.png")
    assert user.avatar_url == "avatars/alice.png"


async def test_person_hides_posts_from_strangers(profiles, posts, alice, bob):
    await posts.create_post(bob.id, "private-ish")

    user, _, status, bob_posts = await profiles.person(alice.id, bob.id)

    assert user.id == bob.id
    assert status == ConnectionStatus.NONE
    assert bob_posts is None


async def test_person_shows_posts_when_connected(profiles, posts, store, alice, bob):
    await store.create_follow_edge(alice.id, bob.id)
    await posts.create_post(bob.id, "hello followers")

    _, stats, status, bob_posts = await profiles.person(alice.id, bob.id)

    assert status == ConnectionStatus.A_FOLLOWS_B
    assert stats["follower_count"] == 1
    assert [p.post.content for p in bob_posts] == ["hello followers"]


async def test_person_self_shows_posts(profiles, posts, alice):
    await posts.create_post(alice.id, "mine")
    _, _, _, own_posts = await profiles.person(alice.id, alice.id)
    assert len(own_posts) == 1


async def test_person_unknown(profiles, alice):
    with pytest.raises(NotFound):
        await profiles.person(alice.id, 999)


async def test_connections(profiles, store, alice, bob, carol):
    await store.create_follow_edge(bob.id, alice.id)
    await store.create_follow_edge(alice.id, carol.id)

    followers, followings = await profiles.connections(alice.id)

    assert [u.id for u in followers] == [bob.id]
    assert [u.id for u in followings] == [carol.id]


async def test_incoming_requests_newest_first(profiles, workflow, alice, bob, carol):
    await workflow.request(bob.id, alice.id)
    await workflow.request(carol.id, alice.id)

    pending = await profiles.incoming_requests(alice.id)

    assert [requester.id for _, requester in pending] == [carol.id, bob.id]


async def test_relationship_flags(profiles, store, alice, bob):
    await store.create_follow_edge(bob.id, alice.id)

    rel = await profiles.relationship(alice.id, bob.id)

    assert rel["status"] == ConnectionStatus.B_FOLLOWS_A
    assert rel["is_followed_by"] is True
    assert rel["is_following"] is False
    assert rel["is_mutual"] is False


async def test_cached_stats_follow_edge_changes(store, graph, feed, kafka, alice, bob):
    """Accept and unfollow drop both parties' cached counts; requests do not."""
    cache = DictCache()
    workflow = ConnectionWorkflow(store, graph, cache, kafka)
    profiles = ProfileService(store, graph, feed, cache)
    empty = {"follower_count": 0, "following_count": 0}

    assert await profiles.get_stats(alice.id) == empty
    assert await profiles.get_stats(bob.id) == empty
    assert set(cache.data) == {f"graph:stats:{alice.id}", f"graph:stats:{bob.id}"}

    request = await workflow.request(alice.id, bob.id)
    assert set(cache.data) == {f"graph:stats:{alice.id}", f"graph:stats:{bob.id}"}

    await workflow.accept(bob.id, request.id)
    assert cache.data == {}
    assert await profiles.get_stats(alice.id) == {"follower_count": 0, "following_count": 1}
    assert await profiles.get_stats(bob.id) == {"follower_count": 1, "following_count": 0}

    await workflow.unfollow(alice.id, bob.id)
    assert await profiles.get_stats(alice.id) == empty
    assert await profiles.get_stats(bob.id) == empty
