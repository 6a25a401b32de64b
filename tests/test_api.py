"""HTTP routes - status codes, error bodies and end-to-end flows.

Invariants:
    - Missing or invalid bearer token returns 401
    - NotFound / Forbidden / Conflict / ValidationError map to 404 / 403 / 409 / 400
    - Malformed request bodies return 400, not 422
    - Creations return 201
"""

import pytest


async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


# -- auth ---------------------------------------------------------------------


async def test_missing_token_is_401(client):
    res = await client.get("/api/v1/users/me")
    assert res.status_code == 401


async def test_bad_token_is_401(client):
    res = await client.get(
        "/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401


async def test_unknown_caller_is_404(client, auth, alice):
    alice.id = 999
    res = await client.get("/api/v1/users/me", headers=auth(alice))
    assert res.status_code == 404
    assert res.json()["error"] == "not_found"


# -- profile ------------------------------------------------------------------


async def test_get_me(client, auth, alice):
    res = await client.get("/api/v1/users/me", headers=auth(alice))
    assert res.status_code == 200
    body = res.json()
    assert body["handle"] == "alice"
    assert body["follower_count"] == 0


async def test_update_me_duplicate_handle_is_409(client, auth, alice, bob):
    res = await client.put(
        "/api/v1/users/me", json={"handle": "bob"}, headers=auth(alice),
    )
    assert res.status_code == 409
    assert res.json()["error"] == "conflict"


async def test_update_me_invalid_handle_is_400(client, auth, alice):
    res = await client.put(
        "/api/v1/users/me", json={"handle": "no spaces!"}, headers=auth(alice),
    )
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "validation_error"
    assert body["fields"]


async def test_update_avatar(client, auth, alice):
    res = await client.put(
        "/api/v1/users/me/avatar", json={"avatar_url": "avatars/a.png"}, headers=auth(alice),
    )
    assert res.status_code == 200
    assert res.json()["avatar_url"] == "avatars/a.png"


# -- follow flow --------------------------------------------------------------


async def test_request_accept_flow(client, auth, alice, bob):
    res = await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))
    assert res.status_code == 201
    request_id = res.json()["id"]

    res = await client.get("/api/v1/graph/requests/incoming", headers=auth(bob))
    assert res.json()["count"] == 1
    assert res.json()["requests"][0]["requester"]["handle"] == "alice"

    res = await client.post(f"/api/v1/graph/requests/{request_id}/accept", headers=auth(bob))
    assert res.status_code == 200
    assert res.json()["follower_id"] == alice.id
    assert res.json()["followee_id"] == bob.id

    res = await client.get(f"/api/v1/graph/relationship/{bob.id}", headers=auth(alice))
    assert res.json()["status"] == "a_follows_b"
    assert res.json()["is_following"] is True

    res = await client.get("/api/v1/users/me/relationships", headers=auth(bob))
    assert res.json()["follower_ids"] == [alice.id]
    assert res.json()["pending_incoming"] == []


async def test_accept_by_requester_is_403(client, auth, alice, bob):
    res = await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))
    request_id = res.json()["id"]

    res = await client.post(f"/api/v1/graph/requests/{request_id}/accept", headers=auth(alice))
    assert res.status_code == 403


async def test_duplicate_request_is_409(client, auth, alice, bob):
    await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))
    res = await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))
    assert res.status_code == 409


async def test_self_request_is_400(client, auth, alice):
    res = await client.post(f"/api/v1/graph/requests/{alice.id}", headers=auth(alice))
    assert res.status_code == 400


async def test_decline_and_cancel(client, auth, alice, bob, carol):
    res = await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))
    res = await client.post(f"/api/v1/graph/requests/{res.json()['id']}/decline", headers=auth(bob))
    assert res.status_code == 200

    res = await client.post(f"/api/v1/graph/requests/{carol.id}", headers=auth(alice))
    res = await client.delete(f"/api/v1/graph/requests/{res.json()['id']}", headers=auth(alice))
    assert res.status_code == 200

    res = await client.get("/api/v1/users/me/relationships", headers=auth(alice))
    assert res.json()["pending_outgoing"] == []
    assert res.json()["following_ids"] == []


async def test_cancel_request_to_user(client, auth, alice, bob):
    await client.post(f"/api/v1/graph/requests/{bob.id}", headers=auth(alice))

    res = await client.delete(f"/api/v1/graph/requests/to/{bob.id}", headers=auth(alice))
    assert res.status_code == 200

    res = await client.delete(f"/api/v1/graph/requests/to/{bob.id}", headers=auth(alice))
    assert res.status_code == 404


async def test_unfollow(client, auth, store, alice, bob):
    await store.create_follow_edge(alice.id, bob.id)

    res = await client.delete(f"/api/v1/graph/following/{bob.id}", headers=auth(alice))
    assert res.status_code == 200

    res = await client.delete(f"/api/v1/graph/following/{bob.id}", headers=auth(alice))
    assert res.status_code == 404


async def test_non_integer_path_is_400(client, auth, alice):
    res = await client.get("/api/v1/people/abc", headers=auth(alice))
    assert res.status_code == 400


# -- people -------------------------------------------------------------------


async def test_people_and_person(client, auth, store, alice, bob, carol):
    await store.create_follow_edge(alice.id, bob.id)
    await store.create_post(bob.id, "bob's post")

    res = await client.get("/api/v1/people", headers=auth(alice))
    assert [p["id"] for p in res.json()["people"]] == [carol.id]

    res = await client.get(f"/api/v1/people/{bob.id}", headers=auth(alice))
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "a_follows_b"
    assert body["profile"]["follower_count"] == 1
    assert body["posts"][0]["content"] == "bob's post"

    res = await client.get(f"/api/v1/people/{alice.id}", headers=auth(carol))
    assert res.json()["posts"] is None


async def test_connections(client, auth, store, alice, bob):
    await store.create_follow_edge(bob.id, alice.id)
    res = await client.get("/api/v1/users/me/connections", headers=auth(alice))
    assert [u["handle"] for u in res.json()["followers"]] == ["bob"]
    assert res.json()["followings"] == []


# -- posts & feed -------------------------------------------------------------


async def test_post_feed_like_comment(client, auth, store, alice, bob):
    await store.create_follow_edge(bob.id, alice.id)

    res = await client.post("/api/v1/posts", json={"content": "hello world"}, headers=auth(alice))
    assert res.status_code == 201
    post_id = res.json()["id"]

    res = await client.post(f"/api/v1/posts/{post_id}/like", headers=auth(bob))
    assert res.json() == {"post_id": post_id, "is_liked": True, "like_count": 1}
    res = await client.post(f"/api/v1/posts/{post_id}/like", headers=auth(bob))
    assert res.json()["like_count"] == 1

    res = await client.post(
        f"/api/v1/posts/{post_id}/comments", json={"content": "welcome"}, headers=auth(bob),
    )
    assert res.status_code == 201
    assert res.json()["author"]["name"] == "Bob"

    res = await client.get("/api/v1/feed", headers=auth(bob))
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["author"]["handle"] == "alice"
    assert item["like_count"] == 1
    assert item["comment_count"] == 1
    assert item["is_liked_by_viewer"] is True

    res = await client.get(f"/api/v1/posts/{post_id}", headers=auth(alice))
    assert res.json()["post"]["author"]["id"] == alice.id
    assert res.json()["current_user_id"] == alice.id
    assert [c["content"] for c in res.json()["comments"]] == ["welcome"]

    res = await client.delete(f"/api/v1/posts/{post_id}/like", headers=auth(bob))
    assert res.json()["like_count"] == 0


async def test_feed_page_size_bounds(client, auth, alice):
    res = await client.get("/api/v1/feed?page_size=0", headers=auth(alice))
    assert res.status_code == 400


async def test_empty_post_is_400(client, auth, alice):
    res = await client.post("/api/v1/posts", json={"content": "  "}, headers=auth(alice))
    assert res.status_code == 400


async def test_edit_other_users_post_is_403(client, auth, alice, bob):
    res = await client.post("/api/v1/posts", json={"content": "mine"}, headers=auth(alice))
    post_id = res.json()["id"]

    res = await client.put(
        f"/api/v1/posts/{post_id}", json={"content": "yours now"}, headers=auth(bob),
    )
    assert res.status_code == 403

    res = await client.delete(f"/api/v1/posts/{post_id}", headers=auth(bob))
    assert res.status_code == 403


async def test_missing_post_is_404(client, auth, alice):
    res = await client.get("/api/v1/posts/999", headers=auth(alice))
    assert res.status_code == 404


async def test_comment_edit_delete(client, auth, store, alice, bob):
    post = await store.create_post(alice.id, "post")
    comment = await store.create_comment(bob.id, post.id, "first")

    res = await client.put(
        f"/api/v1/comments/{comment.id}", json={"content": "edited"}, headers=auth(alice),
    )
    assert res.status_code == 403

    res = await client.put(
        f"/api/v1/comments/{comment.id}", json={"content": "edited"}, headers=auth(bob),
    )
    assert res.json()["content"] == "edited"

    res = await client.delete(f"/api/v1/comments/{comment.id}", headers=auth(bob))
    assert res.status_code == 200

    res = await client.get(f"/api/v1/posts/{post.id}/comments", headers=auth(alice))
    assert res.json()["count"] == 0


# -- messages -----------------------------------------------------------------


async def test_messaging_gate(client, auth, store, alice, bob):
    res = await client.post(
        f"/api/v1/messages/{bob.id}", json={"content": "hi"}, headers=auth(alice),
    )
    assert res.status_code == 403
    assert res.json()["error"] == "forbidden"

    await store.create_follow_edge(alice.id, bob.id)

    res = await client.post(
        f"/api/v1/messages/{bob.id}", json={"content": "hi"}, headers=auth(alice),
    )
    assert res.status_code == 201

    res = await client.post(
        f"/api/v1/messages/{alice.id}", json={"content": "hey"}, headers=auth(bob),
    )
    assert res.status_code == 201

    res = await client.get(f"/api/v1/messages/{alice.id}", headers=auth(bob))
    assert [m["content"] for m in res.json()["messages"]] == ["hi", "hey"]
    assert res.json()["receiver"]["id"] == alice.id

    res = await client.get("/api/v1/messages/conversations", headers=auth(alice))
    assert res.json()["count"] == 1
    assert res.json()["conversations"][0]["handle"] == "bob"


@pytest.mark.parametrize("content", ["", "   "])
async def test_blank_message_is_400(client, auth, store, alice, bob, content):
    await store.create_follow_edge(alice.id, bob.id)
    res = await client.post(
        f"/api/v1/messages/{bob.id}", json={"content": content}, headers=auth(alice),
    )
    assert res.status_code == 400
