"""
Mini-Blog Backend — Post Endpoint Tests
=========================================

What we test:
    ✅ Create: 201, author from the token, mentions resolved and displayed
    ✅ Read: single post, 404 for unknown ids, 400 for malformed ids
    ✅ List: envelope, pagination block, sorting, clamping, 400 on bad sortBy
    ✅ Update/delete: author only (403), 401 without a token, 404 when missing
    ✅ Update leaves mentions as they were at creation
    ✅ Delete cascades to comments and detaches re-posts
    ✅ Like toggle is its own inverse; a racing duplicate like is a retryable 409
    ✅ Re-post: new post, prefixed title, one membership per user
    ✅ Mention search: case-insensitive, wildcards matched literally
"""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import insert

from miniblog.exceptions import CONCURRENT_UPDATE
from miniblog.models.associations import post_likes
from miniblog.services.post_service import PostService

API = "/api"


async def create_post(client, headers, title="Hello", content="World"):
    response = await client.post(
        f"{API}/posts", json={"title": title, "content": content}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["post"]


async def get_post(client, post_id):
    response = await client.get(f"{API}/posts/{post_id}")
    assert response.status_code == 200, response.text
    return response.json()["data"]["post"]


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_create(self, client, signup):
        user, headers = await signup("alice")

        post = await create_post(client, headers, title="  First  ", content="Body")

        assert post["title"] == "First"
        assert post["author"]["id"] == user["id"]
        assert post["likes"] == []
        assert post["comments"] == []
        assert post["rePosts"] == []
        assert post["originalPost"] is None
        assert "createdAt" in post and "updatedAt" in post

    @pytest.mark.asyncio
    async def test_mentions(self, client, signup):
        _, headers = await signup("carol")
        alice, _ = await signup("alice")
        bob, _ = await signup("bob")

        post = await create_post(
            client, headers, content="hello @bob and @alice and @bob, and @ghost"
        )

        assert post["mentionUsernames"] == ["bob", "alice", "bob", "ghost"]
        assert post["mentions"] == [bob["id"], alice["id"]]

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.post(f"{API}/posts", json={"title": "t", "content": "c"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"title": "", "content": "c"},
            {"title": "t" * 101, "content": "c"},
            {"title": "t", "content": "c" * 1001},
            {"title": "t"},
        ],
    )
    async def test_validation(self, client, signup, payload):
        _, headers = await signup("alice")

        response = await client.post(f"{API}/posts", json=payload, headers=headers)

        assert response.status_code == 400
        assert response.json()["errors"]


class TestReadPosts:

    @pytest.mark.asyncio
    async def test_get_unknown_is_404(self, client):
        response = await client.get(f"{API}/posts/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Post not found",
            "requestId": response.headers["X-Request-ID"],
        }

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client):
        response = await client.get(f"{API}/posts/not-a-uuid")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_envelope_and_default_order(self, client, signup):
        _, headers = await signup("alice")
        for i in range(3):
            await create_post(client, headers, title=f"post {i}")

        response = await client.get(f"{API}/posts")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [p["title"] for p in body["data"]] == ["post 2", "post 1", "post 0"]
        assert body["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 3,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False,
        }

    @pytest.mark.asyncio
    async def test_list_sort_by_title_ascending(self, client, signup):
        _, headers = await signup("alice")
        for title in ("banana", "cherry", "apple"):
            await create_post(client, headers, title=title)

        response = await client.get(f"{API}/posts", params={"sortBy": "title", "sortOrder": "asc"})

        assert [p["title"] for p in response.json()["data"]] == ["apple", "banana", "cherry"]

    @pytest.mark.asyncio
    async def test_list_pages(self, client, signup):
        _, headers = await signup("alice")
        for i in range(5):
            await create_post(client, headers, title=f"post {i}")

        page2 = (await client.get(f"{API}/posts", params={"page": 2, "limit": 2})).json()
        beyond = (await client.get(f"{API}/posts", params={"page": 9, "limit": 2})).json()

        assert [p["title"] for p in page2["data"]] == ["post 2", "post 1"]
        assert page2["pagination"]["totalPages"] == 3
        assert page2["pagination"]["hasNext"] is True
        assert page2["pagination"]["hasPrev"] is True
        assert beyond["data"] == []
        assert beyond["pagination"]["total"] == 5

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, client):
        high = (await client.get(f"{API}/posts", params={"limit": 1000})).json()
        low = (await client.get(f"{API}/posts", params={"limit": 0, "page": -2})).json()

        assert high["pagination"]["limit"] == 50
        assert low["pagination"]["limit"] == 1
        assert low["pagination"]["page"] == 1

    @pytest.mark.asyncio
    async def test_unknown_sort_field_is_400(self, client):
        response = await client.get(f"{API}/posts", params={"sortBy": "content"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "sortBy"

    @pytest.mark.asyncio
    async def test_non_integer_page_is_400(self, client):
        response = await client.get(f"{API}/posts", params={"page": "two"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "page"


class TestUpdatePost:

    @pytest.mark.asyncio
    async def test_author_updates_only_given_fields(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers, title="Old", content="Body")

        response = await client.put(
            f"{API}/posts/{post['id']}", json={"title": "New"}, headers=headers
        )

        assert response.status_code == 200
        updated = response.json()["data"]["post"]
        assert updated["title"] == "New"
        assert updated["content"] == "Body"

    @pytest.mark.asyncio
    async def test_mentions_are_frozen_at_creation(self, client, signup):
        alice, headers = await signup("alice")
        await signup("bob")
        post = await create_post(client, headers, content="hi @alice")

        response = await client.put(
            f"{API}/posts/{post['id']}", json={"content": "hi @bob"}, headers=headers
        )

        assert response.json()["data"]["post"]["mentions"] == [alice["id"]]

    @pytest.mark.asyncio
    async def test_other_user_gets_403(self, client, signup):
        _, alice_headers = await signup("alice")
        _, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers, title="Mine")

        response = await client.put(
            f"{API}/posts/{post['id']}", json={"title": "Stolen"}, headers=bob_headers
        )

        assert response.status_code == 403
        assert (await get_post(client, post["id"]))["title"] == "Mine"

    @pytest.mark.asyncio
    async def test_without_token_gets_401(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers)

        response = await client.put(f"{API}/posts/{post['id']}", json={"title": "x"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_post_is_404(self, client, signup):
        _, headers = await signup("alice")

        response = await client.put(
            f"{API}/posts/{uuid.uuid4()}", json={"title": "x"}, headers=headers
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_update_is_400(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers)

        response = await client.put(f"{API}/posts/{post['id']}", json={}, headers=headers)

        assert response.status_code == 400


class TestDeletePost:

    @pytest.mark.asyncio
    async def test_author_deletes(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers)

        response = await client.delete(f"{API}/posts/{post['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Post deleted successfully"
        assert (await client.get(f"{API}/posts/{post['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_other_user_gets_403(self, client, signup):
        _, alice_headers = await signup("alice")
        _, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers)

        response = await client.delete(f"{API}/posts/{post['id']}", headers=bob_headers)

        assert response.status_code == 403
        assert (await client.get(f"{API}/posts/{post['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_without_token_gets_401(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers)

        response = await client.delete(f"{API}/posts/{post['id']}")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_cascades_to_comments_and_detaches_reposts(self, client, signup):
        _, alice_headers = await signup("alice")
        _, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers, title="Original")

        comment = (
            await client.post(
                f"{API}/comments",
                json={"postId": post["id"], "content": "nice"},
                headers=bob_headers,
            )
        ).json()["data"]["comment"]
        await client.post(
            f"{API}/comments",
            json={"postId": post["id"], "content": "reply", "parentCommentId": comment["id"]},
            headers=alice_headers,
        )
        repost = (
            await client.post(f"{API}/posts/{post['id']}/repost", headers=bob_headers)
        ).json()["data"]["post"]

        response = await client.delete(f"{API}/posts/{post['id']}", headers=alice_headers)
        assert response.status_code == 200

        comments = (await client.get(f"{API}/comments/post/{post['id']}")).json()
        assert comments["data"] == []
        assert comments["pagination"]["total"] == 0

        like = await client.post(f"{API}/comments/{comment['id']}/like", headers=bob_headers)
        assert like.status_code == 404

        surviving = await get_post(client, repost["id"])
        assert surviving["originalPost"] is None
        assert surviving["title"] == "Re-post: Original"


class TestLikePost:

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_membership(self, client, signup):
        _, alice_headers = await signup("alice")
        bob, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers)
        url = f"{API}/posts/{post['id']}/like"

        liked = await client.post(url, headers=bob_headers)
        assert liked.status_code == 200
        assert liked.json()["data"]["post"]["likes"] == [bob["id"]]

        unliked = await client.post(url, headers=bob_headers)
        assert unliked.json()["data"]["post"]["likes"] == []

    @pytest.mark.asyncio
    async def test_likes_from_several_users(self, client, signup):
        alice, alice_headers = await signup("alice")
        bob, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers)
        url = f"{API}/posts/{post['id']}/like"

        await client.post(url, headers=alice_headers)
        await client.post(url, headers=bob_headers)

        assert set((await get_post(client, post["id"]))["likes"]) == {alice["id"], bob["id"]}

    @pytest.mark.asyncio
    async def test_unknown_post_is_404(self, client, signup):
        _, headers = await signup("alice")
        response = await client.post(f"{API}/posts/{uuid.uuid4()}/like", headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_token(self, client, signup):
        _, headers = await signup("alice")
        post = await create_post(client, headers)
        response = await client.post(f"{API}/posts/{post['id']}/like")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_racing_duplicate_like_is_409_and_retry_is_safe(
        self, client, signup, database
    ):
        """Another request by the same user stores the like between our read and our write."""
        _, alice_headers = await signup("alice")
        bob, bob_headers = await signup("bob")
        post = await create_post(client, alice_headers)
        url = f"{API}/posts/{post['id']}/like"
        original_load = PostService._load
        raced = []

        async def load_then_race(service, db, post_id):
            loaded = await original_load(service, db, post_id)
            if not raced:
                raced.append(post_id)
                async with database.session() as other:
                    await other.execute(
                        insert(post_likes).values(post_id=post_id, user_id=uuid.UUID(bob["id"]))
                    )
                    await other.commit()
            return loaded

        with patch.object(PostService, "_load", load_then_race):
            response = await client.post(url, headers=bob_headers)

        assert response.status_code == 409
        body = response.json()
        assert body["message"] == CONCURRENT_UPDATE
        assert "errors" not in body
        assert (await get_post(client, post["id"]))["likes"] == [bob["id"]]

        retried = await client.post(url, headers=bob_headers)
        assert retried.status_code == 200
        assert retried.json()["data"]["post"]["likes"] == []


class TestRepost:

    @pytest.mark.asyncio
    async def test_repost_creates_linked_copy(self, client, signup):
        _, alice_headers = await signup("alice")
        bob, bob_headers = await signup("bob")
        original = await create_post(client, alice_headers, title="Hello", content="World")

        response = await client.post(f"{API}/posts/{original['id']}/repost", headers=bob_headers)

        assert response.status_code == 201
        repost = response.json()["data"]["post"]
        assert repost["id"] != original["id"]
        assert repost["title"] == "Re-post: Hello"
        assert repost["content"] == "World"
        assert repost["author"]["id"] == bob["id"]
        assert repost["originalPost"] == original["id"]
        assert (await get_post(client, original["id"]))["rePosts"] == [bob["id"]]

    @pytest.mark.asyncio
    async def test_reposting_twice_keeps_one_membership(self, client, signup):
        _, alice_headers = await signup("alice")
        bob, bob_headers = await signup("bob")
        original = await create_post(client, alice_headers)
        url = f"{API}/posts/{original['id']}/repost"

        first = await client.post(url, headers=bob_headers)
        second = await client.post(url, headers=bob_headers)

        assert first.json()["data"]["post"]["id"] != second.json()["data"]["post"]["id"]
        assert (await get_post(client, original["id"]))["rePosts"] == [bob["id"]]

    @pytest.mark.asyncio
    async def test_long_title_is_truncated(self, client, signup):
        _, headers = await signup("alice")
        original = await create_post(client, headers, title="x" * 100)

        repost = (
            await client.post(f"{API}/posts/{original['id']}/repost", headers=headers)
        ).json()["data"]["post"]

        assert len(repost["title"]) == 100
        assert repost["title"].startswith("Re-post: ")

    @pytest.mark.asyncio
    async def test_unknown_original_is_404(self, client, signup):
        _, headers = await signup("alice")
        response = await client.post(f"{API}/posts/{uuid.uuid4()}/repost", headers=headers)
        assert response.status_code == 404


class TestMentionSearch:

    @pytest.mark.asyncio
    async def test_case_insensitive_substring(self, client, signup):
        _, headers = await signup("carol")
        await create_post(client, headers, title="a", content="hey @Alice!")
        await create_post(client, headers, title="b", content="nothing")
        await create_post(client, headers, title="c", content="cc @alice_fan")

        body = (await client.get(f"{API}/posts/mention/alice")).json()

        assert sorted(p["title"] for p in body["data"]) == ["a", "c"]
        assert body["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, client, signup):
        _, headers = await signup("carol")
        await create_post(client, headers, title="a", content="hey @bob")

        body = (await client.get(f"{API}/posts/mention/b_b")).json()

        assert body["data"] == []
