import uuid
from datetime import timedelta

import pytest
import pytest_asyncio

from daily.core import clock
from daily.core.database.models import FriendRow, FriendStatus, UserRow
from daily.features.posts.post_store import PostStore

pytestmark = pytest.mark.asyncio
USER_A_ID = uuid.uuid4()
USER_B_ID = uuid.uuid4()
USER_C_ID = uuid.uuid4()

POST = {"frontImage": "posts/front.jpg", "backImage": "posts/back.jpg", "caption": "hi"}


@pytest_asyncio.fixture(autouse=True, scope="function")
async def setup_fixture(session):
    session.add(UserRow(id=USER_A_ID, username="a", email="a@example.com"))
    session.add(UserRow(id=USER_B_ID, username="b", email="b@example.com"))
    session.add(UserRow(id=USER_C_ID, username="c", email="c@example.com"))
    await session.commit()
    # A and B are friends
    friend = FriendRow(
        requester_id=USER_A_ID,
        recipient_id=USER_B_ID,
        pair_low_id=min(USER_A_ID, USER_B_ID),
        pair_high_id=max(USER_A_ID, USER_B_ID),
        status=FriendStatus.accepted,
    )
    session.add(friend)
    await session.commit()


async def create_post(client, request_as, user_id=USER_A_ID, **overrides) -> dict:
    with request_as(user_id):
        response = await client.post("/posts", json={**POST, **overrides})
    assert response.status_code == 200
    return response.json()


async def test_create_post(client, request_as):
    location = {"latitude": 37.77, "longitude": -122.42, "city": "San Francisco", "country": "USA"}
    post = await create_post(client, request_as, location=location)
    assert post["author"]["username"] == "a"
    assert post["frontImage"] == "posts/front.jpg"
    assert post["backImage"] == "posts/back.jpg"
    assert post["caption"] == "hi"
    assert post["visibility"] == "public"
    assert post["location"] == location
    assert post["likes"] == []
    assert post["comments"] == []
    assert post["isExpired"] is False

    with request_as(USER_A_ID):
        me = (await client.get("/me")).json()
    assert me["stats"]["totalPosts"] == 1
    assert me["stats"]["streak"] == 1


async def test_create_second_post_same_day(client, request_as):
    await create_post(client, request_as)
    with request_as(USER_A_ID):
        response = await client.post("/posts", json=POST)
    assert response.status_code == 403
    assert response.json()["error"] == "daily_limit_exceeded"
    assert "reset_at" in response.json()["details"]


async def test_create_post_invalid(client, request_as):
    with request_as(USER_A_ID):
        response = await client.post("/posts", json={**POST, "frontImage": "  "})
        assert response.status_code == 400
        assert "frontImage" in response.json()

        response = await client.post("/posts", json={**POST, "location": {"latitude": 100, "longitude": 0}})
        assert response.status_code == 400

        response = await client.post("/posts", json={**POST, "visibility": "everyone"})
        assert response.status_code == 400

        assert (await client.get("/me/capture")).json()["hasPostedToday"] is False


async def test_get_post_visibility(client, request_as):
    post_id = (await create_post(client, request_as))["postId"]
    private_id = (await create_post(client, request_as, user_id=USER_B_ID, visibility="private"))["postId"]

    with request_as(USER_B_ID):
        response = await client.get(f"/posts/{post_id}")
        assert response.status_code == 200
        assert response.json()["postId"] == post_id
        assert (await client.get(f"/posts/{private_id}")).status_code == 200

    with request_as(USER_A_ID):
        assert (await client.get(f"/posts/{private_id}")).status_code == 404

    with request_as(USER_C_ID):
        assert (await client.get(f"/posts/{post_id}")).status_code == 404
        assert (await client.get(f"/posts/{uuid.uuid4()}")).status_code == 404


async def test_like_unlike(client, request_as):
    post_id = (await create_post(client, request_as))["postId"]
    with request_as(USER_B_ID):
        response = await client.post(f"/posts/{post_id}/likes")
        assert response.json() == {"likes": 1, "liked": True}
        response = await client.post(f"/posts/{post_id}/likes")
        assert response.json() == {"likes": 1, "liked": True}

        post = (await client.get(f"/posts/{post_id}")).json()
        assert post["liked"] is True
        assert post["likes"] == [str(USER_B_ID)]

        response = await client.delete(f"/posts/{post_id}/likes")
        assert response.json() == {"likes": 0, "liked": False}

    with request_as(USER_C_ID):
        assert (await client.post(f"/posts/{post_id}/likes")).status_code == 404


async def test_share_unshare(client, request_as):
    post_id = (await create_post(client, request_as))["postId"]
    with request_as(USER_B_ID):
        response = await client.post(f"/posts/{post_id}/shares")
        assert response.json() == {"shares": 1, "shared": True}
        response = await client.delete(f"/posts/{post_id}/shares")
        assert response.json() == {"shares": 0, "shared": False}


async def test_comments(client, request_as):
    post_id = (await create_post(client, request_as))["postId"]
    with request_as(USER_B_ID):
        response = await client.post(f"/posts/{post_id}/comments", json={"text": " nice photo "})
        assert response.status_code == 200
        comment = response.json()
        assert comment["text"] == "nice photo"
        assert comment["username"] == "b"
        assert comment["userId"] == str(USER_B_ID)

        response = await client.post(f"/posts/{post_id}/comments", json={"text": "   "})
        assert response.status_code == 400

    with request_as(USER_A_ID):
        post = (await client.get(f"/posts/{post_id}")).json()
        assert [c["commentId"] for c in post["comments"]] == [comment["commentId"]]


async def test_user_posts(client, request_as):
    await create_post(client, request_as, visibility="private")
    with request_as(USER_A_ID):
        response = await client.get("/users/a/posts")
        assert response.status_code == 200
        assert len(response.json()["posts"]) == 1

    with request_as(USER_B_ID):
        response = await client.get("/users/a")
        assert response.status_code == 200
        assert response.json()["stats"]["totalPosts"] == 1
        assert "email" not in response.json()
        response = await client.get("/users/a/posts")
        assert response.status_code == 200
        assert response.json()["posts"] == []

    with request_as(USER_C_ID):
        assert (await client.get("/users/a/posts")).status_code == 404
        assert (await client.get("/users/nobody")).status_code == 404


async def test_friends_cannot_see_previous_days_posts(client, request_as, session):
    three_days_ago = clock.utc_now() - timedelta(days=3)
    old = await PostStore(db=session).create_post(USER_B_ID, "front.jpg", "back.jpg", now=three_days_ago)
    post_id = str(old.id)

    with request_as(USER_A_ID):
        assert (await client.get(f"/posts/{post_id}")).status_code == 404
        assert (await client.post(f"/posts/{post_id}/likes")).status_code == 404
        assert (await client.post(f"/posts/{post_id}/comments", json={"text": "late"})).status_code == 404
        response = await client.get("/users/b/posts")
        assert response.status_code == 200
        assert response.json()["posts"] == []

    # The author keeps their memories
    with request_as(USER_B_ID):
        assert (await client.get(f"/posts/{post_id}")).status_code == 200
        response = await client.get("/users/b/posts")
        assert [p["postId"] for p in response.json()["posts"]] == [post_id]


async def test_friends_see_todays_posts_on_profile(client, request_as):
    post_id = (await create_post(client, request_as, user_id=USER_B_ID))["postId"]
    with request_as(USER_A_ID):
        response = await client.get("/users/b/posts")
        assert [p["postId"] for p in response.json()["posts"]] == [post_id]
