import uuid

import pytest
import pytest_asyncio

from daily.core.database.models import UserRow

pytestmark = pytest.mark.asyncio
USER_A_ID = uuid.uuid4()
USER_B_ID = uuid.uuid4()
USER_C_ID = uuid.uuid4()


@pytest_asyncio.fixture(autouse=True, scope="function")
async def setup_fixture(session):
    session.add(UserRow(id=USER_A_ID, username="a", email="a@example.com"))
    session.add(UserRow(id=USER_B_ID, username="b", email="b@example.com"))
    session.add(UserRow(id=USER_C_ID, username="c", email="c@example.com"))
    await session.commit()


async def send_request(client, request_as, from_id, to_username) -> str:
    with request_as(from_id):
        response = await client.post("/friends/requests", json={"username": to_username})
    assert response.status_code == 200
    return response.json()["request"]["friendId"]


async def test_send_and_accept(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")

    with request_as(USER_A_ID):
        response = await client.get("/friends/requests/sent")
        assert [r["user"]["username"] for r in response.json()["requests"]] == ["b"]

    with request_as(USER_B_ID):
        response = await client.get("/friends/requests")
        requests = response.json()["requests"]
        assert [r["friendId"] for r in requests] == [request_id]
        assert requests[0]["user"]["username"] == "a"
        assert requests[0]["status"] == "pending"

        response = await client.post(f"/friends/requests/{request_id}/accept")
        assert response.status_code == 200
        assert response.json()["request"]["status"] == "accepted"

        response = await client.get("/friends")
        friends = response.json()["friends"]
        assert [f["user"]["username"] for f in friends] == ["a"]
        assert friends[0]["user"]["stats"]["friendsCount"] == 1

    with request_as(USER_A_ID):
        response = await client.get("/friends")
        assert [f["user"]["username"] for f in response.json()["friends"]] == ["b"]
        assert (await client.get("/me")).json()["stats"]["friendsCount"] == 1


async def test_send_request_errors(client, request_as):
    with request_as(USER_A_ID):
        response = await client.post("/friends/requests", json={"username": "a"})
        assert response.status_code == 400
        assert response.json()["error"] == "self_reference"

        response = await client.post("/friends/requests", json={"username": "nobody"})
        assert response.status_code == 404

        assert (await client.post("/friends/requests", json={"username": "b"})).status_code == 200
        response = await client.post("/friends/requests", json={"username": "b"})
        assert response.status_code == 409
        assert response.json()["detail"] == "Friend request already sent"


async def test_only_recipient_can_accept(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")
    with request_as(USER_A_ID):
        response = await client.post(f"/friends/requests/{request_id}/accept")
        assert response.status_code == 403
    with request_as(USER_C_ID):
        response = await client.post(f"/friends/requests/{request_id}/accept")
        assert response.status_code == 404
        response = await client.post(f"/friends/requests/{request_id}/reject")
        assert response.status_code == 404


async def test_reject_then_send_again(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")
    with request_as(USER_B_ID):
        response = await client.post(f"/friends/requests/{request_id}/reject")
        assert response.status_code == 200
        assert (await client.get("/friends/requests")).json()["requests"] == []
    await send_request(client, request_as, USER_A_ID, "b")


async def test_requester_can_cancel(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")
    with request_as(USER_A_ID):
        response = await client.post(f"/friends/requests/{request_id}/reject")
        assert response.status_code == 200
        assert (await client.get("/friends/requests/sent")).json()["requests"] == []


async def test_remove_friend(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")
    with request_as(USER_B_ID):
        response = await client.delete(f"/friends/{request_id}")
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_state"
        assert (await client.post(f"/friends/requests/{request_id}/accept")).status_code == 200

    with request_as(USER_A_ID):
        response = await client.delete(f"/friends/{request_id}")
        assert response.status_code == 200
        assert (await client.get("/friends")).json()["friends"] == []
        assert (await client.get("/me")).json()["stats"]["friendsCount"] == 0
        assert (await client.delete(f"/friends/{request_id}")).status_code == 404


async def test_reject_accepted_request_unfriends(client, request_as):
    request_id = await send_request(client, request_as, USER_A_ID, "b")
    with request_as(USER_B_ID):
        assert (await client.post(f"/friends/requests/{request_id}/accept")).status_code == 200
        response = await client.post(f"/friends/requests/{request_id}/reject")
        assert response.status_code == 200
        assert (await client.get("/friends")).json()["friends"] == []
        assert (await client.get("/me")).json()["stats"]["friendsCount"] == 0
        assert (await client.post(f"/friends/requests/{request_id}/reject")).status_code == 404
