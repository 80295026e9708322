import uuid

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from daily.core.database.models import UserRow
from daily.core.errors import Conflict, NotFound, ValidationError
from daily.features.users.entities import UserUpdate
from daily.features.users.user_store import UserStore

pytestmark = pytest.mark.asyncio
USER_A_ID = uuid.uuid4()
USER_B_ID = uuid.uuid4()


@pytest_asyncio.fixture(autouse=True, scope="function")
async def setup_fixture(session):
    user_a = UserRow(id=USER_A_ID, username="a", email="a@example.com", bio="hello")
    user_b = UserRow(id=USER_B_ID, username="b", email="b@example.com")
    session.add(user_a)
    session.add(user_b)
    await session.commit()


@pytest.fixture(scope="function")
def user_store(session: AsyncSession) -> UserStore:
    return UserStore(db=session)


async def test_is_username_taken(user_store: UserStore):
    assert await user_store.user_exists(username="a") is True
    assert await user_store.user_exists(username="b") is True
    assert await user_store.user_exists(username="c") is False
    assert await user_store.user_exists(user_id=USER_A_ID) is True
    assert await user_store.user_exists(user_id=uuid.uuid4()) is False


async def test_create_user_has_zeroed_stats(user_store: UserStore):
    user = await user_store.create_user("c", "c@example.com", bio="hi", avatar="avatars/c.jpg")
    assert user.username == "c"
    assert user.email == "c@example.com"
    assert user.bio == "hi"
    assert user.avatar == "avatars/c.jpg"
    assert user.total_posts == 0
    assert user.streak == 0
    assert user.friends_count == 0
    assert user.last_post_day is None
    assert user.created_at.tzinfo is not None


async def test_create_user_username_taken(user_store: UserStore):
    with pytest.raises(Conflict):
        await user_store.create_user("a", "other@example.com")


async def test_create_user_blank_fields(user_store: UserStore):
    with pytest.raises(ValidationError) as exc_info:
        await user_store.create_user("   ", "c@example.com")
    assert exc_info.value.field == "username"
    with pytest.raises(ValidationError) as exc_info:
        await user_store.create_user("c", "")
    assert exc_info.value.field == "email"
    assert await user_store.user_exists(username="c") is False


async def test_create_user_stores_hashed_password(session: AsyncSession, user_store: UserStore):
    user = await user_store.create_user("c", "c@example.com", password="correct horse")
    result = await session.execute(sa.select(UserRow.password_hash).where(UserRow.id == user.id))
    password_hash = result.scalar()
    assert password_hash is not None
    assert password_hash != "correct horse"
    assert "correct horse" not in password_hash


async def test_verify_credentials(user_store: UserStore):
    created = await user_store.create_user("c", "c@example.com", password="correct horse")
    user = await user_store.verify_credentials("c", "correct horse")
    assert user.id == created.id
    with pytest.raises(NotFound):
        await user_store.verify_credentials("c", "wrong horse")
    with pytest.raises(NotFound):
        await user_store.verify_credentials("nobody", "correct horse")
    # Users without a password can't log in
    with pytest.raises(NotFound):
        await user_store.verify_credentials("a", "")


async def test_find_by_username_is_case_sensitive(user_store: UserStore):
    user = await user_store.find_by_username("a")
    assert user.id == USER_A_ID
    with pytest.raises(NotFound):
        await user_store.find_by_username("A")


async def test_get_user_not_found(user_store: UserStore):
    with pytest.raises(NotFound):
        await user_store.get_user(uuid.uuid4())


async def test_get_users(user_store: UserStore):
    missing_id = uuid.uuid4()
    users = await user_store.get_users([USER_A_ID, USER_B_ID, missing_id])
    assert set(users.keys()) == {USER_A_ID, USER_B_ID}
    assert users[USER_A_ID].username == "a"
    assert await user_store.get_users([]) == {}


async def test_update_user_only_touches_supplied_fields(user_store: UserStore):
    updated = await user_store.update_user(USER_A_ID, UserUpdate(bio="new bio"))
    assert updated.bio == "new bio"
    assert updated.username == "a"
    assert updated.email == "a@example.com"
    assert updated.avatar == ""

    updated = await user_store.update_user(USER_A_ID, UserUpdate(username="a2", avatar="avatars/a2.jpg"))
    assert updated.username == "a2"
    assert updated.avatar == "avatars/a2.jpg"
    assert updated.bio == "new bio"
    assert (await user_store.find_by_username("a2")).id == USER_A_ID


async def test_update_user_username_taken(user_store: UserStore):
    with pytest.raises(Conflict):
        await user_store.update_user(USER_A_ID, UserUpdate(username="b"))
    assert (await user_store.get_user(USER_A_ID)).username == "a"


async def test_update_user_same_username(user_store: UserStore):
    updated = await user_store.update_user(USER_A_ID, UserUpdate(username="a", bio="same name"))
    assert updated.username == "a"
    assert updated.bio == "same name"


async def test_update_missing_user(user_store: UserStore):
    with pytest.raises(NotFound):
        await user_store.update_user(uuid.uuid4(), UserUpdate(bio="nobody"))


async def test_user_update_rejects_invalid_fields():
    with pytest.raises(ValueError):
        UserUpdate(username="has space")
    with pytest.raises(ValueError):
        UserUpdate(email="not-an-email")
    with pytest.raises(ValueError):
        UserUpdate(bio="x" * 151)
    with pytest.raises(ValueError):
        UserUpdate.model_validate({"totalPosts": 10})
