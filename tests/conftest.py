# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_CLOUD_NAME"] = ""

from chirp.core.security import create_access_token, hash_password
from chirp.db.session import Database
from chirp.db.session import get_db as app_get_session
from chirp.main import app as fastapi_app
from chirp.models import Media, MediaType, Post, User
from chirp.services.storage import StorageError, StoredMedia, get_storage

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse-battery"

# bcrypt is slow on purpose; hash once for every factory-made user.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)
_USER_COUNTER = count(1)
_BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class FakeStorage:
    """In-memory stand-in for the media storage client."""

    enabled = True

    def __init__(self) -> None:
        self.uploads: list[tuple[str, StoredMedia]] = []
        self.destroyed: list[str] = []
        self.fail_upload = False
        self.fail_destroy = False
        self.fail_destroy_ids: set[str] = set()
        # Called at the start of every storage call, e.g. to inspect DB state.
        self.on_call: Callable[[], None] | None = None
        self._ids = count(1)

    async def upload(
        self, content: bytes, *, filename: str, content_type: str, folder: str
    ) -> StoredMedia:
        if self.on_call is not None:
            self.on_call()
        if self.fail_upload:
            raise StorageError("Media storage request timed out")
        number = next(self._ids)
        stored = StoredMedia(
            url=f"https://media.test/{folder}/{number}-{filename}",
            storage_id=f"{folder}/{number}",
        )
        self.uploads.append((folder, stored))
        return stored

    async def destroy(self, storage_id: str) -> None:
        if self.on_call is not None:
            self.on_call()
        if self.fail_destroy or storage_id in self.fail_destroy_ids:
            raise StorageError("Media storage could not destroy the object")
        self.destroyed.append(storage_id)

    async def close(self) -> None:
        return None


@pytest.fixture()
def database() -> Iterator[Database]:
    database = Database(TEST_DB_URL)
    database.create_tables()
    try:
        yield database
    finally:
        database.drop_tables()
        database.dispose()


@pytest.fixture()
def db_session(database: Database) -> Iterator[Session]:
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, storage: FakeStorage
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def lenient_client(app: FastAPI) -> Iterator[TestClient]:
    """Client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, base_url="http://test", raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture()
def user_factory(db_session: Session) -> Callable[..., User]:
    def _create(username: str | None = None, **fields) -> User:
        number = next(_USER_COUNTER)
        username = username or f"user{number}"
        user = User(
            email=fields.pop("email", f"{username}{number}@example.com"),
            handler=fields.pop("handler", f"{username}_{number}"),
            username=username,
            password_hash=_PASSWORD_HASH,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create


@pytest.fixture()
def post_factory(db_session: Session) -> Callable[..., Post]:
    offsets = count(1)

    def _create(
        author: User,
        content: str | None = "hello",
        *,
        parent: Post | None = None,
        image_storage_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Post:
        post = Post(
            content=content,
            author_id=author.id,
            parent_id=parent.id if parent is not None else None,
            created_at=created_at or _BASE_TIME + timedelta(minutes=next(offsets)),
        )
        if image_storage_id is not None:
            post.media.append(
                Media(
                    url=f"https://media.test/{image_storage_id}.png",
                    storage_id=image_storage_id,
                    type=MediaType.IMAGE,
                )
            )
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _create


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def test_user(user_factory: Callable[..., User]) -> User:
    return user_factory("alice", handler="alice", email="alice@example.com")


@pytest.fixture()
def other_user(user_factory: Callable[..., User]) -> User:
    return user_factory("bob", handler="bob", email="bob@example.com")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    return bearer(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    return bearer(other_user)


@pytest.fixture()
def test_post(post_factory: Callable[..., Post], other_user: User) -> Post:
    """A top-level post written by ``other_user``."""
    return post_factory(other_user, "Post by bob")


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build bearer headers for any user."""
    return bearer
