"""Test configuration and fixtures for the Cloudly API."""

import os

os.environ.setdefault("CLOUDLY_DATABASE_URL", "sqlite://")
os.environ.setdefault("CLOUDLY_IDENTITY_JWT_KEY", "test-signing-key")
os.environ.setdefault("CLOUDLY_JWT_ALGORITHM", "HS256")
os.environ.setdefault("CLOUDLY_FRONTEND_URL", "http://localhost:3000")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, Session, create_engine  # noqa: E402

from cloudly.config import settings  # noqa: E402
from cloudly.db import get_session  # noqa: E402
from cloudly.identity import IdentityProviderError, get_identity_client  # noqa: E402
from cloudly.main import app  # noqa: E402
from cloudly.models import File, FileShare, FileType, Folder, User  # noqa: E402
from cloudly.storage import BlobStream, StorageError, get_storage  # noqa: E402

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024


class FakeBody:
    def __init__(self, data: bytes):
        self.data = data
        self.closed = False

    def iter_chunks(self, chunk_size):
        for i in range(0, len(self.data), chunk_size):
            yield self.data[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeBlobGateway:
    """In-memory stand-in for the S3 gateway, recording every call."""

    def __init__(self):
        self.objects = {}
        self.presigned = []
        self.deleted = []
        self.fail = False

    def presign_upload(self, key, content_type, expires_in=3600):
        if self.fail:
            raise StorageError("presign failed")
        self.presigned.append(("put", key, expires_in))
        return f"https://fake-bucket.test/{key}?method=PUT&expires={expires_in}"

    def presign_download(self, key, expires_in):
        if self.fail:
            raise StorageError("presign failed")
        self.presigned.append(("get", key, expires_in))
        return f"https://fake-bucket.test/{key}?expires={expires_in}"

    def delete_object(self, key):
        if self.fail:
            raise StorageError("delete failed")
        self.deleted.append(key)
        self.objects.pop(key, None)

    def open_stream(self, key):
        if self.fail or key not in self.objects:
            raise StorageError("no such key")
        data, content_type = self.objects[key]
        return BlobStream(body=FakeBody(data), content_type=content_type, content_length=len(data))

    def public_url(self, key):
        return f"https://fake-bucket.s3.test.amazonaws.com/{key}"


class FakeIdentityClient:
    def __init__(self):
        self.profiles = {}
        self.error: Optional[IdentityProviderError] = None
        self.calls = []

    def fetch_profile(self, user_id):
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        return self.profiles[user_id]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage():
    return FakeBlobGateway()


@pytest.fixture
def identity():
    return FakeIdentityClient()


@pytest.fixture
def client(engine, storage, identity):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_identity_client] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())}
    return jwt.encode(claims, settings.identity_jwt_key, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def create_user(db: Session, user_id: str = "user_alice", storage_used: int = 0, storage_limit: int = 15 * GIB) -> User:
    user = User(
        id=user_id,
        email=f"{user_id}@example.com",
        first_name=user_id.split("_")[-1].title(),
        username=user_id,
        storage_used=storage_used,
        storage_limit=storage_limit,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_folder(db: Session, owner: User, name: str = "Projects", parent: Folder = None, **fields) -> Folder:
    folder = Folder(name=name, owner_id=owner.id, parent_folder_id=parent.id if parent else None, **fields)
    db.add(folder)
    db.commit()
    db.refresh(folder)
    return folder


def create_file(db: Session, owner: User, name: str = "report.pdf", folder: Folder = None, size: int = 1024,
                shared_with=(), **fields) -> File:
    f = File(
        name=name,
        type=fields.pop("type", FileType.PDF),
        mime_type=fields.pop("mime_type", "application/pdf"),
        size=size,
        s3_key=fields.pop("s3_key", f"users/{owner.id}/1700000000000-{name}"),
        s3_url=fields.pop("s3_url", f"https://fake-bucket.s3.test.amazonaws.com/users/{owner.id}/{name}"),
        owner_id=owner.id,
        folder_id=folder.id if folder else None,
        **fields,
    )
    for user_id in shared_with:
        f.shared_with.append(FileShare(user_id=user_id))
    db.add(f)
    db.commit()
    db.refresh(f)
    return f


@pytest.fixture
def alice(db):
    return create_user(db, "user_alice")


@pytest.fixture
def bob(db):
    return create_user(db, "user_bob")
