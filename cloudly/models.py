# Filename: cloudly/models.py
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import BigInteger
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
import uuid
from .config import settings


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    # timestamp columns only accept timezone-aware values
    return datetime.now(timezone.utc)


class FileType(str, Enum):
    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    XLS = "xls"
    XLSX = "xlsx"
    PPT = "ppt"
    PPTX = "pptx"
    TXT = "txt"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    OTHER = "other"


class SharePermission(str, Enum):
    VIEW = "view"
    EDIT = "edit"


class User(SQLModel, table=True):
    # id is issued by the identity provider, never generated here
    id: str = Field(primary_key=True)
    email: Optional[str] = Field(default=None, index=True, unique=True)
    first_name: str
    last_name: str = ""
    username: str = Field(index=True, unique=True)
    avatar_url: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # quota info (bytes)
    storage_used: int = Field(default=0, nullable=False, sa_type=BigInteger)
    storage_limit: int = Field(default=settings.default_storage_limit_bytes, nullable=False, sa_type=BigInteger)


class FolderShare(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    folder_id: str = Field(foreign_key="folder.id", index=True)
    # weak reference, no foreign key to user
    user_id: str = Field(index=True)
    permission: SharePermission = Field(default=SharePermission.VIEW)


class FileShare(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    file_id: str = Field(foreign_key="file.id", index=True)
    user_id: str = Field(index=True)
    permission: SharePermission = Field(default=SharePermission.VIEW)


class Folder(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    owner_id: str = Field(foreign_key="user.id", index=True)
    parent_folder_id: Optional[str] = Field(default=None, foreign_key="folder.id", index=True)
    is_starred: bool = False
    is_trashed: bool = Field(default=False, index=True)
    trashed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    shared_with: List[FolderShare] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "selectin"}
    )


class File(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    type: FileType = Field(default=FileType.OTHER)
    mime_type: str = ""
    size: int = Field(default=0, sa_type=BigInteger)
    s3_key: str = Field(index=True)  # unique by construction, not enforced
    s3_url: str
    owner_id: str = Field(foreign_key="user.id", index=True)
    folder_id: Optional[str] = Field(default=None, foreign_key="folder.id", index=True)
    is_starred: bool = False
    is_trashed: bool = Field(default=False, index=True)
    is_public: bool = False
    trashed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    shared_with: List[FileShare] = Relationship(
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "selectin"}
    )
