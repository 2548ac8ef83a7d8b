# Filename: cloudly/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional, List
from datetime import datetime

from .models import FileType, SharePermission


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class MessageOut(CamelModel):
    message: str


class ShareOut(CamelModel):
    user_id: str
    permission: SharePermission


class CollaboratorIn(CamelModel):
    user_id: Optional[str] = None
    permission: SharePermission = SharePermission.VIEW


class FileOut(CamelModel):
    id: str
    name: str
    type: FileType
    mime_type: str
    size: int
    s3_key: str
    s3_url: str
    owner_id: str
    folder_id: Optional[str]
    is_starred: bool
    is_trashed: bool
    is_public: bool
    trashed_at: Optional[datetime]
    shared_with: List[ShareOut] = []
    created_at: datetime
    updated_at: datetime


class FolderOut(CamelModel):
    id: str
    name: str
    owner_id: str
    parent_folder_id: Optional[str]
    is_starred: bool
    is_trashed: bool
    trashed_at: Optional[datetime]
    shared_with: List[ShareOut] = []
    created_at: datetime
    updated_at: datetime


class FileEnvelope(CamelModel):
    message: Optional[str] = None
    file: FileOut


class FileShareEnvelope(FileEnvelope):
    public_url: Optional[str] = None


class FolderEnvelope(CamelModel):
    message: Optional[str] = None
    folder: FolderOut


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class FileListing(CamelModel):
    files: List[FileOut]
    pagination: Pagination


class FolderListing(CamelModel):
    folders: List[FolderOut]
    pagination: Pagination


# Request bodies keep every field optional; handlers report missing ones
class UploadUrlRequest(CamelModel):
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    folder_id: Optional[str] = None


class UploadUrlOut(CamelModel):
    upload_url: str
    s3_key: str
    public_url: str
    file_type: FileType


class ConfirmUploadRequest(CamelModel):
    name: Optional[str] = None
    s3_key: Optional[str] = None
    s3_url: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)
    folder_id: Optional[str] = None


class RenameRequest(CamelModel):
    name: Optional[str] = None


class ShareToggleRequest(CamelModel):
    # checked by the handler: only a real JSON boolean is accepted
    is_public: Any = None


class FolderCreate(CamelModel):
    name: Optional[str] = None
    parent_folder_id: Optional[str] = None


class DownloadUrlOut(CamelModel):
    download_url: str
    file_name: str


class PublicFileInfo(CamelModel):
    id: str
    name: str
    type: FileType
    mime_type: str
    size: int


class PublicFileOut(CamelModel):
    file: PublicFileInfo
    download_url: str


class StorageOut(CamelModel):
    storage_used: int
    storage_limit: int
