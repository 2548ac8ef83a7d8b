# Filename: cloudly/routers/files.py
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..auth import get_current_user
from ..config import settings
from ..db import get_session
from ..models import File as FileModel, FileShare, User, utc_now
from ..schemas import (
    CollaboratorIn,
    ConfirmUploadRequest,
    DownloadUrlOut,
    FileEnvelope,
    FileListing,
    FileOut,
    FileShareEnvelope,
    MessageOut,
    PublicFileInfo,
    PublicFileOut,
    RenameRequest,
    ShareToggleRequest,
    StorageOut,
    UploadUrlOut,
    UploadUrlRequest,
)
from ..scopes import ListScope, list_scoped
from ..storage import BlobGateway, StorageError, build_object_key, derive_file_type, get_storage
from ..utils import (
    clean_name,
    download_expiry,
    get_owned_file,
    get_owned_folder,
    get_viewable_file,
    grant_share,
    not_found,
    revoke_share,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


def server_error(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def bad_request(message) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _stream_response(f: FileModel, storage: BlobGateway, cache_control: str) -> StreamingResponse:
    try:
        blob = storage.open_stream(f.s3_key)
    except StorageError:
        logger.exception("Error streaming file %s", f.id)
        raise server_error("Failed to stream file")

    headers = {
        "Content-Disposition": f'inline; filename="{quote(f.name)}"',
        "Cache-Control": cache_control,
    }
    if blob.content_length:
        headers["Content-Length"] = str(blob.content_length)
    return StreamingResponse(
        blob.iter_chunks(settings.stream_chunk_size),
        media_type=blob.content_type,
        headers=headers,
    )


# --- Public routes (no auth) ---
@router.get("/public/{file_id}", response_model=PublicFileOut)
def get_public_file(file_id: str, session: Session = Depends(get_session), storage: BlobGateway = Depends(get_storage)):
    f = session.get(FileModel, file_id)
    if not f:
        raise not_found("File")
    if not f.is_public:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This file is not publicly accessible")
    try:
        download_url = storage.presign_download(f.s3_key, settings.owner_download_expire_seconds)
    except StorageError:
        logger.exception("Error getting public file %s", file_id)
        raise server_error("Failed to get file")
    return PublicFileOut(file=PublicFileInfo.model_validate(f), download_url=download_url)


@router.get("/public/{file_id}/stream")
def stream_public_file(file_id: str, session: Session = Depends(get_session), storage: BlobGateway = Depends(get_storage)):
    f = session.get(FileModel, file_id)
    if not f:
        raise not_found("File")
    if not f.is_public:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This file is not publicly accessible")
    return _stream_response(f, storage, "public, max-age=86400")


# --- Two-phase upload ---
@router.post("/upload-url", response_model=UploadUrlOut)
def get_upload_url(
    data: UploadUrlRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: BlobGateway = Depends(get_storage),
):
    if not data.file_name or not data.file_type:
        raise bad_request("fileName and fileType are required")

    # advisory only: the real size is whatever reaches the bucket
    if current_user.storage_used + (data.file_size or 0) > current_user.storage_limit:
        raise bad_request({
            "message": "Storage limit exceeded",
            "storageUsed": current_user.storage_used,
            "storageLimit": current_user.storage_limit,
        })

    if data.folder_id:
        get_owned_folder(session, data.folder_id, current_user, include_trashed=False)

    s3_key = build_object_key(current_user.id, data.file_name, data.folder_id)
    try:
        upload_url = storage.presign_upload(s3_key, data.file_type, settings.upload_url_expire_seconds)
    except StorageError:
        logger.exception("Error generating upload URL for %s", s3_key)
        raise server_error("Failed to generate upload URL")

    return UploadUrlOut(
        upload_url=upload_url,
        s3_key=s3_key,
        public_url=storage.public_url(s3_key),
        file_type=derive_file_type(data.file_type),
    )


@router.post("/confirm-upload", response_model=FileEnvelope, status_code=status.HTTP_201_CREATED)
def confirm_upload(
    data: ConfirmUploadRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    name = clean_name(data.name)
    if not name or not data.s3_key or not data.s3_url:
        raise bad_request("name, s3Key, and s3Url are required")

    size = data.size or 0
    f = FileModel(
        name=name,
        type=derive_file_type(data.mime_type),
        mime_type=data.mime_type or "",
        size=size,
        s3_key=data.s3_key,
        s3_url=data.s3_url,
        owner_id=current_user.id,
        folder_id=data.folder_id or None,
    )
    try:
        session.add(f)
        # row and quota counter commit together
        session.execute(
            update(User).where(User.id == current_user.id).values(storage_used=User.storage_used + size)
        )
        session.commit()
        session.refresh(f)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error confirming upload of %s", data.s3_key)
        raise server_error("Failed to save file")

    return FileEnvelope(message="File uploaded successfully", file=FileOut.model_validate(f))


@router.get("/storage", response_model=StorageOut)
def get_storage_info(current_user: User = Depends(get_current_user)):
    return StorageOut(storage_used=current_user.storage_used, storage_limit=current_user.storage_limit)


@router.get("", response_model=FileListing)
def list_files(
    folder_id: Optional[str] = Query(default=None, alias="folderId"),
    starred: Optional[str] = None,
    trashed: Optional[str] = None,
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    scope = ListScope.resolve(folder_id=folder_id, search=search, starred=starred, trashed=trashed)
    try:
        files, pagination = list_scoped(session, FileModel, scope, current_user.id, "folder_id", page, limit)
    except SQLAlchemyError:
        logger.exception("Error fetching files")
        raise server_error("Failed to fetch files")
    return FileListing(files=[FileOut.model_validate(f) for f in files], pagination=pagination)


@router.get("/{file_id}/download", response_model=DownloadUrlOut)
def get_download_url(
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: BlobGateway = Depends(get_storage),
):
    f = get_viewable_file(session, file_id, current_user)
    try:
        download_url = storage.presign_download(f.s3_key, download_expiry(f, current_user))
    except StorageError:
        logger.exception("Error getting download URL for %s", file_id)
        raise server_error("Failed to get download URL")
    return DownloadUrlOut(download_url=download_url, file_name=f.name)


@router.get("/{file_id}/stream")
def stream_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: BlobGateway = Depends(get_storage),
):
    f = get_viewable_file(session, file_id, current_user)
    return _stream_response(f, storage, "private, max-age=3600")


@router.patch("/{file_id}/rename", response_model=FileEnvelope)
def rename_file(
    file_id: str,
    data: RenameRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    name = clean_name(data.name)
    if not name:
        raise bad_request("New name is required")
    f = get_owned_file(session, file_id, current_user)
    f.name = name
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileEnvelope(message="File renamed", file=FileOut.model_validate(f))


@router.patch("/{file_id}/star", response_model=FileEnvelope)
def toggle_file_star(file_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    f = get_owned_file(session, file_id, current_user)
    f.is_starred = not f.is_starred
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileEnvelope(message="File starred" if f.is_starred else "File unstarred", file=FileOut.model_validate(f))


@router.patch("/{file_id}/share", response_model=FileShareEnvelope)
def toggle_file_share(
    file_id: str,
    data: ShareToggleRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not isinstance(data.is_public, bool):
        raise bad_request("isPublic must be a boolean")
    f = get_owned_file(session, file_id, current_user)
    f.is_public = data.is_public
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileShareEnvelope(
        message="File is now public" if f.is_public else "File is now private",
        file=FileOut.model_validate(f),
        public_url=f"{settings.frontend_url.rstrip('/')}/public/file/{f.id}" if f.is_public else None,
    )


@router.patch("/{file_id}/restore", response_model=FileEnvelope)
def restore_file(file_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    f = session.get(FileModel, file_id)
    if not f or f.owner_id != current_user.id or not f.is_trashed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found in trash")
    f.is_trashed = False
    f.trashed_at = None
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileEnvelope(message="File restored", file=FileOut.model_validate(f))


@router.delete("/{file_id}", response_model=MessageOut)
def delete_file(
    file_id: str,
    permanent: bool = False,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    storage: BlobGateway = Depends(get_storage),
):
    f = get_owned_file(session, file_id, current_user)

    if not permanent:
        f.is_trashed = True
        f.trashed_at = utc_now()
        session.add(f)
        session.commit()
        return MessageOut(message="File moved to trash")

    size = f.size
    try:
        if f.s3_key:
            storage.delete_object(f.s3_key)
        session.delete(f)
        # subtract usage, never below zero
        session.execute(
            update(User)
            .where(User.id == current_user.id)
            .values(storage_used=case((User.storage_used > size, User.storage_used - size), else_=0))
        )
        session.commit()
    except (StorageError, SQLAlchemyError):
        session.rollback()
        logger.exception("Error deleting file %s", file_id)
        raise server_error("Failed to delete file")
    return MessageOut(message="File permanently deleted")


# --- sharedWith grants ---
@router.post("/{file_id}/collaborators", response_model=FileEnvelope)
def add_file_collaborator(
    file_id: str,
    data: CollaboratorIn,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not data.user_id:
        raise bad_request("userId is required")
    if data.user_id == current_user.id:
        raise bad_request("Cannot share a file with its owner")
    f = get_owned_file(session, file_id, current_user)
    grant_share(f, FileShare, data.user_id, data.permission)
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileEnvelope(message="File shared", file=FileOut.model_validate(f))


@router.delete("/{file_id}/collaborators/{user_id}", response_model=FileEnvelope)
def remove_file_collaborator(
    file_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    f = get_owned_file(session, file_id, current_user)
    if not revoke_share(f, user_id):
        raise not_found("Collaborator")
    session.add(f)
    session.commit()
    session.refresh(f)
    return FileEnvelope(message="Access removed", file=FileOut.model_validate(f))
