# Filename: cloudly/utils.py
from typing import Optional, Union

from fastapi import HTTPException, status
from sqlmodel import Session

from .config import settings
from .models import File, Folder, User


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def can_view(item: Union[File, Folder], user: User) -> bool:
    """Owner, or present in the item's sharedWith list."""
    if item.owner_id == user.id:
        return True
    return any(share.user_id == user.id for share in item.shared_with)


def download_expiry(file: File, user: User) -> int:
    """Owners and public files get long-lived links, shared viewers short-lived ones."""
    if file.owner_id == user.id or file.is_public:
        return settings.owner_download_expire_seconds
    return settings.shared_download_expire_seconds


def get_viewable_file(session: Session, file_id: str, user: User) -> File:
    f = session.get(File, file_id)
    if f is None or not can_view(f, user):
        raise not_found("File")
    return f


def get_owned_file(session: Session, file_id: str, user: User) -> File:
    # non-owners get 404 as well, even when shared with them
    f = session.get(File, file_id)
    if f is None or f.owner_id != user.id:
        raise not_found("File")
    return f


def get_owned_folder(session: Session, folder_id: str, user: User, include_trashed: bool = True,
                     what: str = "Folder") -> Folder:
    folder = session.get(Folder, folder_id)
    if folder is None or folder.owner_id != user.id:
        raise not_found(what)
    if not include_trashed and folder.is_trashed:
        raise not_found(what)
    return folder


def clean_name(name: Optional[str]) -> str:
    return name.strip() if name else ""


def grant_share(item: Union[File, Folder], share_model, user_id: str, permission):
    """Insert or update the caller-owned item's grant for ``user_id``."""
    for existing in item.shared_with:
        if existing.user_id == user_id:
            existing.permission = permission
            return existing
    grant = share_model(user_id=user_id, permission=permission)
    item.shared_with.append(grant)
    return grant


def revoke_share(item: Union[File, Folder], user_id: str) -> bool:
    for existing in item.shared_with:
        if existing.user_id == user_id:
            item.shared_with.remove(existing)
            return True
    return False
