# Filename: cloudly/routers/folders.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..auth import get_current_user
from ..db import get_session
from ..models import File as FileModel, Folder, FolderShare, User, utc_now
from ..schemas import CollaboratorIn, FolderCreate, FolderEnvelope, FolderListing, FolderOut, MessageOut, RenameRequest
from ..scopes import ListScope, list_scoped
from ..utils import can_view, clean_name, get_owned_folder, grant_share, not_found, revoke_share

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


def bad_request(message) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("", response_model=FolderEnvelope, status_code=status.HTTP_201_CREATED)
def create_folder(data: FolderCreate, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    name = clean_name(data.name)
    if not name:
        raise bad_request("Folder name is required")
    # parent must be ours and live; checked only here, not on later trashing
    if data.parent_folder_id:
        get_owned_folder(session, data.parent_folder_id, current_user, include_trashed=False, what="Parent folder")

    folder = Folder(owner_id=current_user.id, name=name, parent_folder_id=data.parent_folder_id or None)
    try:
        session.add(folder)
        session.commit()
        session.refresh(folder)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error creating folder %r", name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create folder")
    return FolderEnvelope(message="Folder created successfully", folder=FolderOut.model_validate(folder))


@router.get("", response_model=FolderListing)
def list_folders(
    parent_folder_id: Optional[str] = Query(default=None, alias="parentFolderId"),
    starred: Optional[str] = None,
    trashed: Optional[str] = None,
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    scope = ListScope.resolve(folder_id=parent_folder_id, search=search, starred=starred, trashed=trashed)
    try:
        folders, pagination = list_scoped(session, Folder, scope, current_user.id, "parent_folder_id", page, limit)
    except SQLAlchemyError:
        logger.exception("Error fetching folders")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch folders")
    return FolderListing(folders=[FolderOut.model_validate(d) for d in folders], pagination=pagination)


@router.get("/{folder_id}", response_model=FolderEnvelope)
def get_folder(folder_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    folder = session.get(Folder, folder_id)
    if not folder or not can_view(folder, current_user):
        raise not_found("Folder")
    return FolderEnvelope(folder=FolderOut.model_validate(folder))


@router.patch("/{folder_id}/rename", response_model=FolderEnvelope)
def rename_folder(
    folder_id: str,
    data: RenameRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    name = clean_name(data.name)
    if not name:
        raise bad_request("New name is required")
    folder = get_owned_folder(session, folder_id, current_user)
    folder.name = name
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return FolderEnvelope(message="Folder renamed", folder=FolderOut.model_validate(folder))


@router.patch("/{folder_id}/star", response_model=FolderEnvelope)
def toggle_folder_star(folder_id: str, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    folder = get_owned_folder(session, folder_id, current_user)
    folder.is_starred = not folder.is_starred
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return FolderEnvelope(
        message="Folder starred" if folder.is_starred else "Folder unstarred",
        folder=FolderOut.model_validate(folder),
    )


@router.delete("/{folder_id}", response_model=MessageOut)
def delete_folder(
    folder_id: str,
    permanent: bool = False,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    folder = get_owned_folder(session, folder_id, current_user)

    if not permanent:
        # children keep their own trash state
        folder.is_trashed = True
        folder.trashed_at = utc_now()
        session.add(folder)
        session.commit()
        return MessageOut(message="Folder moved to trash")

    files_count = session.exec(select(func.count()).select_from(FileModel).where(FileModel.folder_id == folder.id)).one()
    subfolders_count = session.exec(
        select(func.count()).select_from(Folder).where(Folder.parent_folder_id == folder.id)
    ).one()
    if files_count or subfolders_count:
        raise bad_request({
            "message": "Folder is not empty. Delete its files and subfolders first.",
            "hasFiles": files_count > 0,
            "hasSubfolders": subfolders_count > 0,
            "filesCount": files_count,
            "subfoldersCount": subfolders_count,
        })

    session.delete(folder)
    session.commit()
    return MessageOut(message="Folder permanently deleted")


@router.post("/{folder_id}/collaborators", response_model=FolderEnvelope)
def add_folder_collaborator(
    folder_id: str,
    data: CollaboratorIn,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not data.user_id:
        raise bad_request("userId is required")
    if data.user_id == current_user.id:
        raise bad_request("Cannot share a folder with its owner")
    folder = get_owned_folder(session, folder_id, current_user)
    grant_share(folder, FolderShare, data.user_id, data.permission)
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return FolderEnvelope(message="Folder shared", folder=FolderOut.model_validate(folder))


@router.delete("/{folder_id}/collaborators/{user_id}", response_model=FolderEnvelope)
def remove_folder_collaborator(
    folder_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    folder = get_owned_folder(session, folder_id, current_user)
    if not revoke_share(folder, user_id):
        raise not_found("Collaborator")
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return FolderEnvelope(message="Access removed", folder=FolderOut.model_validate(folder))
