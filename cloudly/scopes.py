# Filename: cloudly/scopes.py
"""
Listing scopes shared by the file and folder listings.

A request's filters resolve to exactly one scope kind, in this order:

1. SEARCH   - a non-blank search term; matches names across everything the
              caller owns and ignores any folder argument.
2. FOLDER   - an explicit folder (``folderId`` / ``parentFolderId``).
3. ANYWHERE - no folder but a ``starred`` or ``trashed`` parameter given,
              whatever its value; starred and trash views span every folder.
4. ROOT     - nothing of the above; only items at the top level.

``starred`` and ``trashed`` filter only when their value is ``"true"``, on
top of any kind. Unless trashed is ``"true"``, trashed items are excluded.
"""
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from .schemas import Pagination

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ScopeKind(str, Enum):
    SEARCH = "search"
    FOLDER = "folder"
    ANYWHERE = "anywhere"
    ROOT = "root"


@dataclass(frozen=True)
class ListScope:
    kind: ScopeKind
    starred: bool = False
    trashed: bool = False
    folder_id: Optional[str] = None
    search: Optional[str] = None

    @classmethod
    def resolve(cls, folder_id: Optional[str] = None, search: Optional[str] = None,
                starred: Optional[str] = None, trashed: Optional[str] = None) -> "ListScope":
        """Build the scope from raw query values; absent parameters are None or empty."""
        flags = {"starred": starred == "true", "trashed": trashed == "true"}
        term = search.strip() if search else ""
        if term:
            return cls(ScopeKind.SEARCH, search=term, **flags)
        if folder_id:
            return cls(ScopeKind.FOLDER, folder_id=folder_id, **flags)
        # presence alone lifts root scoping, even for "false"
        if starred or trashed:
            return cls(ScopeKind.ANYWHERE, **flags)
        return cls(ScopeKind.ROOT)

    def apply(self, stmt, model, owner_id: str, parent_field: str):
        """Add this scope's filters to a select over ``model`` (File or Folder)."""
        parent = getattr(model, parent_field)
        stmt = stmt.where(model.owner_id == owner_id)
        if self.kind is ScopeKind.SEARCH:
            stmt = stmt.where(func.lower(col(model.name)).contains(self.search.lower(), autoescape=True))
        elif self.kind is ScopeKind.FOLDER:
            stmt = stmt.where(parent == self.folder_id)
        elif self.kind is ScopeKind.ROOT:
            stmt = stmt.where(col(parent).is_(None))
        if self.starred:
            stmt = stmt.where(col(model.is_starred).is_(True))
        return stmt.where(col(model.is_trashed).is_(self.trashed))


def parse_int(value) -> Optional[int]:
    """Leading integer of a query value ("12abc" -> 12), or None."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def clamp_page(page=None, limit=None):
    # unparsable or zero values fall back to the defaults
    page_num = max(1, parse_int(page) or 1)
    limit_num = min(MAX_PAGE_SIZE, max(1, parse_int(limit) or DEFAULT_PAGE_SIZE))
    return page_num, limit_num


def list_scoped(session: Session, model, scope: ListScope, owner_id: str, parent_field: str,
                page=None, limit=None):
    """Return (items, Pagination) for one page of a scoped listing, newest change first."""
    page_num, limit_num = clamp_page(page, limit)
    skip = (page_num - 1) * limit_num

    stmt = scope.apply(select(model), model, owner_id, parent_field)
    total = session.exec(select(func.count()).select_from(stmt.subquery())).one()
    items = session.exec(
        stmt.order_by(col(model.updated_at).desc(), col(model.created_at).desc()).offset(skip).limit(limit_num)
    ).all()

    return items, Pagination(
        page=page_num,
        limit=limit_num,
        total=total,
        total_pages=math.ceil(total / limit_num),
        has_more=skip + len(items) < total,
    )
