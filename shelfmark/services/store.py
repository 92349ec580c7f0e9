"""Typed, user-scoped access to bookmarks and folders.

Routes and services never query models directly; they go through the
repositories below, and multi-record writes go through ``WriteBatch`` so
they commit as one transaction.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from shelfmark.extensions import db
from shelfmark.models import Bookmark, Folder, utcnow

VIEW_ALL = "all"
VIEW_FAVORITES = "favorites"
VIEW_RECENT = "recent"
VIEW_TRASH = "trash"
VIEW_FOLDER = "folder"
VIEW_TAG = "tag"

BOOKMARK_VIEWS = {
    VIEW_ALL,
    VIEW_FAVORITES,
    VIEW_RECENT,
    VIEW_TRASH,
    VIEW_FOLDER,
    VIEW_TAG,
}

RECENT_TIME_FRAMES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_RECENT_TIME_FRAME = "24h"


class WriteBatch:
    """Collects updates and deletes and applies them all-or-nothing."""

    def __init__(self, chunk_size: int | None = None):
        self.chunk_size = chunk_size or current_app.config["MAX_BATCH_SIZE"]
        self._operations: list[tuple[str, object, dict]] = []

    def __len__(self) -> int:
        return len(self._operations)

    def update(self, record, **fields) -> None:
        fields.setdefault("updated_at", utcnow())
        self._operations.append(("update", record, fields))

    def delete(self, record) -> None:
        self._operations.append(("delete", record, {}))

    def commit(self) -> int:
        """Apply every operation in one transaction and return how many ran.

        Operations are flushed ``chunk_size`` at a time; the commit only
        happens once all chunks have flushed. Any failure rolls the whole
        transaction back before the error propagates.
        """
        try:
            for start in range(0, len(self._operations), self.chunk_size):
                for action, record, fields in self._operations[
                    start : start + self.chunk_size
                ]:
                    if action == "delete":
                        db.session.delete(record)
                        continue
                    for name, value in fields.items():
                        setattr(record, name, value)
                db.session.flush()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return len(self._operations)


class FolderRepo:
    @staticmethod
    def get(user_id: int, folder_id: int, include_deleted: bool = False):
        query = Folder.query.filter_by(id=folder_id, user_id=user_id)
        if not include_deleted:
            query = query.filter(Folder.is_deleted.is_(False))
        return query.first()

    @staticmethod
    def list_active(user_id: int) -> list[Folder]:
        return (
            Folder.query.filter_by(user_id=user_id)
            .filter(Folder.is_deleted.is_(False))
            .order_by(Folder.created_at.asc(), Folder.id.asc())
            .all()
        )

    @staticmethod
    def list_all(user_id: int) -> list[Folder]:
        return Folder.query.filter_by(user_id=user_id).order_by(Folder.id.asc()).all()

    @staticmethod
    def find_sibling(
        user_id: int, parent_id: int | None, name: str, exclude_id: int | None = None
    ):
        query = Folder.query.filter_by(user_id=user_id, name=name).filter(
            Folder.is_deleted.is_(False)
        )
        if parent_id is None:
            # Folders whose parent was soft-deleted are listed as roots.
            active_ids = [folder.id for folder in FolderRepo.list_active(user_id)]
            query = query.filter(
                db.or_(Folder.parent_id.is_(None), Folder.parent_id.not_in(active_ids))
            )
        else:
            query = query.filter(Folder.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first()

    @staticmethod
    def add(folder: Folder) -> Folder:
        db.session.add(folder)
        db.session.commit()
        return folder


class BookmarkRepo:
    @staticmethod
    def get(user_id: int, bookmark_id: int):
        return Bookmark.query.filter_by(id=bookmark_id, user_id=user_id).first()

    @staticmethod
    def get_many(user_id: int, bookmark_ids: list[int]) -> list[Bookmark]:
        if not bookmark_ids:
            return []
        rows = (
            Bookmark.query.filter_by(user_id=user_id)
            .filter(Bookmark.id.in_(bookmark_ids))
            .all()
        )
        by_id = {row.id: row for row in rows}
        return [by_id[bookmark_id] for bookmark_id in bookmark_ids if bookmark_id in by_id]

    @staticmethod
    def in_folder(user_id: int, folder_id: int) -> list[Bookmark]:
        return Bookmark.query.filter_by(user_id=user_id, folder_id=folder_id).all()

    @staticmethod
    def count_in_folder(user_id: int, folder_id: int) -> int:
        return Bookmark.query.filter_by(user_id=user_id, folder_id=folder_id).count()

    @staticmethod
    def all_for_user(user_id: int) -> list[Bookmark]:
        return Bookmark.query.filter_by(user_id=user_id).all()

    @staticmethod
    def active_for_user(user_id: int) -> list[Bookmark]:
        return (
            Bookmark.query.filter_by(user_id=user_id)
            .filter(Bookmark.is_trashed.is_(False))
            .all()
        )

    @staticmethod
    def list_view(
        user_id: int,
        view: str = VIEW_ALL,
        folder_id: int | None = None,
        tag: str | None = None,
        time_frame: str | None = None,
    ) -> list[Bookmark]:
        query = Bookmark.query.filter_by(user_id=user_id)
        if view == VIEW_TRASH:
            return (
                query.filter(Bookmark.is_trashed.is_(True))
                .order_by(Bookmark.updated_at.desc(), Bookmark.id.desc())
                .all()
            )

        query = query.filter(Bookmark.is_trashed.is_(False))
        if view == VIEW_FAVORITES:
            return (
                query.filter(Bookmark.is_favorite.is_(True))
                .order_by(Bookmark.updated_at.desc(), Bookmark.id.desc())
                .all()
            )
        if view == VIEW_RECENT:
            delta = RECENT_TIME_FRAMES.get(
                time_frame or "", RECENT_TIME_FRAMES[DEFAULT_RECENT_TIME_FRAME]
            )
            query = query.filter(Bookmark.created_at >= utcnow() - delta)
        elif view == VIEW_FOLDER:
            query = query.filter(Bookmark.folder_id == folder_id)

        rows = query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc()).all()
        if view == VIEW_TAG:
            # JSON containment is not portable across backends.
            rows = [row for row in rows if tag in (row.tags or [])]
        return rows

    @staticmethod
    def add(bookmark: Bookmark) -> Bookmark:
        db.session.add(bookmark)
        db.session.commit()
        return bookmark
