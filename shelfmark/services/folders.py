"""Folder create/update/delete with sibling-name and parent-loop checks."""

from __future__ import annotations

from enum import Enum

from flask import current_app

from shelfmark.errors import (
    CycleError,
    DuplicateNameError,
    NotFoundError,
    ValidationError,
    service_boundary,
)
from shelfmark.models import Folder
from shelfmark.services.hierarchy import build_hierarchy, folder_subtree_ids
from shelfmark.services.store import BookmarkRepo, FolderRepo, WriteBatch

_UNSET = object()


class FolderDisposition(str, Enum):
    """What happens to the bookmarks filed directly in a deleted folder."""

    TO_TRASH = "trash"
    TO_ROOT = "root"
    PURGE = "delete"

    @classmethod
    def parse(cls, raw) -> "FolderDisposition":
        if isinstance(raw, cls):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError as exc:
            choices = ", ".join(item.value for item in cls)
            raise ValidationError(
                f"Unknown bookmark disposition. Choose one of: {choices}."
            ) from exc


def _clean_name(name) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Folder name is required.")
    return cleaned


def _check_parent_exists(user_id: int, parent_id: int | None) -> None:
    if parent_id is not None and not FolderRepo.get(user_id, parent_id):
        raise NotFoundError("Parent folder was not found.")


def _check_unique_name(
    user_id: int, parent_id: int | None, name: str, exclude_id: int | None = None
) -> None:
    if parent_id is not None and not FolderRepo.get(user_id, parent_id):
        # An orphaned folder sits among the roots.
        parent_id = None
    if FolderRepo.find_sibling(user_id, parent_id, name, exclude_id=exclude_id):
        raise DuplicateNameError("A folder with this name already exists at this level.")


def _check_no_cycle(user_id: int, folder_id: int, parent_id: int | None) -> None:
    if parent_id is None:
        return
    if parent_id == folder_id:
        raise CycleError("A folder cannot be its own parent.")

    # Soft-deleted folders keep their links, so they take part in the walk.
    folders = FolderRepo.list_all(user_id)
    if parent_id in folder_subtree_ids(folder_id, folders):
        raise CycleError("This would create a circular folder structure.")

    by_id = {folder.id: folder for folder in folders}
    seen: set[int] = set()
    cursor = by_id.get(parent_id)
    while cursor and cursor.id not in seen:
        if cursor.id == folder_id:
            raise CycleError("This would create a circular folder structure.")
        seen.add(cursor.id)
        cursor = by_id.get(cursor.parent_id)


def list_hierarchy(user_id: int):
    return build_hierarchy(FolderRepo.list_active(user_id))


def get_bookmark_count(user_id: int, folder_id: int) -> int:
    return BookmarkRepo.count_in_folder(user_id, folder_id)


@service_boundary("create folder")
def create_folder(user_id: int, name: str, parent_id: int | None = None) -> Folder:
    name = _clean_name(name)
    _check_parent_exists(user_id, parent_id)
    _check_unique_name(user_id, parent_id, name)

    folder = FolderRepo.add(Folder(user_id=user_id, name=name, parent_id=parent_id))
    current_app.logger.info("Folder %s created for user %s", folder.id, user_id)
    return folder


@service_boundary("update folder")
def update_folder(user_id: int, folder_id: int, name=None, parent_id=_UNSET) -> Folder:
    """Rename and/or re-parent a folder.

    ``parent_id`` left at its default keeps the current parent; passing
    ``None`` moves the folder to the top level.
    """
    folder = FolderRepo.get(user_id, folder_id)
    if not folder:
        raise NotFoundError("Folder not found.")

    new_name = folder.name if name is None else _clean_name(name)
    new_parent_id = folder.parent_id if parent_id is _UNSET else parent_id

    if new_parent_id != folder.parent_id:
        _check_no_cycle(user_id, folder.id, new_parent_id)
        _check_parent_exists(user_id, new_parent_id)
    _check_unique_name(user_id, new_parent_id, new_name, exclude_id=folder.id)

    batch = WriteBatch()
    batch.update(folder, name=new_name, parent_id=new_parent_id)
    batch.commit()
    return folder


@service_boundary("delete folder")
def delete_folder(user_id: int, folder_id: int, disposition) -> dict:
    """Soft-delete a folder and apply ``disposition`` to its bookmarks.

    Only bookmarks filed directly in the folder are touched; child folders
    keep their parent reference and surface as top-level folders.
    """
    disposition = FolderDisposition.parse(disposition)
    folder = FolderRepo.get(user_id, folder_id)
    if not folder:
        raise NotFoundError("Folder not found.")

    bookmarks = BookmarkRepo.in_folder(user_id, folder.id)
    batch = WriteBatch()
    for bookmark in bookmarks:
        if disposition is FolderDisposition.TO_TRASH:
            batch.update(bookmark, is_trashed=True)
        elif disposition is FolderDisposition.TO_ROOT:
            batch.update(bookmark, folder_id=None)
        else:
            batch.delete(bookmark)
    batch.update(folder, is_deleted=True)
    batch.commit()

    current_app.logger.info(
        "Folder %s deleted for user %s (%s bookmarks, disposition=%s)",
        folder_id,
        user_id,
        len(bookmarks),
        disposition.value,
    )
    return {
        "folder_id": folder_id,
        "disposition": disposition.value,
        "bookmarks_affected": len(bookmarks),
    }
