from __future__ import annotations

from flask import current_app

from shelfmark.errors import NotFoundError, ValidationError, service_boundary
from shelfmark.models import (
    BOOKMARK_TYPE_LINK,
    BOOKMARK_TYPE_TEXT,
    BOOKMARK_TYPES,
    Bookmark,
)
from shelfmark.services.common import clean_tags, merge_tags
from shelfmark.services.store import BookmarkRepo, WriteBatch

UNTITLED_NOTE = "Untitled Note"


def _clean_text(value) -> str | None:
    text = (value or "").strip() if isinstance(value, str) else value
    return text or None


def _require_bookmark(user_id: int, bookmark_id: int) -> Bookmark:
    bookmark = BookmarkRepo.get(user_id, bookmark_id)
    if not bookmark:
        raise NotFoundError("Bookmark not found.")
    return bookmark


def _require_targets(user_id: int, bookmark_ids) -> list[Bookmark]:
    ids = list(dict.fromkeys(bookmark_ids or []))
    if not ids:
        raise ValidationError("Select at least one bookmark.")
    rows = BookmarkRepo.get_many(user_id, ids)
    if len(rows) != len(ids):
        found = {row.id for row in rows}
        missing = [bookmark_id for bookmark_id in ids if bookmark_id not in found]
        raise NotFoundError(
            "Some selected bookmarks no longer exist.",
            detail=f"missing ids: {missing}",
        )
    return rows


def _apply_one(user_id: int, bookmark_id: int, **fields) -> Bookmark:
    bookmark = _require_bookmark(user_id, bookmark_id)
    batch = WriteBatch()
    batch.update(bookmark, **fields)
    batch.commit()
    return bookmark


def _apply_bulk(user_id: int, bookmark_ids, **fields) -> int:
    rows = _require_targets(user_id, bookmark_ids)
    batch = WriteBatch()
    for bookmark in rows:
        batch.update(bookmark, **fields)
    return batch.commit()


@service_boundary("save bookmark")
def create_bookmark(
    user_id: int,
    bookmark_type: str = BOOKMARK_TYPE_LINK,
    url: str | None = None,
    text_content: str | None = None,
    title: str | None = None,
    notes: str | None = None,
    folder_id: int | None = None,
    tags=None,
    is_favorite: bool = False,
    is_read: bool = False,
    preview_thumbnail: str | None = None,
) -> Bookmark:
    bookmark_type = (bookmark_type or BOOKMARK_TYPE_LINK).strip().lower()
    if bookmark_type not in BOOKMARK_TYPES:
        raise ValidationError(f"Unknown bookmark type: {bookmark_type}.")

    url = _clean_text(url)
    text_content = _clean_text(text_content)
    if bookmark_type == BOOKMARK_TYPE_LINK:
        if not url:
            raise ValidationError("A URL is required for link bookmarks.")
        text_content = None
    else:
        if not text_content:
            raise ValidationError("Text content is required for text notes.")
        url = None
        preview_thumbnail = None

    default_title = url if bookmark_type == BOOKMARK_TYPE_LINK else UNTITLED_NOTE
    bookmark = Bookmark(
        user_id=user_id,
        type=bookmark_type,
        title=_clean_text(title) or default_title,
        url=url,
        text_content=text_content,
        notes=_clean_text(notes),
        folder_id=folder_id,
        tags=clean_tags(tags),
        is_favorite=bool(is_favorite),
        is_read=bool(is_read),
        preview_thumbnail=_clean_text(preview_thumbnail),
    )
    BookmarkRepo.add(bookmark)
    current_app.logger.info("Bookmark %s saved for user %s", bookmark.id, user_id)
    return bookmark


@service_boundary("update favorite status")
def toggle_favorite(user_id: int, bookmark_id: int, value: bool) -> Bookmark:
    return _apply_one(user_id, bookmark_id, is_favorite=bool(value))


@service_boundary("update read status")
def toggle_read(user_id: int, bookmark_id: int, value: bool) -> Bookmark:
    return _apply_one(user_id, bookmark_id, is_read=bool(value))


@service_boundary("move bookmark")
def move_to_folder(user_id: int, bookmark_id: int, folder_id: int | None) -> Bookmark:
    return _apply_one(user_id, bookmark_id, folder_id=folder_id)


@service_boundary("trash bookmark")
def trash(user_id: int, bookmark_id: int) -> Bookmark:
    return _apply_one(user_id, bookmark_id, is_trashed=True)


@service_boundary("restore bookmark")
def restore(user_id: int, bookmark_id: int) -> Bookmark:
    return _apply_one(user_id, bookmark_id, is_trashed=False)


@service_boundary("delete bookmark")
def delete_permanently(user_id: int, bookmark_id: int) -> int:
    bookmark = _require_bookmark(user_id, bookmark_id)
    batch = WriteBatch()
    batch.delete(bookmark)
    batch.commit()
    return bookmark_id


@service_boundary("move bookmarks")
def bulk_move_to_folder(user_id: int, bookmark_ids, folder_id: int | None) -> int:
    return _apply_bulk(user_id, bookmark_ids, folder_id=folder_id)


@service_boundary("trash bookmarks")
def bulk_trash(user_id: int, bookmark_ids) -> int:
    return _apply_bulk(user_id, bookmark_ids, is_trashed=True)


@service_boundary("update read status")
def bulk_set_read(user_id: int, bookmark_ids, value: bool) -> int:
    return _apply_bulk(user_id, bookmark_ids, is_read=bool(value))


@service_boundary("update favorite status")
def bulk_set_favorite(user_id: int, bookmark_ids, value: bool) -> int:
    return _apply_bulk(user_id, bookmark_ids, is_favorite=bool(value))


@service_boundary("add tags to bookmarks")
def bulk_add_tags(user_id: int, bookmark_ids, new_tags) -> int:
    additions = clean_tags(new_tags)
    if not additions:
        raise ValidationError("Provide at least one tag.")
    rows = _require_targets(user_id, bookmark_ids)
    batch = WriteBatch()
    for bookmark in rows:
        batch.update(bookmark, tags=merge_tags(bookmark.tags, additions))
    return batch.commit()
