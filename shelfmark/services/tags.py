from __future__ import annotations

from shelfmark.errors import DuplicateNameError, ValidationError, service_boundary
from shelfmark.services.colors import tag_color
from shelfmark.services.common import merge_tags
from shelfmark.services.store import BookmarkRepo, WriteBatch


def collect_tags(bookmarks) -> list[str]:
    names: set[str] = set()
    for bookmark in bookmarks:
        if bookmark.is_trashed:
            continue
        names.update(tag for tag in (bookmark.tags or []) if tag)
    return sorted(names)


def list_tags(user_id: int) -> list[dict]:
    return [
        {"id": name, "name": name, "color": tag_color(name)}
        for name in collect_tags(BookmarkRepo.active_for_user(user_id))
    ]


@service_boundary("rename tag")
def rename_tag(user_id: int, old_name: str, new_name: str) -> int:
    old_name = (old_name or "").strip()
    new_name = (new_name or "").strip()
    if not old_name or not new_name:
        raise ValidationError("Both the current and the new tag name are required.")

    existing = collect_tags(BookmarkRepo.active_for_user(user_id))
    if any(
        name.lower() == new_name.lower() and name != old_name for name in existing
    ):
        raise DuplicateNameError(f'Tag "{new_name}" already exists')

    batch = WriteBatch()
    for bookmark in BookmarkRepo.all_for_user(user_id):
        tags = list(bookmark.tags or [])
        if old_name not in tags:
            continue
        renamed = [new_name if tag == old_name else tag for tag in tags]
        batch.update(bookmark, tags=merge_tags(renamed, []))
    return batch.commit()


@service_boundary("delete tag")
def delete_tag(user_id: int, name: str) -> int:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tag name is required.")

    batch = WriteBatch()
    for bookmark in BookmarkRepo.all_for_user(user_id):
        tags = list(bookmark.tags or [])
        if name not in tags:
            continue
        batch.update(bookmark, tags=[tag for tag in tags if tag != name])
    return batch.commit()
