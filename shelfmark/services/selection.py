from __future__ import annotations

from shelfmark.errors import Result, ValidationError
from shelfmark.services import bookmarks as bookmark_service

SESSION_MODE_KEY = "selection_mode"
SESSION_IDS_KEY = "selected_ids"


class SelectionManager:
    """Tracks the bookmarks a user is about to act on in bulk.

    Two states: inactive (nothing tracked) and active. Leaving the active
    state clears the selection. Bulk actions clear it only when they
    succeed, so a failed action can be retried on the same selection.
    """

    def __init__(self, user_id: int, active: bool = False, selected_ids=None):
        self.user_id = user_id
        self.active = active
        self._selected: dict[int, None] = dict.fromkeys(selected_ids or [])

    @classmethod
    def from_session(cls, session, user_id: int) -> "SelectionManager":
        return cls(
            user_id,
            active=bool(session.get(SESSION_MODE_KEY, False)),
            selected_ids=session.get(SESSION_IDS_KEY) or [],
        )

    def save(self, session) -> None:
        session[SESSION_MODE_KEY] = self.active
        session[SESSION_IDS_KEY] = self.selected_ids

    @property
    def selected_ids(self) -> list[int]:
        return list(self._selected)

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, bookmark_id) -> bool:
        return bookmark_id in self._selected

    def enter_selection_mode(self) -> None:
        self.active = True

    def exit_selection_mode(self) -> None:
        self.active = False
        self._selected.clear()

    def toggle(self, bookmark) -> bool:
        """Flip one bookmark in or out of the selection; True if now selected."""
        bookmark_id = getattr(bookmark, "id", bookmark)
        self.active = True
        if bookmark_id in self._selected:
            del self._selected[bookmark_id]
            return False
        self._selected[bookmark_id] = None
        return True

    def select_all(self, visible_bookmarks) -> None:
        self.active = True
        self._selected = dict.fromkeys(
            getattr(bookmark, "id", bookmark) for bookmark in visible_bookmarks
        )

    def clear(self) -> None:
        self._selected.clear()

    def _run(self, action, *args) -> Result:
        if not self._selected:
            return Result.failure(ValidationError("Select at least one bookmark."))
        result = action(self.user_id, self.selected_ids, *args)
        if result.ok:
            self.clear()
        return result

    def bulk_move_to_folder(self, folder_id: int | None) -> Result:
        return self._run(bookmark_service.bulk_move_to_folder, folder_id)

    def bulk_trash(self) -> Result:
        return self._run(bookmark_service.bulk_trash)

    def bulk_add_tags(self, tags) -> Result:
        return self._run(bookmark_service.bulk_add_tags, tags)

    def bulk_set_read(self, value: bool) -> Result:
        return self._run(bookmark_service.bulk_set_read, value)

    def bulk_set_favorite(self, value: bool) -> Result:
        return self._run(bookmark_service.bulk_set_favorite, value)

    def as_dict(self) -> dict:
        return {
            "active": self.active,
            "selected_ids": self.selected_ids,
            "count": len(self._selected),
        }
