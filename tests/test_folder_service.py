import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shelfmark.errors import CycleError, DuplicateNameError, NotFoundError, StoreError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, Folder
from shelfmark.services import bookmarks as bookmark_service
from shelfmark.services import folders as folder_service


def _bookmark(user_id, folder_id, title):
    result = bookmark_service.create_bookmark(
        user_id, url=f"https://{title}.example", title=title, folder_id=folder_id
    )
    assert result.ok
    return result.value.id


def _names(user_id):
    return [(node.name, node.level) for node in folder_service.list_hierarchy(user_id)]


def test_create_nested_folders(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        projects = folder_service.create_folder(user_id, "Projects", work.id)

        assert projects.ok
        assert _names(user_id) == [("Work", 0), ("Projects", 1)]


def test_duplicate_sibling_name_rejected(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        folder_service.create_folder(user_id, "Projects", work.id)

        duplicate = folder_service.create_folder(user_id, "Projects", work.id)
        assert not duplicate.ok
        assert isinstance(duplicate.error, DuplicateNameError)

        elsewhere = folder_service.create_folder(user_id, "Projects")
        assert elsewhere.ok
        assert folder_service.create_folder(user_id, "projects").ok


def test_create_requires_name_and_existing_parent(app, user_id):
    with app.app_context():
        assert not folder_service.create_folder(user_id, "   ").ok
        missing_parent = folder_service.create_folder(user_id, "Child", 999)
        assert isinstance(missing_parent.error, NotFoundError)


def test_update_rejects_cycles_and_leaves_state_unchanged(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        projects = folder_service.create_folder(user_id, "Projects", work.id).value
        deep = folder_service.create_folder(user_id, "Deep", projects.id).value

        into_child = folder_service.update_folder(user_id, work.id, parent_id=projects.id)
        assert isinstance(into_child.error, CycleError)

        into_grandchild = folder_service.update_folder(
            user_id, work.id, parent_id=deep.id
        )
        assert isinstance(into_grandchild.error, CycleError)

        into_self = folder_service.update_folder(user_id, work.id, parent_id=work.id)
        assert isinstance(into_self.error, CycleError)

        assert db.session.get(Folder, work.id).parent_id is None
        assert _names(user_id) == [("Work", 0), ("Projects", 1), ("Deep", 2)]


def test_update_rejects_cycle_through_deleted_folder(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        projects = folder_service.create_folder(user_id, "Projects", work.id).value
        deep = folder_service.create_folder(user_id, "Deep", projects.id).value
        assert folder_service.delete_folder(user_id, projects.id, "root").ok

        result = folder_service.update_folder(user_id, work.id, parent_id=deep.id)

        assert isinstance(result.error, CycleError)
        assert db.session.get(Folder, work.id).parent_id is None
        assert _names(user_id) == [("Deep", 0), ("Work", 0)]


def test_orphaned_folder_names_count_as_roots(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        projects = folder_service.create_folder(user_id, "Projects", work.id).value
        ideas = folder_service.create_folder(user_id, "Ideas").value
        assert folder_service.delete_folder(user_id, work.id, "root").ok

        clash = folder_service.create_folder(user_id, "Projects")
        assert isinstance(clash.error, DuplicateNameError)

        rename = folder_service.update_folder(user_id, ideas.id, name="Projects")
        assert isinstance(rename.error, DuplicateNameError)

        orphan_rename = folder_service.update_folder(user_id, projects.id, name="Ideas")
        assert isinstance(orphan_rename.error, DuplicateNameError)

        assert _names(user_id) == [("Ideas", 0), ("Projects", 0)]


def test_update_renames_and_moves(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        home = folder_service.create_folder(user_id, "Home").value
        folder_service.create_folder(user_id, "Notes", home.id)
        notes_at_root = folder_service.create_folder(user_id, "Notes").value

        clash = folder_service.update_folder(user_id, notes_at_root.id, parent_id=home.id)
        assert isinstance(clash.error, DuplicateNameError)

        renamed = folder_service.update_folder(user_id, notes_at_root.id, name="Ideas")
        assert renamed.ok
        moved = folder_service.update_folder(user_id, renamed.value.id, parent_id=work.id)
        assert moved.ok
        assert _names(user_id) == [
            ("Home", 0),
            ("Notes", 1),
            ("Work", 0),
            ("Ideas", 1),
        ]

        to_root = folder_service.update_folder(user_id, moved.value.id, parent_id=None)
        assert to_root.ok
        assert to_root.value.parent_id is None


def test_update_same_name_is_not_a_duplicate_of_itself(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        assert folder_service.update_folder(user_id, work.id, name="Work").ok


@pytest.mark.parametrize(
    "disposition,check",
    [
        ("trash", lambda row: row is not None and row.is_trashed and row.folder_id),
        ("root", lambda row: row is not None and row.folder_id is None),
        ("delete", lambda row: row is None),
    ],
)
def test_delete_folder_dispositions(app, user_id, disposition, check):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        ids = [_bookmark(user_id, work.id, f"b{n}") for n in range(3)]
        outside = _bookmark(user_id, None, "outside")

        result = folder_service.delete_folder(user_id, work.id, disposition)

        assert result.ok
        assert result.value["bookmarks_affected"] == 3
        for bookmark_id in ids:
            assert check(db.session.get(Bookmark, bookmark_id))
        untouched = db.session.get(Bookmark, outside)
        assert not untouched.is_trashed
        assert _names(user_id) == []
        assert db.session.get(Folder, work.id).is_deleted


def test_delete_folder_keeps_child_folders_as_roots(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        folder_service.create_folder(user_id, "Projects", work.id)

        assert folder_service.delete_folder(user_id, work.id, "root").ok
        assert _names(user_id) == [("Projects", 0)]
        assert folder_service.create_folder(user_id, "Work").ok


def test_delete_folder_is_atomic(app, user_id, monkeypatch):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        ids = [_bookmark(user_id, work.id, f"b{n}") for n in range(3)]

        def failing_commit(self):
            raise SQLAlchemyError("simulated outage")

        monkeypatch.setattr(Session, "commit", failing_commit)
        result = folder_service.delete_folder(user_id, work.id, "trash")
        monkeypatch.undo()

        assert not result.ok
        assert isinstance(result.error, StoreError)
        assert "simulated outage" in result.error.detail
        db.session.expire_all()
        assert all(not db.session.get(Bookmark, i).is_trashed for i in ids)
        assert _names(user_id) == [("Work", 0)]


def test_delete_folder_rejects_unknown_disposition(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        result = folder_service.delete_folder(user_id, work.id, "shred")

        assert not result.ok
        assert result.error.status_code == 400
        assert _names(user_id) == [("Work", 0)]


def test_bookmark_count_includes_trashed(app, user_id):
    with app.app_context():
        work = folder_service.create_folder(user_id, "Work").value
        first = _bookmark(user_id, work.id, "one")
        _bookmark(user_id, work.id, "two")
        bookmark_service.trash(user_id, first)

        assert folder_service.get_bookmark_count(user_id, work.id) == 2
