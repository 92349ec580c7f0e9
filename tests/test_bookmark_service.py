from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shelfmark.errors import NotFoundError, StoreError, ValidationError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, utcnow
from shelfmark.services import bookmarks as bookmark_service
from shelfmark.services.store import BookmarkRepo


def _link(user_id, title="Example", **kwargs):
    result = bookmark_service.create_bookmark(
        user_id, url=f"https://{title.lower()}.example", title=title, **kwargs
    )
    assert result.ok, result.message
    return result.value.id


def _fail_commits(monkeypatch):
    def failing_commit(self):
        raise SQLAlchemyError("simulated outage")

    monkeypatch.setattr(Session, "commit", failing_commit)


def test_create_link_defaults_title_to_url(app, user_id):
    with app.app_context():
        result = bookmark_service.create_bookmark(
            user_id,
            url="  https://example.com  ",
            text_content="ignored",
            tags="python, web;python, ",
        )

        assert result.ok
        bookmark = result.value
        assert bookmark.title == "https://example.com"
        assert bookmark.text_content is None
        assert bookmark.tags == ["python", "web"]
        assert not bookmark.is_trashed


def test_create_text_note(app, user_id):
    with app.app_context():
        result = bookmark_service.create_bookmark(
            user_id,
            bookmark_type="text",
            text_content="remember the milk",
            url="https://dropped.example",
            preview_thumbnail="https://dropped.example/a.png",
        )

        assert result.ok
        assert result.value.title == "Untitled Note"
        assert result.value.url is None
        assert result.value.preview_thumbnail is None


def test_create_validates_required_fields(app, user_id):
    with app.app_context():
        assert isinstance(
            bookmark_service.create_bookmark(user_id, url="").error, ValidationError
        )
        assert isinstance(
            bookmark_service.create_bookmark(user_id, bookmark_type="text").error,
            ValidationError,
        )
        assert not bookmark_service.create_bookmark(
            user_id, bookmark_type="video", url="https://x.example"
        ).ok


def test_single_record_updates(app, user_id):
    with app.app_context():
        bookmark_id = _link(user_id)
        before = db.session.get(Bookmark, bookmark_id).updated_at

        assert bookmark_service.toggle_favorite(user_id, bookmark_id, True).ok
        assert bookmark_service.toggle_read(user_id, bookmark_id, True).ok
        assert bookmark_service.move_to_folder(user_id, bookmark_id, 42).ok
        assert bookmark_service.trash(user_id, bookmark_id).ok

        bookmark = db.session.get(Bookmark, bookmark_id)
        assert bookmark.is_favorite and bookmark.is_read and bookmark.is_trashed
        assert bookmark.folder_id == 42
        assert bookmark.updated_at >= before

        assert bookmark_service.restore(user_id, bookmark_id).ok
        assert not db.session.get(Bookmark, bookmark_id).is_trashed

        assert bookmark_service.delete_permanently(user_id, bookmark_id).ok
        assert db.session.get(Bookmark, bookmark_id) is None


def test_single_record_missing_returns_not_found(app, user_id):
    with app.app_context():
        result = bookmark_service.toggle_favorite(user_id, 12345, True)

        assert not result.ok
        assert isinstance(result.error, NotFoundError)


def test_other_users_bookmarks_are_invisible(app, user_id):
    with app.app_context():
        bookmark_id = _link(user_id)
        result = bookmark_service.trash(user_id + 1, bookmark_id)

        assert isinstance(result.error, NotFoundError)
        assert not db.session.get(Bookmark, bookmark_id).is_trashed


def test_bulk_add_tags_unions_existing(app, user_id):
    with app.app_context():
        first = _link(user_id, "First", tags=["a", "c"])
        second = _link(user_id, "Second")

        result = bookmark_service.bulk_add_tags(user_id, [first, second], ["a", "b"])

        assert result.ok
        assert result.value == 2
        assert set(db.session.get(Bookmark, first).tags) == {"a", "b", "c"}
        assert len(db.session.get(Bookmark, first).tags) == 3
        assert db.session.get(Bookmark, second).tags == ["a", "b"]


def test_bulk_operations_apply_to_every_target(app, user_id):
    with app.app_context():
        ids = [_link(user_id, f"B{n}") for n in range(5)]

        assert bookmark_service.bulk_move_to_folder(user_id, ids, 7).value == 5
        assert bookmark_service.bulk_set_read(user_id, ids, True).ok
        assert bookmark_service.bulk_set_favorite(user_id, ids[:2], True).ok
        assert bookmark_service.bulk_trash(user_id, ids[1:]).ok

        rows = BookmarkRepo.get_many(user_id, ids)
        assert all(row.folder_id == 7 and row.is_read for row in rows)
        assert [row.is_favorite for row in rows] == [True, True, False, False, False]
        assert [row.is_trashed for row in rows] == [False, True, True, True, True]


def test_bulk_rejects_empty_and_unknown_targets(app, user_id):
    with app.app_context():
        bookmark_id = _link(user_id)

        empty = bookmark_service.bulk_trash(user_id, [])
        assert isinstance(empty.error, ValidationError)

        partial = bookmark_service.bulk_trash(user_id, [bookmark_id, 999])
        assert isinstance(partial.error, NotFoundError)
        assert not db.session.get(Bookmark, bookmark_id).is_trashed

        no_tags = bookmark_service.bulk_add_tags(user_id, [bookmark_id], [" "])
        assert isinstance(no_tags.error, ValidationError)


def test_bulk_failure_changes_nothing(app, user_id, monkeypatch):
    with app.app_context():
        # More targets than one chunk so several flushes precede the failure.
        ids = [_link(user_id, f"B{n}", tags=["keep"]) for n in range(5)]

        _fail_commits(monkeypatch)
        trashed = bookmark_service.bulk_trash(user_id, ids)
        tagged = bookmark_service.bulk_add_tags(user_id, ids, ["new"])
        monkeypatch.undo()

        assert isinstance(trashed.error, StoreError)
        assert isinstance(tagged.error, StoreError)
        db.session.expire_all()
        for row in BookmarkRepo.get_many(user_id, ids):
            assert not row.is_trashed
            assert row.tags == ["keep"]


def test_list_views(app, user_id):
    with app.app_context():
        plain = _link(user_id, "Plain")
        favorite = _link(user_id, "Fav", is_favorite=True)
        tagged = _link(user_id, "Tagged", tags=["python"], folder_id=3)
        trashed = _link(user_id, "Gone")
        bookmark_service.trash(user_id, trashed)
        old = Bookmark(
            user_id=user_id,
            url="https://old.example",
            title="Old",
            created_at=utcnow() - timedelta(days=3),
        )
        db.session.add(old)
        db.session.commit()

        def ids(view, **kwargs):
            return {row.id for row in BookmarkRepo.list_view(user_id, view, **kwargs)}

        assert ids("all") == {plain, favorite, tagged, old.id}
        assert ids("favorites") == {favorite}
        assert ids("trash") == {trashed}
        assert ids("folder", folder_id=3) == {tagged}
        assert ids("tag", tag="python") == {tagged}
        assert old.id not in ids("recent", time_frame="24h")
        assert old.id in ids("recent", time_frame="7d")
        assert old.id not in ids("recent", time_frame="bogus")
