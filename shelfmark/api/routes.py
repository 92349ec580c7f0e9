from __future__ import annotations

from flask import current_app, g, jsonify, request, session

from shelfmark.api import api_bp
from shelfmark.errors import FetchError, NotFoundError, Result, ValidationError
from shelfmark.models import User
from shelfmark.services import bookmarks as bookmark_service
from shelfmark.services import folders as folder_service
from shelfmark.services import tags as tag_service
from shelfmark.services.common import to_bool
from shelfmark.services.hierarchy import hierarchy_roots
from shelfmark.services.metadata import fetch_options_from_config, fetch_url_metadata
from shelfmark.services.security import api_auth_required, issue_api_token
from shelfmark.services.selection import SelectionManager
from shelfmark.services.store import BOOKMARK_VIEWS, VIEW_ALL, BookmarkRepo


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _optional_id(value) -> int | None:
    if value in (None, "", "root"):
        return None
    return int(value)


def _ids_from_payload(payload: dict, field_name: str = "bookmark_ids") -> list[int]:
    values = payload.get(field_name) or []
    if not isinstance(values, list):
        values = [values]
    parsed: list[int] = []
    seen: set[int] = set()
    for value in values:
        try:
            parsed_id = int(value)
        except (TypeError, ValueError):
            continue
        if parsed_id > 0 and parsed_id not in seen:
            seen.add(parsed_id)
            parsed.append(parsed_id)
    return parsed


def _error_response(error):
    return jsonify(error.as_dict()), error.status_code


def _result_response(result: Result, serialize=None, status: int = 200):
    if not result.ok:
        return _error_response(result.error)
    value = serialize(result.value) if serialize else result.value
    return jsonify(value), status


def _bookmark_response(result: Result, status: int = 200):
    return _result_response(result, lambda bookmark: bookmark.as_dict(), status)


def _count_response(result: Result, key: str):
    return _result_response(result, lambda count: {"status": "ok", key: count})


def _metadata_or_none(url: str) -> dict | None:
    try:
        return fetch_url_metadata(url, **fetch_options_from_config(current_app.config))
    except FetchError:
        return None


@api_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _payload()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token_name = (payload.get("token_name") or "").strip() or "api"
    token = issue_api_token(user, token_name)
    return jsonify({"token": token, "token_name": token_name})


@api_bp.route("/metadata", methods=["POST"])
@api_auth_required
def fetch_metadata_api():
    url = (_payload().get("url") or "").strip()
    if not url:
        return _error_response(ValidationError("URL is required"))
    try:
        metadata = fetch_url_metadata(
            url, **fetch_options_from_config(current_app.config)
        )
    except FetchError as exc:
        return jsonify({"success": False, **exc.as_dict()}), exc.status_code
    return jsonify({"success": True, "metadata": metadata})


@api_bp.route("/folders", methods=["GET"])
@api_auth_required
def folders_list():
    nodes = folder_service.list_hierarchy(g.api_user.id)
    if to_bool(request.args.get("tree")):
        items = [node.as_dict(include_children=True) for node in hierarchy_roots(nodes)]
    else:
        items = [node.as_dict() for node in nodes]
    return jsonify({"items": items})


@api_bp.route("/folders", methods=["POST"])
@api_auth_required
def folders_create():
    payload = _payload()
    try:
        parent_id = _optional_id(payload.get("parent_id"))
    except (TypeError, ValueError):
        return _error_response(ValidationError("Parent folder is invalid."))
    result = folder_service.create_folder(
        g.api_user.id, payload.get("name"), parent_id=parent_id
    )
    return _result_response(result, lambda folder: folder.as_dict(), 201)


@api_bp.route("/folders/<int:folder_id>", methods=["PATCH"])
@api_auth_required
def folders_update(folder_id: int):
    payload = _payload()
    changes = {}
    if "name" in payload:
        changes["name"] = payload.get("name") or ""
    if "parent_id" in payload:
        try:
            changes["parent_id"] = _optional_id(payload.get("parent_id"))
        except (TypeError, ValueError):
            return _error_response(ValidationError("Parent folder is invalid."))
    result = folder_service.update_folder(g.api_user.id, folder_id, **changes)
    return _result_response(result, lambda folder: folder.as_dict())


@api_bp.route("/folders/<int:folder_id>", methods=["DELETE"])
@api_auth_required
def folders_delete(folder_id: int):
    disposition = _payload().get("disposition") or request.args.get("disposition")
    result = folder_service.delete_folder(g.api_user.id, folder_id, disposition)
    return _result_response(result)


@api_bp.route("/folders/<int:folder_id>/bookmark-count", methods=["GET"])
@api_auth_required
def folders_bookmark_count(folder_id: int):
    count = folder_service.get_bookmark_count(g.api_user.id, folder_id)
    return jsonify({"folder_id": folder_id, "count": count})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required
def bookmarks_list_api():
    view = (request.args.get("view") or VIEW_ALL).strip().lower()
    if view not in BOOKMARK_VIEWS:
        return _error_response(ValidationError(f"Unknown view: {view}."))
    items = BookmarkRepo.list_view(
        g.api_user.id,
        view=view,
        folder_id=request.args.get("folder_id", type=int),
        tag=request.args.get("tag"),
        time_frame=request.args.get("time_frame"),
    )
    return jsonify({"items": [item.as_dict() for item in items]})


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required
def bookmarks_create_api():
    payload = _payload()
    bookmark_type = payload.get("type") or "link"
    title = payload.get("title")
    notes = payload.get("notes")
    preview_thumbnail = payload.get("preview_thumbnail")

    url = (payload.get("url") or "").strip()
    if bookmark_type == "link" and url and to_bool(payload.get("fetch_metadata")):
        metadata = _metadata_or_none(url)
        if metadata:
            title = title or metadata["title"]
            notes = notes or metadata["description"]
            preview_thumbnail = metadata["image"] or preview_thumbnail

    try:
        folder_id = _optional_id(payload.get("folder_id"))
    except (TypeError, ValueError):
        return _error_response(ValidationError("Folder is invalid."))

    result = bookmark_service.create_bookmark(
        g.api_user.id,
        bookmark_type=bookmark_type,
        url=url,
        text_content=payload.get("text_content"),
        title=title,
        notes=notes,
        folder_id=folder_id,
        tags=payload.get("tags"),
        is_favorite=to_bool(payload.get("is_favorite")),
        is_read=to_bool(payload.get("is_read")),
        preview_thumbnail=preview_thumbnail,
    )
    return _bookmark_response(result, 201)


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["GET"])
@api_auth_required
def bookmarks_get_api(bookmark_id: int):
    bookmark = BookmarkRepo.get(g.api_user.id, bookmark_id)
    if not bookmark:
        return _error_response(NotFoundError("Bookmark not found."))
    return jsonify(bookmark.as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>/favorite", methods=["POST"])
@api_auth_required
def bookmarks_favorite_api(bookmark_id: int):
    value = to_bool(_payload().get("value"), default=True)
    result = bookmark_service.toggle_favorite(g.api_user.id, bookmark_id, value)
    return _bookmark_response(result)


@api_bp.route("/bookmarks/<int:bookmark_id>/read", methods=["POST"])
@api_auth_required
def bookmarks_read_api(bookmark_id: int):
    value = to_bool(_payload().get("value"), default=True)
    result = bookmark_service.toggle_read(g.api_user.id, bookmark_id, value)
    return _bookmark_response(result)


@api_bp.route("/bookmarks/<int:bookmark_id>/move", methods=["POST"])
@api_auth_required
def bookmarks_move_api(bookmark_id: int):
    try:
        folder_id = _optional_id(_payload().get("folder_id"))
    except (TypeError, ValueError):
        return _error_response(ValidationError("Target folder is invalid."))
    result = bookmark_service.move_to_folder(g.api_user.id, bookmark_id, folder_id)
    return _bookmark_response(result)


@api_bp.route("/bookmarks/<int:bookmark_id>/trash", methods=["POST"])
@api_auth_required
def bookmarks_trash_api(bookmark_id: int):
    return _bookmark_response(bookmark_service.trash(g.api_user.id, bookmark_id))


@api_bp.route("/bookmarks/<int:bookmark_id>/restore", methods=["POST"])
@api_auth_required
def bookmarks_restore_api(bookmark_id: int):
    return _bookmark_response(bookmark_service.restore(g.api_user.id, bookmark_id))


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["DELETE"])
@api_auth_required
def bookmarks_delete_api(bookmark_id: int):
    result = bookmark_service.delete_permanently(g.api_user.id, bookmark_id)
    return _result_response(result, lambda deleted: {"status": "deleted", "id": deleted})


@api_bp.route("/bookmarks/bulk/move", methods=["POST"])
@api_auth_required
def bookmarks_bulk_move_api():
    payload = _payload()
    try:
        folder_id = _optional_id(payload.get("folder_id"))
    except (TypeError, ValueError):
        return _error_response(ValidationError("Target folder is invalid."))
    result = bookmark_service.bulk_move_to_folder(
        g.api_user.id, _ids_from_payload(payload), folder_id
    )
    return _count_response(result, "moved")


@api_bp.route("/bookmarks/bulk/trash", methods=["POST"])
@api_auth_required
def bookmarks_bulk_trash_api():
    result = bookmark_service.bulk_trash(g.api_user.id, _ids_from_payload(_payload()))
    return _count_response(result, "trashed")


@api_bp.route("/bookmarks/bulk/tags", methods=["POST"])
@api_auth_required
def bookmarks_bulk_tags_api():
    payload = _payload()
    result = bookmark_service.bulk_add_tags(
        g.api_user.id, _ids_from_payload(payload), payload.get("tags")
    )
    return _count_response(result, "updated")


@api_bp.route("/bookmarks/bulk/read", methods=["POST"])
@api_auth_required
def bookmarks_bulk_read_api():
    payload = _payload()
    result = bookmark_service.bulk_set_read(
        g.api_user.id,
        _ids_from_payload(payload),
        to_bool(payload.get("value"), default=True),
    )
    return _count_response(result, "updated")


@api_bp.route("/bookmarks/bulk/favorite", methods=["POST"])
@api_auth_required
def bookmarks_bulk_favorite_api():
    payload = _payload()
    result = bookmark_service.bulk_set_favorite(
        g.api_user.id,
        _ids_from_payload(payload),
        to_bool(payload.get("value"), default=True),
    )
    return _count_response(result, "updated")


@api_bp.route("/tags", methods=["GET"])
@api_auth_required
def tags_list():
    return jsonify({"items": tag_service.list_tags(g.api_user.id)})


@api_bp.route("/tags/<path:name>", methods=["PATCH"])
@api_auth_required
def tags_rename(name: str):
    result = tag_service.rename_tag(g.api_user.id, name, _payload().get("name"))
    return _count_response(result, "updated")


@api_bp.route("/tags/<path:name>", methods=["DELETE"])
@api_auth_required
def tags_delete(name: str):
    result = tag_service.delete_tag(g.api_user.id, name)
    return _count_response(result, "updated")


def _selection() -> SelectionManager:
    # Lives in the signed session cookie; bearer clients must send it back.
    return SelectionManager.from_session(session, g.api_user.id)


@api_bp.route("/selection", methods=["GET"])
@api_auth_required
def selection_state():
    return jsonify(_selection().as_dict())


@api_bp.route("/selection/mode", methods=["POST"])
@api_auth_required
def selection_mode():
    selection = _selection()
    if to_bool(_payload().get("active"), default=not selection.active):
        selection.enter_selection_mode()
    else:
        selection.exit_selection_mode()
    selection.save(session)
    return jsonify(selection.as_dict())


@api_bp.route("/selection/toggle", methods=["POST"])
@api_auth_required
def selection_toggle():
    try:
        bookmark_id = int(_payload().get("bookmark_id"))
    except (TypeError, ValueError):
        return _error_response(ValidationError("bookmark_id is required."))
    selection = _selection()
    selection.toggle(bookmark_id)
    selection.save(session)
    return jsonify(selection.as_dict())


@api_bp.route("/selection/select-all", methods=["POST"])
@api_auth_required
def selection_select_all():
    selection = _selection()
    selection.select_all(_ids_from_payload(_payload()))
    selection.save(session)
    return jsonify(selection.as_dict())


@api_bp.route("/selection/clear", methods=["POST"])
@api_auth_required
def selection_clear():
    selection = _selection()
    selection.clear()
    selection.save(session)
    return jsonify(selection.as_dict())


@api_bp.route("/selection/bulk/<action>", methods=["POST"])
@api_auth_required
def selection_bulk(action: str):
    payload = _payload()
    selection = _selection()
    if action == "move":
        try:
            folder_id = _optional_id(payload.get("folder_id"))
        except (TypeError, ValueError):
            return _error_response(ValidationError("Target folder is invalid."))
        result = selection.bulk_move_to_folder(folder_id)
    elif action == "trash":
        result = selection.bulk_trash()
    elif action == "tags":
        result = selection.bulk_add_tags(payload.get("tags"))
    elif action == "read":
        result = selection.bulk_set_read(to_bool(payload.get("value"), default=True))
    elif action == "favorite":
        result = selection.bulk_set_favorite(
            to_bool(payload.get("value"), default=True)
        )
    else:
        return _error_response(ValidationError(f"Unknown bulk action: {action}."))

    selection.save(session)
    if not result.ok:
        return _error_response(result.error)
    return jsonify({"status": "ok", "updated": result.value, **selection.as_dict()})
