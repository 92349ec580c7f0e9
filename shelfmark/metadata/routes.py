from flask import current_app, jsonify, request

from shelfmark.errors import FetchError
from shelfmark.metadata import metadata_bp
from shelfmark.services.metadata import fetch_options_from_config, fetch_url_metadata


@metadata_bp.route("/metadata", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def url_metadata():
    if request.method != "POST":
        return jsonify({"success": False, "error": "Method Not Allowed"}), 405

    url = ((request.get_json(silent=True) or {}).get("url") or "").strip()
    if not url:
        return jsonify({"success": False, "error": "URL is required"}), 400

    try:
        metadata = fetch_url_metadata(
            url, **fetch_options_from_config(current_app.config)
        )
    except FetchError as exc:
        return (
            jsonify({"success": False, "error": exc.message, "message": exc.detail}),
            500,
        )
    return jsonify({"success": True, "metadata": metadata})
