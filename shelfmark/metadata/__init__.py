from flask import Blueprint

metadata_bp = Blueprint("metadata", __name__)

from shelfmark.metadata import routes  # noqa: E402,F401
