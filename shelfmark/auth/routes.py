from flask import current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from shelfmark.auth import auth_bp
from shelfmark.extensions import db
from shelfmark.models import User


def _credentials():
    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or request.form.get("username") or "").strip()
    password = payload.get("password") or request.form.get("password") or ""
    return payload, username, password


@auth_bp.route("/signup", methods=["POST"])
def signup():
    payload, username, password = _credentials()
    confirm = payload.get("confirm_password", password)

    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400
    if password != confirm:
        return jsonify({"error": "passwords do not match"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"error": "username already exists"}), 409

    user = User(username=username, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    current_app.logger.info("User %s signed up", user.id)
    return jsonify(user.as_dict()), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    _, username, password = _credentials()
    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401
    login_user(user)
    return jsonify(user.as_dict())


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"status": "signed out"})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.as_dict())
