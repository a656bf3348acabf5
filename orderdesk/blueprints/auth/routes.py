"""
Authentication Routes

Provides:
- POST /api/auth/login
- POST /api/auth/logout
- GET  /api/auth/me

Rules:
- Only active users may log in.
- Credentials validated via password hash.
- Session cookie login (Flask-Login); every other blueprint relies on it.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from ...extensions import db
from ...models import User
from ...security import actor_for
from ...utils import ok

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _invalid_login(message: str):
    return jsonify({"success": False, "error": {"code": "invalid_credentials", "message": message}}), 401


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    username = str(data.get("username", "")).strip()
    password = str(data.get("password", ""))

    user = db.session.execute(db.select(User).filter_by(username=username)).scalar_one_or_none()

    if not user or not user.check_password(password):
        logger.warning("failed login for %r", username)
        return _invalid_login("Wrong username or password.")

    if not user.is_active:
        return _invalid_login("This account is inactive.")

    login_user(user)
    logger.info("user %s logged in", user.username)
    return ok({**user.to_dict(), "actor": actor_for(user)})


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return ok({"loggedOut": True})


# ============================================================
# CURRENT USER
# ============================================================

@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return ok({**current_user.to_dict(), "actor": actor_for(current_user)})
