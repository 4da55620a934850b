from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask.views import MethodView
from flask_login import current_user, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy import select

from ..extensions import db
from ..models import User
from ..security import verify_client_key


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class LoginView(MethodView):
    def post(self):
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        client_hash = (data.get("client_hash") or "").strip().lower()

        if not email or not client_hash:
            return jsonify(error="bad_request", message="Email and passphrase hash are required."), 400

        user = db.session.scalar(select(User).where(User.email == email))
        if not user or not verify_client_key(client_hash, user.passkey_hash):
            return jsonify(error="unauthorized", message="Invalid email or passphrase."), 401

        login_user(user)
        return jsonify(ok=True, user={"id": user.id, "screen_name": user.screen_name})


class LogoutView(MethodView):
    def post(self):
        if current_user.is_authenticated:
            logout_user()
        return jsonify(ok=True)


class CsrfTokenView(MethodView):
    """Token for the X-CSRFToken header on state-changing requests."""

    def get(self):
        return jsonify(csrf_token=generate_csrf())


auth_bp.add_url_rule("/login", view_func=LoginView.as_view("login"), methods=["POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["POST"])
auth_bp.add_url_rule("/csrf-token", view_func=CsrfTokenView.as_view("csrf_token"), methods=["GET"])
