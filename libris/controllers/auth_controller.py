from flask import Blueprint, jsonify, session

from libris.extensions import db
from libris.services.auth_service import AuthService
from libris.utils.auth import admin_required, current_user, login_required
from libris.utils.http import json_body
from libris.utils.serializers import user_to_dict

auth_bp = Blueprint("users", __name__)


@auth_bp.post("/register")
def register():
    data = json_body()

    # role is never taken from the request body
    user = AuthService(db.session).register(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
    )
    return jsonify(user_to_dict(user)), 201


@auth_bp.post("/login")
def login():
    """
    Session based login.
    Body: { "email": "...", "password": "..." }
    On success session["user_id"] is set; the role is read from the user row
    on every request.
    """
    data = json_body()
    user = AuthService(db.session).authenticate(data.get("email"), data.get("password"))

    session.clear()
    session.permanent = True
    session["user_id"] = int(user.id)

    return jsonify({"user": user_to_dict(user)})


@auth_bp.post("/logout")
@login_required
def logout():
    session.clear()
    return jsonify({"success": True})


@auth_bp.get("/profile")
@login_required
def profile():
    return jsonify(user_to_dict(current_user()))


@auth_bp.get("")
@admin_required
def list_users():
    rows = AuthService(db.session).list_users()
    return jsonify([user_to_dict(u, counts) for u, counts in rows])
