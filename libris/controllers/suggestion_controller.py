from flask import Blueprint, request, jsonify

from libris.extensions import db
from libris.services.suggestion_service import SuggestionService
from libris.utils.auth import admin_required, current_user, login_required
from libris.utils.http import json_body
from libris.utils.serializers import suggestion_to_dict

suggestion_bp = Blueprint("suggestions", __name__)


@suggestion_bp.get("")
@login_required
def list_suggestions():
    service = SuggestionService(db.session)
    rows = service.list_suggestions(
        status=request.args.get("status") or None,
        sort_by=request.args.get("sort_by", "created_at"),
        order=request.args.get("order", "desc"),
    )
    voted = service.voted_ids(current_user().id)
    return jsonify([suggestion_to_dict(s, count, s.id in voted) for s, count in rows])


@suggestion_bp.post("")
@login_required
def create_suggestion():
    data = json_body()
    s = SuggestionService(db.session).create(
        current_user().id,
        data.get("title"),
        data.get("author"),
        data.get("reason"),
    )
    return jsonify(suggestion_to_dict(s, 0, False)), 201


@suggestion_bp.post("/<int:suggestion_id>/vote")
@login_required
def toggle_vote(suggestion_id: int):
    voted, count = SuggestionService(db.session).toggle_vote(current_user().id, suggestion_id)
    return jsonify({"voted": voted, "vote_count": count})


@suggestion_bp.patch("/<int:suggestion_id>/status")
@admin_required
def update_status(suggestion_id: int):
    data = json_body()
    service = SuggestionService(db.session)
    s = service.update_status(current_user().id, suggestion_id, data.get("status"))
    return jsonify(suggestion_to_dict(s, service.vote_count(s.id)))


@suggestion_bp.delete("/<int:suggestion_id>")
@admin_required
def delete_suggestion(suggestion_id: int):
    s = SuggestionService(db.session).soft_delete(current_user().id, suggestion_id)
    return jsonify({
        "success": True,
        "message": "Suggestion has been soft deleted",
        "deleted_at": s.deleted_at.isoformat(),
    })
