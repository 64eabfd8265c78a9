from flask import Blueprint, jsonify

from libris.extensions import db
from libris.services.book_service import BookService
from libris.utils.auth import admin_required, current_user, login_required
from libris.utils.http import json_body
from libris.utils.serializers import book_to_dict

book_bp = Blueprint("books", __name__)


@book_bp.get("")
@login_required
def list_books():
    rows = BookService(db.session).list_books()
    return jsonify([book_to_dict(b, borrows, reservations) for b, borrows, reservations in rows])


@book_bp.get("/<int:book_id>")
@login_required
def get_book(book_id: int):
    b, borrows, reservations = BookService(db.session).get_book_with_counts(book_id)
    return jsonify(book_to_dict(b, borrows, reservations))


@book_bp.post("")
@admin_required
def create_book():
    data = json_body()
    b = BookService(db.session).create_book(current_user().id, data)
    return jsonify(book_to_dict(b)), 201


@book_bp.put("/<int:book_id>")
@admin_required
def update_book(book_id: int):
    data = json_body()
    b = BookService(db.session).update_book(current_user().id, book_id, data)
    return jsonify(book_to_dict(b))


@book_bp.delete("/<int:book_id>")
@admin_required
def delete_book(book_id: int):
    b = BookService(db.session).delete_book(current_user().id, book_id)
    return jsonify({"message": "Book deleted successfully.", "id": b.id, "deleted_at": b.deleted_at.isoformat()})
