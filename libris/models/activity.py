from datetime import datetime
from libris.extensions import db


class ActivityType:
    CHECKOUT = "CHECKOUT"
    RETURN = "RETURN"
    RESERVATION = "RESERVATION"
    SUGGESTION = "SUGGESTION"
    SYSTEM = "SYSTEM"

    ALL = (CHECKOUT, RETURN, RESERVATION, SUGGESTION, SYSTEM)


class Activity(db.Model):
    """Append-only event row. Never updated or deleted."""
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False, index=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=True, index=True)

    # snapshot, survives later renames / soft deletes
    book_title = db.Column(db.String(200), nullable=True)
    details = db.Column(db.String(1000), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    user = db.relationship("User")
    book = db.relationship("Book")
