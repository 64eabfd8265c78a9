from datetime import datetime
from libris.extensions import db


class Reservation(db.Model):
    __tablename__ = "reservations"
    __table_args__ = (
        db.UniqueConstraint("user_id", "book_id", name="uq_reservations_user_book"),
        db.Index("ix_reservations_queue", "book_id", "created_at", "id"),
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("reservations", lazy="dynamic"))
    book = db.relationship("Book", backref=db.backref("reservations", lazy="dynamic"))
