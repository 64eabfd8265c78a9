from datetime import datetime
from libris.extensions import db


class BookStatus:
    AVAILABLE = "available"
    BORROWED = "borrowed"
    UNAVAILABLE = "unavailable"

    ALL = (AVAILABLE, BORROWED, UNAVAILABLE)


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=BookStatus.AVAILABLE)  # available/borrowed/unavailable

    # soft delete: default reads filter on deleted_at IS NULL
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
