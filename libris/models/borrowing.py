from datetime import datetime
from sqlalchemy import text
from libris.extensions import db


class Borrowing(db.Model):
    __tablename__ = "borrowings"
    __table_args__ = (
        # one open loan per user and per book
        db.Index(
            "uq_borrowings_open_user", "user_id", unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
        db.Index(
            "uq_borrowings_open_book", "book_id", unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    borrowed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    due_date = db.Column(db.DateTime, nullable=False)
    returned_at = db.Column(db.DateTime, nullable=True)  # NULL = open

    user = db.relationship("User", backref=db.backref("borrowings", lazy="dynamic"))
    book = db.relationship("Book", backref=db.backref("borrowings", lazy="dynamic"))

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def is_overdue(self, now: datetime | None = None) -> bool:
        if not self.is_open or not self.due_date:
            return False
        return self.due_date < (now or datetime.utcnow())
