from datetime import datetime
from libris.extensions import db


def normalize_key(value: str) -> str:
    return " ".join((value or "").split()).casefold()


class SuggestionStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PURCHASED = "PURCHASED"

    ALL = (PENDING, APPROVED, REJECTED, PURCHASED)


class Suggestion(db.Model):
    __tablename__ = "suggestions"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)

    # casefolded copies for the duplicate check; SQL lower() is ASCII-only on SQLite
    title_key = db.Column(db.String(200), nullable=False, index=True)
    author_key = db.Column(db.String(200), nullable=False, index=True)

    reason = db.Column(db.Text, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=SuggestionStatus.PENDING)

    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("suggestions", lazy="dynamic"))
    votes = db.relationship("Vote", backref="suggestion", lazy="dynamic", cascade="all, delete-orphan")


class Vote(db.Model):
    __tablename__ = "votes"
    __table_args__ = (
        db.UniqueConstraint("suggestion_id", "user_id", name="uq_votes_suggestion_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    suggestion_id = db.Column(db.Integer, db.ForeignKey("suggestions.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("votes", lazy="dynamic"))
