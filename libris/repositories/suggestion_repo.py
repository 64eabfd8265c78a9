from datetime import datetime

from sqlalchemy import func

from libris.models.suggestion import Suggestion, SuggestionStatus, Vote, normalize_key


class SuggestionRepo:
    SORT_COLUMNS = {
        "created_at": Suggestion.created_at,
        "title": Suggestion.title,
        "author": Suggestion.author,
    }

    def __init__(self, session):
        self.session = session

    def _active(self):
        return self.session.query(Suggestion).filter(Suggestion.deleted_at.is_(None))

    def find_active(self, suggestion_id: int):
        return self._active().filter(Suggestion.id == suggestion_id).first()

    def find_including_deleted(self, suggestion_id: int):
        return self.session.get(Suggestion, suggestion_id)

    def find_duplicate(self, title: str, author: str):
        return self._active().filter(
            Suggestion.title_key == normalize_key(title),
            Suggestion.author_key == normalize_key(author),
            Suggestion.status != SuggestionStatus.REJECTED
        ).first()

    def list_with_votes(self, status: str | None = None, sort_by: str = "created_at", order: str = "desc"):
        """Returns ``(suggestion, vote_count)`` tuples."""
        vote_counts = (
            self.session.query(Vote.suggestion_id, func.count(Vote.id).label("n"))
            .group_by(Vote.suggestion_id)
            .subquery()
        )
        vote_count = func.coalesce(vote_counts.c.n, 0)

        q = (
            self.session.query(Suggestion, vote_count)
            .outerjoin(vote_counts, vote_counts.c.suggestion_id == Suggestion.id)
            .filter(Suggestion.deleted_at.is_(None))
        )
        if status:
            q = q.filter(Suggestion.status == status)

        column = vote_count if sort_by == "votes" else self.SORT_COLUMNS[sort_by]
        column = column.asc() if order == "asc" else column.desc()
        return q.order_by(column, Suggestion.id.asc()).all()

    def add(self, suggestion: Suggestion):
        self.session.add(suggestion)
        self.session.flush()
        return suggestion

    def soft_delete(self, suggestion: Suggestion, now: datetime | None = None):
        suggestion.deleted_at = now or datetime.utcnow()
        self.session.flush()
        return suggestion

    # votes

    def vote_count(self, suggestion_id: int) -> int:
        return self.session.query(func.count(Vote.id)).filter(Vote.suggestion_id == suggestion_id).scalar() or 0

    def find_vote(self, suggestion_id: int, user_id: int):
        return self.session.query(Vote).filter_by(suggestion_id=suggestion_id, user_id=user_id).first()

    def voted_ids(self, user_id: int):
        rows = self.session.query(Vote.suggestion_id).filter(Vote.user_id == user_id).all()
        return {r[0] for r in rows}

    def add_vote(self, vote: Vote):
        self.session.add(vote)
        self.session.flush()
        return vote

    def delete_vote(self, vote: Vote):
        self.session.delete(vote)
        self.session.flush()
