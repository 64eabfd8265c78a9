from datetime import datetime

from flask import current_app

from libris.errors import ConflictError, NotFoundError, ValidationError
from libris.models.activity import ActivityType
from libris.models.suggestion import Suggestion, SuggestionStatus, Vote, normalize_key
from libris.repositories.suggestion_repo import SuggestionRepo
from libris.services.activity_service import ActivityService
from libris.utils.db import atomic

SORT_FIELDS = ("votes", "created_at", "title", "author")


class SuggestionService:
    def __init__(self, session):
        self.session = session
        self.repo = SuggestionRepo(session)
        self.activities = ActivityService(session)

    def list_suggestions(self, status: str | None = None, sort_by: str = "created_at", order: str = "desc"):
        if status and status not in SuggestionStatus.ALL:
            raise ValidationError("Invalid status")
        if sort_by not in SORT_FIELDS:
            raise ValidationError(f"sort_by must be one of: {', '.join(SORT_FIELDS)}")
        order = (order or "desc").lower()
        if order not in ("asc", "desc"):
            raise ValidationError("order must be asc or desc")
        return self.repo.list_with_votes(status=status, sort_by=sort_by, order=order)

    def voted_ids(self, user_id: int):
        return self.repo.voted_ids(user_id)

    def get(self, suggestion_id: int) -> Suggestion:
        suggestion = self.repo.find_active(suggestion_id)
        if not suggestion:
            raise NotFoundError("Suggestion not found")
        return suggestion

    def vote_count(self, suggestion_id: int) -> int:
        return self.repo.vote_count(suggestion_id)

    def create(self, user_id: int, title: str, author: str, reason: str | None = None) -> Suggestion:
        title = (title or "").strip()
        author = (author or "").strip()
        if not title or not author:
            raise ValidationError("Title and author are required")

        with atomic(self.session):
            if self.repo.find_duplicate(title, author):
                raise ConflictError("This book has already been suggested")

            suggestion = self.repo.add(Suggestion(
                title=title,
                author=author,
                title_key=normalize_key(title),
                author_key=normalize_key(author),
                reason=(reason or "").strip() or None,
                user_id=user_id,
                status=SuggestionStatus.PENDING,
            ))
            self.activities.record(
                ActivityType.SUGGESTION, user_id, None, title,
                f'New book suggestion: "{title}" by {author}'
            )

        current_app.logger.info(f"[suggestion] user={user_id} created suggestion={suggestion.id}")
        return suggestion

    def toggle_vote(self, user_id: int, suggestion_id: int):
        """Returns ``(voted, vote_count)`` after the toggle."""
        with atomic(self.session, conflict_message="Vote already recorded"):
            suggestion = self.get(suggestion_id)

            existing = self.repo.find_vote(suggestion.id, user_id)
            if existing:
                self.repo.delete_vote(existing)
                voted = False
            else:
                self.repo.add_vote(Vote(suggestion_id=suggestion.id, user_id=user_id))
                voted = True

            count = self.repo.vote_count(suggestion.id)

        return voted, count

    def update_status(self, admin_id: int, suggestion_id: int, status: str) -> Suggestion:
        if not status or status not in SuggestionStatus.ALL:
            raise ValidationError("Invalid status")

        with atomic(self.session):
            suggestion = self.get(suggestion_id)
            previous = suggestion.status
            suggestion.status = status
            suggestion.updated_at = datetime.utcnow()

            self.activities.record(
                ActivityType.SUGGESTION, admin_id, None, suggestion.title,
                f'Suggestion marked as {status}: "{suggestion.title}" by {suggestion.author}'
            )

        current_app.logger.info(f"[suggestion] admin={admin_id} suggestion={suggestion.id} {previous} -> {status}")
        return suggestion

    def soft_delete(self, admin_id: int, suggestion_id: int, now: datetime | None = None) -> Suggestion:
        with atomic(self.session):
            suggestion = self.get(suggestion_id)
            self.repo.soft_delete(suggestion, now)

            self.activities.record(
                ActivityType.SUGGESTION, admin_id, None, suggestion.title,
                f'Suggestion deleted (was {suggestion.status}): "{suggestion.title}" by {suggestion.author}'
            )

        current_app.logger.info(f"[suggestion] admin={admin_id} soft-deleted suggestion={suggestion.id}")
        return suggestion
