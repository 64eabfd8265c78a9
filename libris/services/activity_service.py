from flask import current_app

from libris.errors import ValidationError
from libris.models.activity import Activity, ActivityType
from libris.repositories.activity_repo import ActivityRepo

MAX_FEED_LIMIT = 100


class ActivityService:
    """
    Append-only activity log.

    ``record`` never commits: the row joins the caller's transaction so an
    event is only visible when the change it describes is.
    """

    def __init__(self, session):
        self.session = session
        self.repo = ActivityRepo(session)

    def record(self, type: str, user_id: int, book_id: int | None = None,
               book_title: str | None = None, details: str | None = None) -> Activity:
        if type not in ActivityType.ALL:
            raise ValidationError(f"Unknown activity type: {type}")

        entry = self.repo.add(Activity(
            type=type,
            user_id=user_id,
            book_id=book_id,
            book_title=book_title or None,
            details=details or None,
        ))
        current_app.logger.debug(f"[activity] {type} user={user_id} book={book_id} {details or ''}")
        # reload with user/book for display
        return self.repo.get(entry.id)

    @staticmethod
    def _limit(limit):
        if limit is None:
            return current_app.config.get("ACTIVITY_FEED_LIMIT", 20)
        return max(1, min(int(limit), MAX_FEED_LIMIT))

    def recent(self, limit: int | None = None):
        return self.repo.recent(self._limit(limit))

    def by_user(self, user_id: int, limit: int | None = None):
        return self.repo.by_user(user_id, self._limit(limit))
