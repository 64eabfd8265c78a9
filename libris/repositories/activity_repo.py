from sqlalchemy.orm import joinedload

from libris.models.activity import Activity


class ActivityRepo:
    """Append-only: no update or delete."""

    def __init__(self, session):
        self.session = session

    def add(self, entry: Activity):
        self.session.add(entry)
        self.session.flush()
        return entry

    def _with_relations(self):
        return self.session.query(Activity).options(joinedload(Activity.user), joinedload(Activity.book))

    def get(self, activity_id: int):
        return self._with_relations().filter(Activity.id == activity_id).first()

    def recent(self, limit: int):
        return (
            self._with_relations()
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
            .all()
        )

    def by_user(self, user_id: int, limit: int):
        return (
            self._with_relations()
            .filter(Activity.user_id == user_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
            .all()
        )
