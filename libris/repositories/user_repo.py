from sqlalchemy import func
from libris.models.user import User


class UserRepo:
    def __init__(self, session):
        self.session = session

    def get_by_email(self, email: str):
        return self.session.query(User).filter(func.lower(User.email) == email.lower()).first()

    def get_by_id(self, user_id: int):
        return self.session.get(User, user_id)

    def get_for_update(self, user_id: int):
        return self.session.query(User).filter(User.id == user_id).with_for_update().first()

    def list_all(self):
        return self.session.query(User).order_by(User.name.asc()).all()

    def add(self, user: User):
        self.session.add(user)
        self.session.flush()
        return user
