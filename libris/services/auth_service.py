from werkzeug.security import generate_password_hash, check_password_hash
from flask import current_app

from libris.errors import AuthenticationError, ConflictError, ValidationError
from libris.models.user import Role, User
from libris.repositories.user_repo import UserRepo
from libris.utils.db import atomic


class AuthService:
    def __init__(self, session):
        self.session = session
        self.users = UserRepo(session)

    def register(self, name: str, email: str, password: str, role: str = Role.USER) -> User:
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise ValidationError("Name, email and password are required")
        if "@" not in email:
            raise ValidationError("Invalid email address")
        if role not in Role.ALL:
            raise ValidationError(f"Invalid role: {role}")

        with atomic(self.session, conflict_message="Email already in use"):
            if self.users.get_by_email(email):
                raise ConflictError("Email already in use")

            user = self.users.add(User(
                name=name,
                email=email,
                password_hash=generate_password_hash(password),
                role=role
            ))

        current_app.logger.info(f"[auth] registered user={user.id} role={user.role}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.users.get_by_email((email or "").strip()) if email else None
        if not user or not check_password_hash(user.password_hash, password or ""):
            current_app.logger.info("[auth] failed login attempt")
            raise AuthenticationError("Invalid credentials")
        return user

    def list_users(self):
        """Users with their borrowing / reservation / suggestion counts."""
        return [
            (u, {
                "borrowings": u.borrowings.count(),
                "reservations": u.reservations.count(),
                "suggestions": u.suggestions.count(),
            })
            for u in self.users.list_all()
        ]
