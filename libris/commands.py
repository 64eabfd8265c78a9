import click
from flask import current_app

from libris.extensions import db
from libris.models.book import Book
from libris.models.user import Role
from libris.repositories.book_repo import BookRepo
from libris.repositories.user_repo import UserRepo
from libris.services.auth_service import AuthService

DEMO_USERS = [
    ("Alice", "alice@example.com"),
    ("Bob", "bob@example.com"),
    ("Charlie", "charlie@example.com"),
]

DEMO_BOOKS = [
    ("1984", "George Orwell"),
    ("To Kill a Mockingbird", "Harper Lee"),
    ("The Great Gatsby", "F. Scott Fitzgerald"),
    ("Pride and Prejudice", "Jane Austen"),
    ("The Catcher in the Rye", "J.D. Salinger"),
]


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("All tables created.")

    @app.cli.command("seed")
    @click.option("--password", default="pass123", show_default=True, help="Password for every demo account.")
    @click.option("--admin-email", default="admin@example.com", show_default=True)
    def seed(password, admin_email):
        """Insert demo users, an admin and a few books (idempotent)."""
        db.create_all()
        auth = AuthService(db.session)
        users = UserRepo(db.session)

        created = 0
        for name, email in DEMO_USERS + [("Admin", admin_email)]:
            if users.get_by_email(email):
                continue
            role = Role.ADMIN if email == admin_email else Role.USER
            auth.register(name, email, password, role=role)
            created += 1

        existing = {(b.title, b.author) for b in BookRepo(db.session).list_active()}
        books = 0
        for title, author in DEMO_BOOKS:
            if (title, author) not in existing:
                db.session.add(Book(title=title, author=author))
                books += 1
        db.session.commit()

        current_app.logger.info(f"[seed] users={created} books={books}")
        click.echo(f"Seeding finished: {created} users, {books} books.")
