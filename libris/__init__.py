from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from libris.config import Config
from libris.errors import LibraryError
from libris.extensions import db, migrate


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # 1) extensions (db.session is only usable after init_app)
    db.init_app(app)
    migrate.init_app(app, db)

    # 2) every model must be imported before create_all / migrations
    from libris.models import activity, book, borrowing, reservation, suggestion, user  # noqa: F401

    # 3) session cookie -> g.current_user
    from libris.utils.auth import load_current_user
    app.before_request(load_current_user)

    # 4) API blueprints
    from libris.controllers.auth_controller import auth_bp
    from libris.controllers.book_controller import book_bp
    from libris.controllers.borrow_controller import borrow_bp
    from libris.controllers.reservation_controller import reservation_bp
    from libris.controllers.suggestion_controller import suggestion_bp
    from libris.controllers.activity_controller import activity_bp
    app.register_blueprint(auth_bp, url_prefix="/users")
    app.register_blueprint(book_bp, url_prefix="/books")
    app.register_blueprint(borrow_bp, url_prefix="/borrowings")
    app.register_blueprint(reservation_bp, url_prefix="/reservations")
    app.register_blueprint(suggestion_bp, url_prefix="/suggestions")
    app.register_blueprint(activity_bp, url_prefix="/activities")

    register_error_handlers(app)

    from libris.commands import register_commands
    register_commands(app)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    return app


def register_error_handlers(app):
    @app.errorhandler(LibraryError)
    def handle_library_error(e: LibraryError):
        db.session.rollback()
        app.logger.info(f"[api] {e.status_code} {e.message}")
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        db.session.rollback()
        app.logger.exception(f"[api] unexpected error: {e}")
        return jsonify({"error": "Internal server error"}), 500
