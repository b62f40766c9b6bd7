"""App-wide error handlers and JWT rejection responses."""

import structlog
from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import NotFound, MethodNotAllowed, RequestEntityTooLarge

import storage
from llm_providers import LLMProviderError
from models import db

logger = structlog.get_logger(__name__)


def _unauthorized(*_args):
    # empty body, like the session-cookie API this replaces
    return "", 401


def register_jwt_handlers(jwt):
    jwt.unauthorized_loader(_unauthorized)
    jwt.invalid_token_loader(_unauthorized)
    jwt.expired_token_loader(_unauthorized)
    jwt.revoked_token_loader(_unauthorized)
    jwt.user_lookup_error_loader(_unauthorized)

    @jwt.token_in_blocklist_loader
    def _is_revoked(_jwt_header, jwt_payload):
        return storage.is_token_revoked(jwt_payload["jti"])


def register_error_handlers(app):

    @app.errorhandler(SQLAlchemyError)
    def _database_error(e):
        db.session.rollback()
        logger.error("database_error", error=str(e))
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(LLMProviderError)
    def _llm_error(e):
        logger.error("llm_error", error=str(e))
        return jsonify({"error": str(e)}), 500

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(_e):
        limit = app.config.get("MAX_UPLOAD_SIZE_MB")
        return jsonify({"error": f"File too large (max {limit} MB)"}), 413

    @app.errorhandler(NotFound)
    def _not_found(_e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(MethodNotAllowed)
    def _not_allowed(_e):
        return jsonify({"error": "Method not allowed"}), 405
