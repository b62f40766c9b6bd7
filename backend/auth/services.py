# backend/auth/services.py

import structlog
from werkzeug.security import check_password_hash
from flask_jwt_extended import create_access_token

import storage
from models import db

logger = structlog.get_logger(__name__)


def _session_payload(user):
    token = create_access_token(identity=str(user.id))

    return {
        "id": user.id,
        "username": user.username,
        "token": token
    }


def register_user(data):

    existing = storage.get_user_by_username(data.username)
    if existing:
        return None, "Username already exists"

    user = storage.create_user(data.username, data.password)
    db.session.commit()

    logger.info("user_registered", user_id=user.id)
    return _session_payload(user), None


def login_user(data):

    user = storage.get_user_by_username(data.username)

    if not user:
        return None, "Invalid username or password"

    if not check_password_hash(user.password, data.password):
        return None, "Invalid username or password"

    return _session_payload(user), None


def logout_user(jti):

    storage.revoke_token(jti)
    db.session.commit()
