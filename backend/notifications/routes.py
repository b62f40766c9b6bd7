# backend/notifications/routes.py

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

import storage
from notifications.services import mark_read

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@jwt_required()
def list_notifications():

    notifications = storage.get_notifications(int(get_jwt_identity()))

    return jsonify([n.to_dict() for n in notifications]), 200


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@jwt_required()
def read_notification(notification_id):

    _, error = mark_read(int(get_jwt_identity()), notification_id)

    if error:
        return jsonify({"error": error}), 404

    return "", 200
