# backend/auth/routes.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import (
    jwt_required,
    get_jwt,
    get_jwt_identity,
    set_access_cookies,
    unset_jwt_cookies,
)
from pydantic import ValidationError

import storage
from auth.schemas import RegisterSchema, LoginSchema
from auth.services import register_user, login_user, logout_user

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.route("/register", methods=["POST"])
def register():

    try:
        data = RegisterSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    result, error = register_user(data)

    if error:
        return jsonify({"error": error}), 400

    response = jsonify(result)
    set_access_cookies(response, result["token"])
    return response, 201


@auth_bp.route("/login", methods=["POST"])
def login():

    try:
        data = LoginSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    result, error = login_user(data)

    if error:
        return jsonify({"error": error}), 401

    response = jsonify(result)
    set_access_cookies(response, result["token"])
    return response, 200


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():

    logout_user(get_jwt()["jti"])

    response = jsonify({"message": "Logged out"})
    unset_jwt_cookies(response)
    return response, 200


@auth_bp.route("/user", methods=["GET"])
@jwt_required()
def current_user():

    user = storage.get_user(int(get_jwt_identity()))
    if not user:
        return "", 401

    return jsonify(user.to_dict()), 200
