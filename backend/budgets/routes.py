# backend/budgets/routes.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from pydantic import ValidationError

import storage
from budgets.schemas import BudgetCreateSchema
from budgets.services import create_budget

budgets_bp = Blueprint("budgets", __name__, url_prefix="/api/budget")


@budgets_bp.route("/<month>", methods=["GET"])
@jwt_required()
def get_budget(month):

    budget = storage.get_budget(int(get_jwt_identity()), month)

    return jsonify(budget.to_dict() if budget else None), 200


@budgets_bp.route("", methods=["POST"])
@jwt_required()
def post_budget():

    try:
        data = BudgetCreateSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    budget, error = create_budget(int(get_jwt_identity()), data)

    if error:
        return jsonify({"error": error}), 409

    return jsonify(budget.to_dict()), 201
