from __future__ import annotations

import json
import os
import uuid

import structlog
from flask import Blueprint, current_app, jsonify, request, send_from_directory
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError
from werkzeug.utils import secure_filename

import storage
from llm_providers import LLMProviderError, ResponseShapeError

from .analysis import build_financial_snapshot, is_month_key, period_bounds, previous_month
from .schemas import ExpenseCreateSchema
from .services import expense_from_receipt_item, record_expense

logger = structlog.get_logger(__name__)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api")

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def _advisor():
    return current_app.extensions["finance_advisor"]


@expenses_bp.route("/expenses/<period>", methods=["GET"])
@jwt_required()
def list_expenses(period):
    """
    period: today | week | month | all | YYYY-MM
    """
    try:
        start, end = period_bounds(period)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    user_id = int(get_jwt_identity())
    expenses = storage.get_expenses(user_id, start, end)
    return jsonify([e.to_dict() for e in expenses]), 200


@expenses_bp.route("/expenses", methods=["POST"])
@jwt_required()
def create_expense():
    try:
        data = ExpenseCreateSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    expense = record_expense(int(get_jwt_identity()), data)
    return jsonify(expense.to_dict()), 201


def _receipt_filename(f) -> str:
    ext = os.path.splitext(secure_filename(f.filename or ""))[1].lower() or ".jpg"
    return f"{uuid.uuid4().hex}{ext}"


def _save_receipt(filename: str, content: bytes) -> str:
    upload_dir = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)
    path = os.path.join(upload_dir, filename)
    with open(path, "wb") as out:
        out.write(content)
    return path


def _form_defaults() -> dict:
    """Optional `expense` form field: the values the user typed next to the upload."""
    raw = request.form.get("expense")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


@expenses_bp.route("/expenses/upload", methods=["POST"])
@jwt_required()
def upload_receipt():
    """
    Multipart form fields:
    - invoice: receipt image (jpeg/png/webp/gif)
    - expense: optional JSON with amount/category/description used when the
      receipt doesn't show them
    """
    f = request.files.get("invoice") or request.files.get("file")
    if f is None:
        return jsonify({"error": "Missing file"}), 400
    if (f.mimetype or "").lower() not in ALLOWED_IMAGE_TYPES:
        return jsonify({"error": "Only image uploads are supported"}), 400

    content = f.read()
    if not content:
        return jsonify({"error": "Empty file"}), 400

    user_id = int(get_jwt_identity())
    try:
        items = _advisor().extract_expense_from_receipt(content, mime_type=f.mimetype)
    except ResponseShapeError as e:
        return jsonify({"error": str(e)}), 500
    except LLMProviderError as e:
        logger.error("receipt_extraction_failed", user_id=user_id, error=str(e))
        return jsonify({"error": "Failed to read receipt"}), 500

    extracted = [item.model_dump() for item in items]
    if not items:
        return jsonify({"error": "No expense found on the receipt", "extracted": extracted}), 422

    filename = _receipt_filename(f)
    try:
        data = expense_from_receipt_item(
            items[0],
            current_app.extensions["rate_source"],
            receipt_url=f"/api/receipts/{filename}",
            defaults=_form_defaults(),
        )
    except ValidationError as e:
        return jsonify({"error": e.errors(), "extracted": extracted}), 422
    except ValueError as e:
        return jsonify({"error": str(e), "extracted": extracted}), 422

    path = _save_receipt(filename, content)
    try:
        expense = record_expense(user_id, data)
    except Exception:
        os.remove(path)
        raise
    return jsonify({"expense": expense.to_dict(), "extracted": extracted}), 201


@expenses_bp.route("/expenses/analysis/<month>", methods=["GET"])
@jwt_required()
def budget_analysis(month):
    if not is_month_key(month):
        return jsonify({"error": "month must be YYYY-MM"}), 400

    user_id = int(get_jwt_identity())
    current = build_financial_snapshot(user_id, month)
    previous = build_financial_snapshot(user_id, previous_month(month))

    advice = _advisor().generate_budget_advice(current, previous)
    return jsonify(advice.to_response()), 200


@expenses_bp.route("/receipts/<path:filename>", methods=["GET"])
@jwt_required()
def get_receipt(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
