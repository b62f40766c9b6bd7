from __future__ import annotations

import base64
import binascii
import re

import structlog
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from expenses.analysis import build_financial_snapshot
from llm_providers import LLMProviderError

from .schemas import ChatSchema, FinancialSnapshot, TestAISchema

logger = structlog.get_logger(__name__)

assistant_bp = Blueprint("assistant", __name__, url_prefix="/api")

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)

# canned month used to smoke-test the advice prompt
SAMPLE_SNAPSHOT = FinancialSnapshot(
    month=1,
    budget=10_000_000,
    total_expenses=13_000_000,
    expense_details=[("Food", 3_000_000), ("Education", 7_000_000), ("Utility", 3_000_000)],
)


def _advisor():
    return current_app.extensions["finance_advisor"]


def _decode_image(value: str) -> tuple[bytes, str]:
    """Accept raw base64 or a data: URL; returns (bytes, mime type)."""
    mime = "image/jpeg"
    m = _DATA_URL_RE.match(value.strip())
    if m:
        mime, value = m.group("mime"), m.group("data")
    return base64.b64decode(value, validate=True), mime


@assistant_bp.route("/test-ai", methods=["POST"])
@jwt_required()
def test_ai():
    """
    Smoke test for the model wiring. With an image, runs receipt extraction;
    otherwise writes an advice report for a canned month.
    """

    try:
        data = TestAISchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    if not data.prompt and not data.image:
        return jsonify({"error": "Prompt or image is required"}), 400

    try:
        if data.image:
            try:
                image_bytes, mime = _decode_image(data.image)
            except (binascii.Error, ValueError):
                return jsonify({"error": "image must be base64 encoded"}), 400
            items = _advisor().extract_expense_from_receipt(image_bytes, data.prompt, mime_type=mime)
            response = [item.model_dump() for item in items]
        else:
            empty = FinancialSnapshot(month=12)
            response = _advisor().budget_report(SAMPLE_SNAPSHOT, empty, extra_prompt=data.prompt)
    except LLMProviderError as e:
        logger.error("test_ai_failed", error=str(e))
        return jsonify({"error": "Failed to generate response"}), 500

    return jsonify({"response": response}), 200


@assistant_bp.route("/weather", methods=["GET"])
@jwt_required()
def weather():
    """Model-generated placeholder weather for the dashboard widget."""

    try:
        report = _advisor().generate_weather()
    except LLMProviderError as e:
        logger.error("weather_failed", error=str(e))
        return jsonify({"error": "Failed to generate weather"}), 500

    return jsonify(report.model_dump(by_alias=True)), 200


@assistant_bp.route("/chat", methods=["POST"])
@jwt_required()
def chat():
    try:
        data = ChatSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors()}), 400

    user_id = int(get_jwt_identity())
    snapshot = build_financial_snapshot(user_id, "month")

    # thread ids come from the client; keep them per user
    thread_key = f"{user_id}:{data.thread_id}"
    answer = _advisor().answer_financial_question(snapshot, thread_key, data.message)
    return jsonify({"message": answer}), 200
