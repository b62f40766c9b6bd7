# backend/budgets/services.py

import structlog
from sqlalchemy.exc import IntegrityError

import storage
from models import db

logger = structlog.get_logger(__name__)


def create_budget(user_id, data):

    existing = storage.get_budget(user_id, data.month)
    if existing:
        return None, f"A budget for {data.month} already exists"

    try:
        budget = storage.create_budget(user_id, data.total_amount, data.month)
        db.session.commit()
    except IntegrityError:
        # concurrent insert for the same month
        db.session.rollback()
        return None, f"A budget for {data.month} already exists"

    logger.info("budget_created", user_id=user_id, month=budget.month, total=budget.total_amount)
    return budget, None
