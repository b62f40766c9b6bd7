from __future__ import annotations

from typing import Optional

import structlog

import storage
from assistant.currency import RateSource, to_usd
from assistant.schemas import ExpenseItem
from models import db, utcnow
from models.budget_model import Budget
from models.expense_model import Expense
from models.notification_model import Notification

from .schemas import ExpenseCreateSchema, ReceiptDefaults

logger = structlog.get_logger(__name__)

LOW_BUDGET_RATIO = 0.2
LOW_BUDGET_MESSAGE = "Warning: You have less than 20% of your budget remaining"


def apply_expense_to_budget(budget: Budget, expense: Expense) -> Optional[Notification]:
    """
    Subtract the expense from the budget. The first time the remaining amount
    drops under 20% of the total a warning notification is created.
    """
    remaining = budget.remaining_amount - expense.amount
    storage.update_budget(budget, remaining)

    if remaining < budget.total_amount * LOW_BUDGET_RATIO and not budget.low_balance_notified:
        budget.low_balance_notified = True
        logger.info(
            "low_budget_warning",
            user_id=budget.user_id,
            month=budget.month,
            remaining=remaining,
            total=budget.total_amount,
        )
        return storage.create_notification(budget.user_id, LOW_BUDGET_MESSAGE)
    return None


def record_expense(user_id: int, data: ExpenseCreateSchema) -> Expense:
    """Insert the expense and charge it to its month's budget in one transaction."""
    try:
        expense = storage.create_expense(
            user_id,
            amount=data.amount,
            category=data.category,
            description=data.description,
            receipt_url=data.receipt_url,
            date=data.date,
        )
        budget = storage.get_budget(user_id, expense.month_key, for_update=True)
        if budget:
            apply_expense_to_budget(budget, expense)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("expense_created", user_id=user_id, expense_id=expense.id, amount=expense.amount)
    return expense


def expense_from_receipt_item(
    item: ExpenseItem,
    rates: RateSource,
    *,
    receipt_url: Optional[str] = None,
    defaults: Optional[dict] = None,
) -> ExpenseCreateSchema:
    """
    Map one extracted receipt item onto an expense in USD. Fields the model
    left empty are taken from defaults (the client's own form values).
    """
    # raises ValidationError for malformed form values
    form = ReceiptDefaults.model_validate(defaults or {})
    amount = item.amount if item.amount is not None else form.amount
    if amount is None:
        raise ValueError("The receipt did not contain an amount")

    currency = item.currency or "usd"
    amount_usd = to_usd(amount, currency, rates)
    description = form.description or f"Receipt expense: {amount:,.2f} {currency.upper()}"

    return ExpenseCreateSchema(
        amount=amount_usd,
        category=item.category or form.category or "Other",
        description=description,
        receipt_url=receipt_url,
        date=form.date or utcnow(),
    )
