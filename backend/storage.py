"""
Data-access helpers over the four persisted record types.

Write helpers only add + flush; the calling service owns the commit so that
multi-step operations (expense + budget + notification) land in one
transaction.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from werkzeug.security import generate_password_hash

from models import db, utcnow
from models.budget_model import Budget
from models.expense_model import Expense
from models.notification_model import Notification
from models.user_model import User, RevokedToken


# -------------------------
# Users
# -------------------------

def get_user(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def get_user_by_username(username: str) -> Optional[User]:
    return User.query.filter_by(username=username).first()


def create_user(username: str, password: str) -> User:
    user = User(username=username, password=generate_password_hash(password))
    db.session.add(user)
    db.session.flush()
    return user


def revoke_token(jti: str) -> None:
    if not RevokedToken.query.filter_by(jti=jti).first():
        db.session.add(RevokedToken(jti=jti))
        db.session.flush()


def is_token_revoked(jti: str) -> bool:
    return RevokedToken.query.filter_by(jti=jti).first() is not None


# -------------------------
# Budgets
# -------------------------

def get_budget(user_id: int, month: str, *, for_update: bool = False) -> Optional[Budget]:
    q = Budget.query.filter_by(user_id=user_id, month=month)
    if for_update:
        q = q.with_for_update()
    return q.first()


def create_budget(user_id: int, total_amount: float, month: str) -> Budget:
    budget = Budget(
        user_id=user_id,
        month=month,
        total_amount=total_amount,
        remaining_amount=total_amount,
    )
    db.session.add(budget)
    db.session.flush()
    return budget


def update_budget(budget: Budget, remaining_amount: float) -> Budget:
    budget.remaining_amount = remaining_amount
    db.session.flush()
    return budget


# -------------------------
# Expenses
# -------------------------

def get_expenses(
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Expense]:
    """Expenses for a user, optionally limited to the window [start, end)."""

    q = Expense.query.filter_by(user_id=user_id)
    if start is not None:
        q = q.filter(Expense.date >= start)
    if end is not None:
        q = q.filter(Expense.date < end)
    return q.order_by(Expense.date, Expense.id).all()


def create_expense(
    user_id: int,
    *,
    amount: float,
    category: str,
    date: datetime,
    description: Optional[str] = None,
    receipt_url: Optional[str] = None,
) -> Expense:
    expense = Expense(
        user_id=user_id,
        amount=amount,
        category=category,
        description=description,
        receipt_url=receipt_url,
        date=date,
    )
    db.session.add(expense)
    db.session.flush()
    return expense


# -------------------------
# Notifications
# -------------------------

def get_notifications(user_id: int) -> List[Notification]:
    return (
        Notification.query.filter_by(user_id=user_id)
        .order_by(Notification.date.desc(), Notification.id.desc())
        .all()
    )


def get_notification(user_id: int, notification_id: int) -> Optional[Notification]:
    return Notification.query.filter_by(id=notification_id, user_id=user_id).first()


def create_notification(user_id: int, message: str) -> Notification:
    notification = Notification(
        user_id=user_id, message=message, read=False, date=utcnow()
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def mark_notification_read(notification: Notification) -> Notification:
    notification.read = True
    db.session.flush()
    return notification
