from models import db, utcnow


EXPENSE_CATEGORIES = ("Food", "Transportation", "Housing", "Entertainment", "Other")


class Expense(db.Model):
    """
    A single logged expense. Rows are never updated after insert; they only
    feed the owning month's budget and the analytics snapshots.
    """

    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=True)
    receipt_url = db.Column(db.String(255), nullable=True)
    date = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    @property
    def month_key(self) -> str:
        return self.date.strftime("%Y-%m")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "receiptUrl": self.receipt_url,
            "date": self.date.isoformat() if self.date else None,
        }
