from models import db


class Budget(db.Model):
    __tablename__ = "budgets"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM
    total_amount = db.Column(db.Float, nullable=False)
    remaining_amount = db.Column(db.Float, nullable=False)

    # set once the remaining amount first drops under the warning threshold
    low_balance_notified = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint("user_id", "month", name="uq_user_budget_month"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "month": self.month,
            "totalAmount": self.total_amount,
            "remainingAmount": self.remaining_amount,
        }
