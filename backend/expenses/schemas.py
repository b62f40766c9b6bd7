from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assistant.schemas import Category
from models.expense_model import EXPENSE_CATEGORIES


class ExpenseCreateSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float = Field(..., gt=0)
    category: Category
    description: Optional[str] = Field(None, max_length=500)
    receipt_url: Optional[str] = Field(None, alias="receiptUrl", max_length=255)
    date: datetime

    @field_validator("category", mode="before")
    @classmethod
    def _canonical_category(cls, v):
        if isinstance(v, str):
            for name in EXPENSE_CATEGORIES:
                if name.lower() == v.strip().lower():
                    return name
        return v

    @field_validator("date")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # stored as naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class ReceiptDefaults(BaseModel):
    """Values the user typed next to a receipt upload."""

    amount: Optional[float] = Field(None, gt=0)
    category: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    date: Optional[datetime] = None
