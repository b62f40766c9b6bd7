from __future__ import annotations

from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.expense_model import EXPENSE_CATEGORIES

Category = Literal["Food", "Transportation", "Housing", "Entertainment", "Other"]
Currency = Literal["vnd", "usd", "eur"]


# ---------------------------------------------------------------------------
# Model output shapes
# ---------------------------------------------------------------------------

class ExpenseItem(BaseModel):
    amount: Optional[float] = Field(None, ge=0, description="Amount in the receipt's currency")
    currency: Optional[Currency] = None
    category: Optional[Category] = None

    @field_validator("currency", mode="before")
    @classmethod
    def _lower_currency(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def _title_category(cls, v):
        if isinstance(v, str):
            for name in EXPENSE_CATEGORIES:
                if name.lower() == v.strip().lower():
                    return name
        return v


class ReceiptExtraction(BaseModel):
    expenses: List[ExpenseItem]

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, data):
        # models regularly answer with the list alone
        if isinstance(data, list):
            return {"expenses": data}
        return data


class CategoryInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_saving_category: str = Field(alias="topSavingCategory")
    top_spending_category: str = Field(alias="topSpendingCategory")


class WeatherReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    main: str
    description: str
    temp: float
    humidity: float = Field(ge=0, le=100)
    wind_speed: float = Field(alias="windSpeed", ge=0)


# ---------------------------------------------------------------------------
# Service results
# ---------------------------------------------------------------------------

class FinancialSnapshot(BaseModel):
    month: int
    budget: float = 0.0
    total_expenses: float = 0.0
    expense_details: List[Tuple[str, float]] = Field(default_factory=list)

    @property
    def remaining(self) -> float:
        return self.budget - self.total_expenses

    def as_prompt_data(self) -> dict:
        return {
            "month": self.month,
            "budget": round(self.budget, 2),
            "totalExpenses": round(self.total_expenses, 2),
            "expenseDetails": [
                {"category": c, "amount": round(a, 2)} for c, a in self.expense_details
            ],
        }


class BudgetAdvice(BaseModel):
    report: str
    top_saving_category: str
    top_spending_category: str

    def to_response(self) -> dict:
        return {
            "financialAdviceReport": self.report,
            "topSavingCategory": self.top_saving_category,
            "topSpendingCategory": self.top_spending_category,
        }


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ChatSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    thread_id: Union[int, str] = Field(alias="threadId")


class TestAISchema(BaseModel):
    prompt: Optional[str] = None
    image: Optional[str] = Field(None, description="base64 image or data: URL")
