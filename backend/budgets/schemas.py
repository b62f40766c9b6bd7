from pydantic import BaseModel, ConfigDict, Field


class BudgetCreateSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_amount: float = Field(..., gt=0, alias="totalAmount")
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="YYYY-MM")
