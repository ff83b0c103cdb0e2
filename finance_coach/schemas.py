from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_coach.services.goals import GoalsRequest


class ErrorOut(BaseModel):
    error: str
    hint: str


class GoalsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # strict: numeric strings and booleans are rejected, not coerced
    target_amount: float = Field(..., alias="targetAmount", strict=True, allow_inf_nan=False)
    months: Optional[int] = Field(None, strict=True)
    by: Optional[str] = Field(None, description="Target date, YYYY-MM-DD")
    extras: Optional[str] = Field(None, description="'debug' adds intermediate series to meta")

    def to_request(self) -> GoalsRequest:
        return GoalsRequest(
            target_amount=self.target_amount,
            months=self.months,
            by=self.by,
            extras=self.extras,
        )


class HealthOut(BaseModel):
    ok: bool
