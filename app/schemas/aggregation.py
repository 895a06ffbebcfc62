"""
Rollup maintenance schemas.

POST /api/analytics/aggregates/backfill → BackfillResponse
POST /api/analytics/aggregates/sweep    → SweepResponse
"""
from datetime import date
from pydantic import BaseModel, Field, model_validator


class BackfillRequest(BaseModel):
    from_date: date = Field(alias="from", examples=["2026-01-01"])
    to_date: date = Field(alias="to", examples=["2026-03-31"])

    @model_validator(mode="after")
    def _ordered(self):
        if self.from_date > self.to_date:
            raise ValueError("'from' must not be later than 'to'")
        return self


class BackfillResponse(BaseModel):
    organization_id: str
    user_days: int = Field(description="User-days recomputed.")
    batches: int
    invalidated_cache_entries: int


class SweepOrganizationResult(BaseModel):
    organization_id: str
    user_days: int


class SweepResponse(BaseModel):
    organizations: list[SweepOrganizationResult]
    invalidated_cache_entries: int
