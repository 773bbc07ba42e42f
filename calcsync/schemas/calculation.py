"""Calculation Schemas: request bodies and read projections for /calculations.

Invariants:
    - Clients never send result; it is always computed server-side
    - operation accepts "Add"/"add"/0 (legacy code) and also the legacy key "operand"
    - left/right must be finite numbers
    - Page responses serialize as {totalCount, page, pageSize, data}

Design Decisions:
    - alias + populate_by_name on camelCase fields: FastAPI re-validates the dumped
      (aliased) dict, so validation and serialization must share the alias
    - parse_operation errors re-raised as ValueError so Pydantic reports them per field
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from calcsync.core.domain_types import Operation
from calcsync.core.errors import UnsupportedOperationError
from calcsync.core.evaluate import parse_operation


class CalculationCreate(BaseModel):
    """Create payload: operands and operation only."""
    left: float = Field(allow_inf_nan=False)
    right: float = Field(allow_inf_nan=False)
    operation: Operation = Field(
        validation_alias=AliasChoices("operation", "operand"),
    )

    @field_validator("operation", mode="before")
    @classmethod
    def coerce_operation(cls, v: object) -> Operation:
        try:
            return parse_operation(v)
        except UnsupportedOperationError as e:
            raise ValueError(
                "Invalid operation. Must be one of Add, Subtract, Multiply, Divide.",
            ) from e


class CalculationReplace(CalculationCreate):
    """PUT payload: full replacement of every mutable field."""


class CalculationResult(BaseModel):
    """Response to create and replace."""
    result: float
    operation: str


class CalculationSummary(BaseModel):
    """List item: read projection with owner display name."""
    id: UUID
    left: float
    right: float
    operation: str
    result: float
    username: str | None = None


class CalculationPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_count: int = Field(alias="totalCount")
    page: int
    page_size: int = Field(alias="pageSize")
    data: list[CalculationSummary]


class CalculationSearchResult(BaseModel):
    total: int
    data: list[CalculationSummary]


class DeactivateResponse(BaseModel):
    message: str
    id: UUID


class HistoryItem(CalculationSummary):
    """Admin audit row: includes inactive records."""
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(alias="isActive")
    deleted_at: datetime | None = Field(None, alias="deletedAt")
