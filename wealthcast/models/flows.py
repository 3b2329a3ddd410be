"""
Ingestion boundary: tagged flows and transactions.

Data sources disagree on what the sign of an amount means, so every raw record
is converted into a tagged Flow exactly once, at ingestion. Everything
downstream works with non-negative amounts and an explicit direction.
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wealthcast.errors import InvalidParameterError, from_validation_error


class FlowKind(str, Enum):
    """Direction of money movement."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


class SignConvention(str, Enum):
    """How a data source encodes direction in the sign of an amount."""

    NEGATIVE_IS_INCOME = "negative_is_income"
    POSITIVE_IS_INCOME = "positive_is_income"


class Flow(BaseModel):
    """A directed, non-negative money movement."""

    model_config = ConfigDict(frozen=True)

    kind: FlowKind = Field(..., description="Inflow or outflow")
    amount: float = Field(..., ge=0, description="Magnitude in currency units")

    @classmethod
    def from_signed(cls, amount: float, convention: SignConvention) -> "Flow":
        """Build a Flow from a signed amount using the source's convention."""
        if convention == SignConvention.NEGATIVE_IS_INCOME:
            kind = FlowKind.INFLOW if amount < 0 else FlowKind.OUTFLOW
        else:
            kind = FlowKind.INFLOW if amount > 0 else FlowKind.OUTFLOW
        return cls(kind=kind, amount=abs(amount))

    @classmethod
    def inflow(cls, amount: float) -> "Flow":
        return cls(kind=FlowKind.INFLOW, amount=amount)

    @classmethod
    def outflow(cls, amount: float) -> "Flow":
        return cls(kind=FlowKind.OUTFLOW, amount=amount)


class Transaction(BaseModel):
    """A single immutable transaction record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Source identifier")
    flow: Flow = Field(..., description="Direction and magnitude")
    date: dt.date = Field(..., description="Posting date")
    category: str = Field(..., min_length=1, description="Category tag")
    merchant: Optional[str] = Field(default=None, description="Merchant name")
    time: Optional[str] = Field(default=None, description="Time of day as HH:MM")

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        """Accept HH:MM, HH:MM:SS or a bare HH, with an hour in 0-23."""
        if v is None:
            return v
        hour_part, *rest = v.split(":")
        valid = (
            hour_part.isdigit()
            and 0 <= int(hour_part) <= 23
            and len(rest) <= 2
            and all(len(part) == 2 and part.isdigit() and int(part) <= 59 for part in rest)
        )
        if not valid:
            raise ValueError(f"time must look like HH:MM, got {v!r}")
        return v

    @property
    def amount(self) -> float:
        return self.flow.amount

    @property
    def is_inflow(self) -> bool:
        return self.flow.kind == FlowKind.INFLOW

    @property
    def is_outflow(self) -> bool:
        return self.flow.kind == FlowKind.OUTFLOW

    @property
    def hour(self) -> Optional[int]:
        """Hour of day, or None when the source did not record a time."""
        if self.time is None:
            return None
        return int(self.time.split(":")[0])


def normalize_transactions(
    records: Iterable[Dict[str, Any]], convention: SignConvention
) -> List[Transaction]:
    """
    Convert raw signed records into Transactions.

    Args:
        records: Dicts with id, amount (signed), date, category and optional
            merchant/time keys
        convention: Sign convention of the source that produced the records

    Returns:
        List of Transactions in input order

    Raises:
        InvalidParameterError: If a record is malformed
    """
    transactions = []
    for record in records:
        try:
            transactions.append(
                Transaction(
                    id=str(record["id"]),
                    flow=Flow.from_signed(float(record["amount"]), convention),
                    date=record["date"],
                    category=record["category"],
                    merchant=record.get("merchant"),
                    time=record.get("time"),
                )
            )
        except KeyError as e:
            raise InvalidParameterError(f"Transaction record missing field {e}")
        except ValidationError as e:
            raise from_validation_error(e)
    return transactions

