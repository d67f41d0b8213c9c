# nutrascore/sales_dashboard/models.py
"""
Typed rows and payloads for the Sales Dashboard

Every row read from the store is validated here once, at the data-access
boundary. Rows that fail validation are logged and dropped before they
reach the metrics layer.

Also defines the two result envelopes used across the module:
- QueryResult: tagged read outcome (ok / empty / failed)
- WriteResult: explicit {data, error} pair for every write
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DEFAULT_SELLER_STATUS
from .periods import PERIOD_PATTERN

logger = logging.getLogger(__name__)

T = TypeVar('T')
M = TypeVar('M', bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SellerStatus = Literal['active', 'inactive', 'pending']


# =============================================================================
# RESULT ENVELOPES
# =============================================================================

class QueryStatus(str, Enum):
    OK = 'ok'
    EMPTY = 'empty'
    FAILED = 'failed'


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Outcome of a read: rows found, nothing found, or the query failed."""
    status: QueryStatus
    rows: List[T] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def of(cls, rows: Iterable[T]) -> 'QueryResult[T]':
        rows = list(rows)
        if not rows:
            return cls.empty()
        return cls(QueryStatus.OK, rows)

    @classmethod
    def empty(cls) -> 'QueryResult[T]':
        return cls(QueryStatus.EMPTY)

    @classmethod
    def failed(cls, reason: str) -> 'QueryResult[T]':
        return cls(QueryStatus.FAILED, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == QueryStatus.OK

    @property
    def is_empty(self) -> bool:
        return self.status == QueryStatus.EMPTY

    @property
    def is_failed(self) -> bool:
        return self.status == QueryStatus.FAILED

    def first(self) -> Optional[T]:
        return self.rows[0] if self.rows else None


@dataclass
class WriteResult(Generic[T]):
    """Explicit {data, error} pair returned by every write."""
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T = None) -> 'WriteResult[T]':
        return cls(data=data)

    @classmethod
    def failure(cls, error: str) -> 'WriteResult[T]':
        return cls(data=None, error=error)


def validate_rows(model: Type[M], records: Iterable[Dict[str, Any]], source: str) -> List[M]:
    """Validate raw records into ``model``; malformed records are logged and dropped."""
    valid = []
    for record in records:
        try:
            valid.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Dropping malformed {source} row {record.get('id', '')}: {e.errors()[0]['msg']}")
    return valid


def validation_message(error: ValidationError) -> str:
    """Short user-facing text for a payload ValidationError."""
    parts = []
    for err in error.errors():
        location = '.'.join(str(loc) for loc in err['loc'])
        parts.append(f"{location}: {err['msg']}" if location else err['msg'])
    return '; '.join(parts)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _parse_amount(value):
    if isinstance(value, str):
        return value.strip().replace(',', '.')
    return value


# =============================================================================
# ROWS
# =============================================================================

class AuditedRow(BaseModel):
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None


class KPISnapshot(BaseModel):
    """Precomputed monthly summary for the whole organization."""
    month_year: str
    total_sold: float = 0.0
    total_goal: float = 0.0
    total_clients: int = 0
    new_clients: int = 0
    global_avg_ticket: float = 0.0


class SalespersonSnapshot(BaseModel):
    """Per-period seller row (sold, goal tiers and client counts)."""
    id: Optional[str] = None
    month_year: str
    name: str
    sold: float = 0.0
    goal: float = 0.0
    challenge: float = 0.0
    mega: float = 0.0
    clients: int = 0
    new_clients: int = 0
    avg_ticket: float = 0.0
    photo_url: Optional[str] = None


class DailySale(BaseModel):
    date: date
    sales: float = 0.0
    goal: float = 0.0


class SellerProfile(AuditedRow):
    id: str
    name: str
    email: str
    status: SellerStatus
    photo_url: Optional[str] = None

    @field_validator('photo_url', mode='before')
    @classmethod
    def normalize_photo_url(cls, v):
        return _blank_to_none(v)


class SaleRecord(AuditedRow):
    id: str
    salesperson_id: str
    amount: float
    sale_date: date
    is_new_customer: bool = False
    order_number: str
    customer_name: Optional[str] = None


class BillingEntry(AuditedRow):
    id: str
    entry_date: date
    month_year: str
    released_amount: float = 0.0
    atr_amount: float = 0.0
    notes: Optional[str] = None


class BillingSummary(BaseModel):
    """Billing statement for one period: sum of its entries."""
    month_year: str
    released_amount: float = 0.0
    atr_amount: float = 0.0
    entry_count: int = 0
    notes: List[str] = Field(default_factory=list)

    @property
    def total_amount(self) -> float:
        return self.released_amount + self.atr_amount


class SellerTarget(AuditedRow):
    id: str
    seller_id: str
    month_year: str
    goal_value: float = 0.0
    challenge_value: float = 0.0
    mega_goal_value: float = 0.0


class UserRole(BaseModel):
    user_id: str
    role: str


class HistoryLogEntry(BaseModel):
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    action_type: str
    record_type: str
    record_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class SalespersonPerformance(BaseModel):
    """Seller profile joined with its aggregated sales for a period (derived)."""
    id: str
    name: str
    email: Optional[str] = None
    status: Optional[str] = None
    photo_url: Optional[str] = None
    month_year: str
    total_sales_amount: float = 0.0
    number_of_sales: int = 0
    new_customers: int = 0
    previous_period_total_sales_amount: float = 0.0
    previous_period_number_of_sales: int = 0
    current_goal_value: Optional[float] = None
    current_challenge_value: Optional[float] = None
    current_mega_goal_value: Optional[float] = None


# =============================================================================
# WRITE PAYLOADS
# =============================================================================

class SellerProfileCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    status: SellerStatus = DEFAULT_SELLER_STATUS
    photo_url: Optional[str] = None

    @field_validator('photo_url', mode='before')
    @classmethod
    def normalize_photo_url(cls, v):
        return _blank_to_none(v)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator('email')
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class SellerProfileUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    status: Optional[SellerStatus] = None
    photo_url: Optional[str] = None

    @field_validator('photo_url', mode='before')
    @classmethod
    def normalize_photo_url(cls, v):
        return _blank_to_none(v)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator('email')
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class SaleRecordCreate(BaseModel):
    salesperson_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    sale_date: date
    is_new_customer: bool = False
    order_number: str = Field(..., min_length=1, max_length=100)
    customer_name: Optional[str] = Field(None, max_length=255)

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v):
        return _parse_amount(v)

    @field_validator('customer_name', mode='before')
    @classmethod
    def normalize_customer_name(cls, v):
        return _blank_to_none(v)


class SaleRecordUpdate(BaseModel):
    """Owner (salesperson_id) and creator are not updatable."""
    model_config = ConfigDict(extra='ignore')

    amount: Optional[float] = Field(None, gt=0)
    sale_date: Optional[date] = None
    is_new_customer: Optional[bool] = None
    order_number: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_name: Optional[str] = Field(None, max_length=255)

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v):
        return _parse_amount(v)

    @field_validator('customer_name', mode='before')
    @classmethod
    def normalize_customer_name(cls, v):
        return _blank_to_none(v)


class BillingEntryCreate(BaseModel):
    entry_date: date
    released_amount: float = Field(0.0, ge=0)
    atr_amount: float = Field(0.0, ge=0)
    notes: Optional[str] = None

    @field_validator('released_amount', 'atr_amount', mode='before')
    @classmethod
    def parse_amounts(cls, v):
        return _parse_amount(v)

    @field_validator('notes', mode='before')
    @classmethod
    def normalize_notes(cls, v):
        return _blank_to_none(v)


class BillingEntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    released_amount: Optional[float] = Field(None, ge=0)
    atr_amount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None

    @field_validator('released_amount', 'atr_amount', mode='before')
    @classmethod
    def parse_amounts(cls, v):
        return _parse_amount(v)

    @field_validator('notes', mode='before')
    @classmethod
    def normalize_notes(cls, v):
        return _blank_to_none(v)


class SellerTargetCreate(BaseModel):
    seller_id: str = Field(..., min_length=1)
    month_year: str = Field(..., pattern=PERIOD_PATTERN.pattern)
    goal_value: float = Field(0.0, ge=0)
    challenge_value: float = Field(0.0, ge=0)
    mega_goal_value: float = Field(0.0, ge=0)


class SellerTargetUpdate(BaseModel):
    goal_value: Optional[float] = Field(None, ge=0)
    challenge_value: Optional[float] = Field(None, ge=0)
    mega_goal_value: Optional[float] = Field(None, ge=0)
