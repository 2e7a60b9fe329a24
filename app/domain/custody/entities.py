"""
Domain entities for the custody bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class PaymentFrequency(str, Enum):
    """Billing cadence for a custody service fee."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ONETIME = "onetime"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


class SortOrder(str, Enum):
    """Direction for list ordering."""

    ASC = "asc"
    DESC = "desc"


class CustodyServiceSortField(str, Enum):
    """Columns a custody service list may be ordered by."""

    NAME = "name"
    FEE = "fee"
    CREATED_AT = "created_at"


class _Unset:
    """Marker type for a field that was not supplied in a partial update."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class AuditActor:
    """The authenticated caller performing a mutation.

    Forwarded to the repository for the audit trail; never interpreted
    by the domain.
    """

    id: str
    email: str
    role: str = "admin"


@dataclass(frozen=True)
class CustodyService:
    """A named vaulting arrangement offered by a custodian."""

    id: str
    name: str
    custodian_id: str
    custodian_name: str
    fee: Decimal
    payment_frequency: PaymentFrequency
    currency_id: str
    currency: str
    min_weight: Optional[Decimal]
    max_weight: Optional[Decimal]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CustodyServiceDraft:
    """Raw create request as received from a caller.

    Values are loosely typed on purpose: the validator decides whether
    they are acceptable.
    """

    name: Optional[str]
    custodian_id: Optional[str]
    fee: Any
    payment_frequency: Optional[str]
    currency: Optional[str]
    min_weight: Any = None
    max_weight: Any = None


@dataclass(frozen=True)
class NewCustodyService:
    """A validated custody service ready to be persisted."""

    name: str
    custodian_id: str
    fee: Decimal
    payment_frequency: PaymentFrequency
    currency_id: str
    min_weight: Optional[Decimal] = None
    max_weight: Optional[Decimal] = None


@dataclass(frozen=True)
class CustodyServiceChanges:
    """Partial update of a custody service.

    Fields left as ``UNSET`` are not touched. ``None`` on an optional
    weight clears it. ``currency`` carries the ISO code supplied by the
    caller; ``currency_id`` is filled in once the code is resolved.
    """

    name: Any = UNSET
    custodian_id: Any = UNSET
    fee: Any = UNSET
    payment_frequency: Any = UNSET
    currency: Any = UNSET
    currency_id: Any = UNSET
    min_weight: Any = UNSET
    max_weight: Any = UNSET

    def supplied(self) -> dict[str, Any]:
        """Return only the fields that were supplied."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_supplied(self, name: str) -> bool:
        return getattr(self, name) is not UNSET


@dataclass(frozen=True)
class CustodyServiceFilter:
    """Search criteria for listing custody services."""

    search: Optional[str] = None
    custodian_id: Optional[str] = None
    payment_frequency: Optional[PaymentFrequency] = None
    currency: Optional[str] = None
    min_fee: Optional[Decimal] = None
    max_fee: Optional[Decimal] = None
    sort_by: CustodyServiceSortField = CustodyServiceSortField.NAME
    sort_order: SortOrder = SortOrder.ASC


@dataclass(frozen=True)
class PageRequest:
    """Offset pagination window (1-indexed page)."""

    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CustodianWithServices:
    """A custodian together with every custody service it offers."""

    custodian_id: str
    custodian_name: str
    services: list[CustodyService] = field(default_factory=list)


@dataclass(frozen=True)
class DeletionCheck:
    """Outcome of checking whether a custody service may be deleted."""

    can_delete: bool
    reason: Optional[str] = None
    active_position_count: Optional[int] = None
