"""
Data Transfer Objects for the custody application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.custody.entities import (
    AuditActor,
    CustodyServiceChanges,
    CustodyServiceDraft,
)


@dataclass(frozen=True)
class CreateCustodyServiceCommand:
    """Input DTO for creating a custody service.

    Attributes:
        draft: The raw create request.
        actor: Authenticated caller, forwarded for the audit trail.
    """

    draft: CustodyServiceDraft
    actor: AuditActor


@dataclass(frozen=True)
class UpdateCustodyServiceCommand:
    """Input DTO for a partial update of a custody service.

    Attributes:
        service_id: ID of the service to update.
        changes: Supplied fields only; everything else stays UNSET.
        actor: Authenticated caller, forwarded for the audit trail.
    """

    service_id: str
    changes: CustodyServiceChanges
    actor: AuditActor


@dataclass(frozen=True)
class DeleteCustodyServiceCommand:
    """Input DTO for deleting a custody service."""

    service_id: str
    actor: AuditActor


@dataclass(frozen=True)
class ListCustodyServicesQuery:
    """Input DTO for listing custody services.

    Attributes:
        page: 1-indexed page number.
        limit: Items per page; None means the configured default.
        search: Case-insensitive substring of the service name.
        custodian_id: Exact custodian filter.
        payment_frequency: Exact payment frequency filter.
        currency: Exact ISO currency code filter.
        min_fee: Inclusive lower fee bound.
        max_fee: Inclusive upper fee bound.
        sort_by: name, fee or created_at.
        sort_order: asc or desc.
    """

    page: int = 1
    limit: Optional[int] = None
    search: Optional[str] = None
    custodian_id: Optional[str] = None
    payment_frequency: Optional[str] = None
    currency: Optional[str] = None
    min_fee: Optional[Decimal] = None
    max_fee: Optional[Decimal] = None
    sort_by: str = "name"
    sort_order: str = "asc"


@dataclass(frozen=True)
class CustodyServiceResult:
    """Output DTO for a custody service."""

    id: str
    name: str
    custodian_id: str
    custodian_name: str
    fee: Decimal
    payment_frequency: str
    currency_id: str
    currency: str
    min_weight: Optional[Decimal]
    max_weight: Optional[Decimal]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PageInfo:
    """Pagination metadata returned alongside a list.

    Attributes:
        current_page: The page that was returned.
        items_per_page: Page size used.
        total_items: Matches before pagination.
        total_pages: ceil(total_items / items_per_page).
        has_next_page: Whether a later page exists.
        has_previous_page: Whether an earlier page exists.
    """

    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


@dataclass(frozen=True)
class CustodyServicePageResult:
    """Output DTO for a page of custody services."""

    services: list[CustodyServiceResult]
    pagination: PageInfo


@dataclass(frozen=True)
class CustodianServicesResult:
    """Output DTO for a custodian and the services it offers."""

    custodian_id: str
    custodian_name: str
    services: list[CustodyServiceResult] = field(default_factory=list)


@dataclass(frozen=True)
class DeletionCheckResult:
    """Output DTO for a deletion preview."""

    service_id: str
    can_delete: bool
    reason: Optional[str] = None
    active_position_count: Optional[int] = None
