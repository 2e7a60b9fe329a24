"""
Pydantic schemas for custody API request/response validation.

Schemas enforce the wire shape only: business rules (fee sign, weight
range, payment frequency membership, ID format) are checked by the
domain validators so the same messages reach every caller.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateCustodyServiceRequest(BaseModel):
    """Request schema for creating a custody service."""

    name: Optional[str] = Field(default=None, description="Custody service name")
    custodian_id: Optional[str] = Field(
        default=None, description="ID of the custodian offering the service"
    )
    fee: Optional[Decimal] = Field(default=None, description="Service fee")
    payment_frequency: Optional[str] = Field(
        default=None, description="monthly, quarterly, annual or onetime"
    )
    currency: Optional[str] = Field(
        default=None, description="Currency ISO code (e.g. 'CHF', 'EUR', 'USD')"
    )
    min_weight: Optional[Decimal] = Field(default=None, description="Minimum weight")
    max_weight: Optional[Decimal] = Field(default=None, description="Maximum weight")


class UpdateCustodyServiceRequest(BaseModel):
    """Request schema for a partial update.

    Only fields present in the body are applied; ``model_fields_set``
    tells an omitted field apart from an explicit null.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    custodian_id: Optional[str] = None
    fee: Optional[Decimal] = None
    payment_frequency: Optional[str] = None
    currency: Optional[str] = None
    min_weight: Optional[Decimal] = None
    max_weight: Optional[Decimal] = None


class CustodyServiceItem(BaseModel):
    """A single custody service in a response."""

    id: str
    name: str
    custodian_id: str
    custodian_name: str
    fee: Decimal
    payment_frequency: str
    currency_id: str
    currency: str
    min_weight: Optional[Decimal] = None
    max_weight: Optional[Decimal] = None
    created_at: datetime
    updated_at: datetime


class PaginationItem(BaseModel):
    """Pagination metadata in list responses."""

    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class CustodyServiceListResponse(BaseModel):
    """Response schema for the paginated custody service list."""

    services: list[CustodyServiceItem]
    pagination: PaginationItem


class CustodianWithServicesItem(BaseModel):
    """A custodian and its services."""

    custodian_id: str
    custodian_name: str
    services: list[CustodyServiceItem]


class CustodiansWithServicesResponse(BaseModel):
    """Response schema for the custodian overview."""

    custodians: list[CustodianWithServicesItem]


class CustodianServicesResponse(BaseModel):
    """Response schema for the services of one custodian."""

    custodian_id: str
    services: list[CustodyServiceItem]


class DeletionCheckResponse(BaseModel):
    """Response schema for the deletion preview."""

    service_id: str
    can_delete: bool
    reason: Optional[str] = None
    active_position_count: Optional[int] = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    storage_backend: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: Optional[str] = None
    active_position_count: Optional[int] = None
