"""
Entity-to-DTO mapping shared by the custody use cases.
"""

import math

from app.application.custody.dtos import (
    CustodianServicesResult,
    CustodyServiceResult,
    PageInfo,
)
from app.domain.custody.entities import CustodianWithServices, CustodyService


def to_service_result(service: CustodyService) -> CustodyServiceResult:
    """Map a CustodyService entity to its public DTO."""
    return CustodyServiceResult(
        id=service.id,
        name=service.name,
        custodian_id=service.custodian_id,
        custodian_name=service.custodian_name,
        fee=service.fee,
        payment_frequency=service.payment_frequency.value,
        currency_id=service.currency_id,
        currency=service.currency,
        min_weight=service.min_weight,
        max_weight=service.max_weight,
        created_at=service.created_at,
        updated_at=service.updated_at,
    )


def to_custodian_result(group: CustodianWithServices) -> CustodianServicesResult:
    return CustodianServicesResult(
        custodian_id=group.custodian_id,
        custodian_name=group.custodian_name,
        services=[to_service_result(s) for s in group.services],
    )


def build_page_info(page: int, limit: int, total: int) -> PageInfo:
    """Compute pagination metadata for a page of ``limit`` items."""
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return PageInfo(
        current_page=page,
        items_per_page=limit,
        total_items=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )
