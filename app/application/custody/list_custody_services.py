"""
Use case: List custody services with filters and pagination.

Input: ListCustodyServicesQuery
Output: CustodyServicePageResult
Side effects: None.
Failure cases: CustodyValidationError for a malformed custodian ID or an
    unknown payment frequency.
"""

import logging

from app.application.custody.dtos import (
    CustodyServicePageResult,
    ListCustodyServicesQuery,
)
from app.application.custody.mappers import build_page_info, to_service_result
from app.domain.custody.entities import (
    CustodyServiceFilter,
    CustodyServiceSortField,
    PageRequest,
    PaymentFrequency,
    SortOrder,
)
from app.domain.custody.errors import CustodyValidationError
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class ListCustodyServicesUseCase:
    """Returns one page of custody services.

    Page numbers below 1 are treated as 1. A missing page size becomes
    ``default_page_size``; any given size, zero and negatives included,
    is clamped to ``[1, max_page_size]``. Unknown sort fields fall back
    to name, unknown sort directions to ascending.
    """

    def __init__(
        self,
        repository: CustodyServiceRepository,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._repository = repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    def execute(self, query: ListCustodyServicesQuery) -> CustodyServicePageResult:
        """Run the list use case.

        Args:
            query: Filters, ordering and pagination.

        Returns:
            The requested page with pagination metadata.
        """
        page = max(query.page or 1, 1)
        limit = query.limit if query.limit is not None else self._default_page_size
        limit = min(max(limit, 1), self._max_page_size)

        if query.custodian_id and not is_valid_uuid(query.custodian_id):
            raise CustodyValidationError("Invalid custodian ID format")

        payment_frequency = None
        if query.payment_frequency:
            if query.payment_frequency not in PaymentFrequency.values():
                raise CustodyValidationError("Invalid payment frequency")
            payment_frequency = PaymentFrequency(query.payment_frequency)

        sort_by = (
            CustodyServiceSortField(query.sort_by)
            if query.sort_by in {f.value for f in CustodyServiceSortField}
            else CustodyServiceSortField.NAME
        )
        sort_order = (
            SortOrder.DESC
            if (query.sort_order or "").lower() == SortOrder.DESC.value
            else SortOrder.ASC
        )

        filters = CustodyServiceFilter(
            search=query.search or None,
            custodian_id=query.custodian_id or None,
            payment_frequency=payment_frequency,
            currency=query.currency or None,
            min_fee=query.min_fee,
            max_fee=query.max_fee,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        services, total = self._repository.find_all(
            filters, PageRequest(page=page, limit=limit)
        )

        logger.debug("Listed %d of %d custody services.", len(services), total)
        return CustodyServicePageResult(
            services=[to_service_result(s) for s in services],
            pagination=build_page_info(page, limit, total),
        )
