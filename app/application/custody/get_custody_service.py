"""
Use case: Get a single custody service by ID.

Input: service ID
Output: CustodyServiceResult
Side effects: None.
Failure cases: CustodyValidationError, CustodyServiceNotFoundError.
"""

import logging

from app.application.custody.dtos import CustodyServiceResult
from app.application.custody.mappers import to_service_result
from app.domain.custody.errors import (
    CustodyServiceNotFoundError,
    CustodyValidationError,
)
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid

logger = logging.getLogger(__name__)


class GetCustodyServiceUseCase:
    """Looks up one custody service."""

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, service_id: str) -> CustodyServiceResult:
        """Return the custody service with this ID.

        Raises:
            CustodyValidationError: If the ID is malformed.
            CustodyServiceNotFoundError: If no such service exists.
        """
        if not is_valid_uuid(service_id):
            raise CustodyValidationError("Invalid custody service ID format")

        service = self._repository.find_by_id(service_id)
        if service is None:
            raise CustodyServiceNotFoundError(service_id)
        return to_service_result(service)
