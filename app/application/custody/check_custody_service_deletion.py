"""
Use case: Preview whether a custody service can be deleted.

Input: service ID
Output: DeletionCheckResult
Side effects: None.
Failure cases: CustodyValidationError, CustodyServiceNotFoundError.
"""

from app.application.custody.dtos import DeletionCheckResult
from app.domain.custody.errors import (
    CustodyServiceNotFoundError,
    CustodyValidationError,
)
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid


class CheckCustodyServiceDeletionUseCase:
    """Reports the active position count that would block a delete.

    Unlike the delete itself, the preview requires the service to exist.
    """

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, service_id: str) -> DeletionCheckResult:
        if not is_valid_uuid(service_id):
            raise CustodyValidationError("Invalid custody service ID format")
        if self._repository.find_by_id(service_id) is None:
            raise CustodyServiceNotFoundError(service_id)

        check = self._repository.can_delete(service_id)
        return DeletionCheckResult(
            service_id=service_id,
            can_delete=check.can_delete,
            reason=check.reason,
            active_position_count=check.active_position_count,
        )
