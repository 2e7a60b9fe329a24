"""
Use case: Get the default custody service.

Input: None
Output: CustodyServiceResult
Side effects: None.
Failure cases: CustodyServiceNotFoundError when no default is configured.
"""

from app.application.custody.dtos import CustodyServiceResult
from app.application.custody.mappers import to_service_result
from app.domain.custody.errors import CustodyServiceNotFoundError
from app.domain.custody.ports import CustodyServiceRepository


class GetDefaultCustodyServiceUseCase:
    """Returns the service offered by the default (home delivery) custodian."""

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self) -> CustodyServiceResult:
        service = self._repository.find_default()
        if service is None:
            raise CustodyServiceNotFoundError()
        return to_service_result(service)
