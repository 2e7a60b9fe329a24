"""
Use case: List the custody services offered by one custodian.

Input: custodian ID
Output: list[CustodyServiceResult]
Side effects: None.
Failure cases: CustodyValidationError, CustodianNotFoundError.
"""

from app.application.custody.dtos import CustodyServiceResult
from app.application.custody.mappers import to_service_result
from app.domain.custody.errors import CustodianNotFoundError, CustodyValidationError
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid


class ListCustodianServicesUseCase:
    """Returns every service of a custodian, ordered by name."""

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, custodian_id: str) -> list[CustodyServiceResult]:
        """Run the use case.

        Raises:
            CustodyValidationError: If the custodian ID is malformed.
            CustodianNotFoundError: If the custodian does not exist.
        """
        if not is_valid_uuid(custodian_id):
            raise CustodyValidationError("Invalid custodian ID format")
        if not self._repository.custodian_exists(custodian_id):
            raise CustodianNotFoundError(custodian_id)
        return [
            to_service_result(s)
            for s in self._repository.find_by_custodian_id(custodian_id)
        ]
