"""
Use case: Create a custody service for a custodian.

Input: CreateCustodyServiceCommand (draft, actor)
Output: CustodyServiceResult
Side effects: Inserts one custody service.
Failure cases: CustodyValidationError, CustodianNotFoundError,
    CurrencyNotFoundError, DuplicateServiceNameError.
"""

import logging

from app.application.custody.dtos import (
    CreateCustodyServiceCommand,
    CustodyServiceResult,
)
from app.application.custody.mappers import to_service_result
from app.domain.custody.entities import NewCustodyService, PaymentFrequency
from app.domain.custody.errors import (
    CurrencyNotFoundError,
    CustodianNotFoundError,
    CustodyValidationError,
    DuplicateServiceNameError,
)
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import to_decimal, validate_create

logger = logging.getLogger(__name__)


class CreateCustodyServiceUseCase:
    """Orchestrates creating a custody service.

    Checks run in a fixed order and stop at the first failure:
    validation, custodian existence, currency resolution, name
    uniqueness within the custodian. Only then is the record written.
    """

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, command: CreateCustodyServiceCommand) -> CustodyServiceResult:
        """Run the create use case.

        Args:
            command: The create request and the acting user.

        Returns:
            The persisted custody service.

        Raises:
            CustodyValidationError: If the request breaks a field rule.
            CustodianNotFoundError: If the custodian does not exist.
            CurrencyNotFoundError: If the currency code is unknown.
            DuplicateServiceNameError: If the custodian already has
                a service with this name.
        """
        draft = command.draft
        validation = validate_create(draft)
        if not validation.valid:
            raise CustodyValidationError(validation.error)

        if not self._repository.custodian_exists(draft.custodian_id):
            raise CustodianNotFoundError(draft.custodian_id)

        currency_id = self._repository.resolve_currency_id(draft.currency.strip())
        if currency_id is None:
            raise CurrencyNotFoundError(draft.currency)

        name = draft.name.strip()
        if self._repository.service_name_exists(draft.custodian_id, name):
            raise DuplicateServiceNameError(draft.custodian_id, name)

        data = NewCustodyService(
            name=name,
            custodian_id=draft.custodian_id,
            fee=to_decimal(draft.fee),
            payment_frequency=PaymentFrequency(draft.payment_frequency),
            currency_id=currency_id,
            min_weight=to_decimal(draft.min_weight) if draft.min_weight is not None else None,
            max_weight=to_decimal(draft.max_weight) if draft.max_weight is not None else None,
        )
        service = self._repository.create(data, command.actor)

        logger.info(
            "Created custody service id=%s custodian=%s by user=%s",
            service.id,
            service.custodian_id,
            command.actor.id,
        )
        return to_service_result(service)
