"""
Use case: Partially update a custody service.

Input: UpdateCustodyServiceCommand (service_id, changes, actor)
Output: CustodyServiceResult
Side effects: Updates one custody service and refreshes updated_at.
Failure cases: CustodyValidationError, CustodyServiceNotFoundError,
    CustodianNotFoundError, CurrencyNotFoundError, DuplicateServiceNameError.
"""

import logging
from dataclasses import replace
from typing import Any

from app.application.custody.dtos import (
    CustodyServiceResult,
    UpdateCustodyServiceCommand,
)
from app.application.custody.mappers import to_service_result
from app.domain.custody.entities import (
    CustodyService,
    CustodyServiceChanges,
    PaymentFrequency,
)
from app.domain.custody.errors import (
    CurrencyNotFoundError,
    CustodianNotFoundError,
    CustodyServiceNotFoundError,
    CustodyValidationError,
    DuplicateServiceNameError,
)
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid, to_decimal, validate_update

logger = logging.getLogger(__name__)


def _optional_decimal(value: Any) -> Any:
    return None if value is None else to_decimal(value)


class UpdateCustodyServiceUseCase:
    """Orchestrates a partial update of a custody service.

    Only supplied fields are validated, resolved and written. Name
    uniqueness is re-checked whenever the name or the owning custodian
    changes, excluding the record itself.
    """

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, command: UpdateCustodyServiceCommand) -> CustodyServiceResult:
        """Run the update use case.

        Args:
            command: Target ID, supplied fields and the acting user.

        Returns:
            The custody service after the update.

        Raises:
            CustodyValidationError: If the ID or a supplied field is invalid.
            CustodyServiceNotFoundError: If the service does not exist.
            CustodianNotFoundError: If a new custodian does not exist.
            CurrencyNotFoundError: If a new currency code is unknown.
            DuplicateServiceNameError: If the resulting name is taken.
        """
        service_id = command.service_id
        changes = command.changes

        if not is_valid_uuid(service_id):
            raise CustodyValidationError("Invalid custody service ID format")

        validation = validate_update(changes)
        if not validation.valid:
            raise CustodyValidationError(validation.error)

        existing = self._repository.find_by_id(service_id)
        if existing is None:
            raise CustodyServiceNotFoundError(service_id)

        normalized = self._normalize(changes)
        self._check_weight_range(existing, normalized)

        if normalized.is_supplied("custodian_id"):
            if not self._repository.custodian_exists(normalized.custodian_id):
                raise CustodianNotFoundError(normalized.custodian_id)

        if normalized.is_supplied("currency"):
            currency_id = self._repository.resolve_currency_id(normalized.currency)
            if currency_id is None:
                raise CurrencyNotFoundError(normalized.currency)
            normalized = replace(normalized, currency_id=currency_id)

        if normalized.is_supplied("name") or normalized.is_supplied("custodian_id"):
            custodian_id = (
                normalized.custodian_id
                if normalized.is_supplied("custodian_id")
                else existing.custodian_id
            )
            name = normalized.name if normalized.is_supplied("name") else existing.name
            if self._repository.service_name_exists(
                custodian_id, name, exclude_id=service_id
            ):
                raise DuplicateServiceNameError(custodian_id, name)

        updated = self._repository.update(service_id, normalized, command.actor)

        logger.info(
            "Updated custody service id=%s fields=%s by user=%s",
            service_id,
            sorted(changes.supplied()),
            command.actor.id,
        )
        return to_service_result(updated)

    @staticmethod
    def _normalize(changes: CustodyServiceChanges) -> CustodyServiceChanges:
        """Coerce supplied raw values into their domain types."""
        values: dict[str, Any] = {}
        if changes.is_supplied("name"):
            values["name"] = changes.name.strip()
        if changes.is_supplied("fee"):
            values["fee"] = to_decimal(changes.fee)
        if changes.is_supplied("payment_frequency"):
            values["payment_frequency"] = PaymentFrequency(changes.payment_frequency)
        if changes.is_supplied("currency"):
            values["currency"] = changes.currency.strip()
        if changes.is_supplied("min_weight"):
            values["min_weight"] = _optional_decimal(changes.min_weight)
        if changes.is_supplied("max_weight"):
            values["max_weight"] = _optional_decimal(changes.max_weight)
        return replace(changes, **values)

    @staticmethod
    def _check_weight_range(
        existing: CustodyService, changes: CustodyServiceChanges
    ) -> None:
        """Reject updates whose resulting weight range would be inverted."""
        low = changes.min_weight if changes.is_supplied("min_weight") else existing.min_weight
        high = changes.max_weight if changes.is_supplied("max_weight") else existing.max_weight
        if low is not None and high is not None and low > high:
            raise CustodyValidationError(
                "Minimum weight cannot be greater than maximum weight"
            )
