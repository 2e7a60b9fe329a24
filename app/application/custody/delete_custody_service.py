"""
Use case: Delete a custody service.

Input: DeleteCustodyServiceCommand (service_id, actor)
Output: None
Side effects: Removes the custody service if it has no active positions.
Failure cases: CustodyValidationError, ActivePositionsError.
"""

import logging

from app.application.custody.dtos import DeleteCustodyServiceCommand
from app.domain.custody.errors import ActivePositionsError, CustodyValidationError
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid

logger = logging.getLogger(__name__)


class DeleteCustodyServiceUseCase:
    """Orchestrates deleting a custody service.

    Deletion is gated on the active position count. Deleting an ID
    that does not exist succeeds without error.
    """

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, command: DeleteCustodyServiceCommand) -> None:
        """Run the delete use case.

        Raises:
            CustodyValidationError: If the ID is malformed.
            ActivePositionsError: If positions still reference the service.
        """
        if not is_valid_uuid(command.service_id):
            raise CustodyValidationError("Invalid custody service ID format")

        check = self._repository.can_delete(command.service_id)
        if not check.can_delete:
            logger.warning(
                "Refused to delete custody service id=%s: %d active positions",
                command.service_id,
                check.active_position_count or 0,
            )
            raise ActivePositionsError(
                command.service_id,
                check.active_position_count or 0,
                check.reason,
            )

        self._repository.delete(command.service_id, command.actor)
        logger.info(
            "Deleted custody service id=%s by user=%s",
            command.service_id,
            command.actor.id,
        )
