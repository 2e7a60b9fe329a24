"""
Use case: List custodians together with their custody services.

Input: optional custodian name search
Output: list[CustodianServicesResult]
Side effects: None.
"""

import logging
from typing import Optional

from app.application.custody.dtos import CustodianServicesResult
from app.application.custody.mappers import to_custodian_result
from app.domain.custody.ports import CustodyServiceRepository

logger = logging.getLogger(__name__)


class GetCustodiansWithServicesUseCase:
    """Groups all custody services by their custodian."""

    def __init__(self, repository: CustodyServiceRepository) -> None:
        self._repository = repository

    def execute(self, search: Optional[str] = None) -> list[CustodianServicesResult]:
        """Return custodians ordered by name, each with its services.

        Args:
            search: Optional case-insensitive substring of the custodian name.
        """
        groups = self._repository.group_by_custodian(search=search or None)
        logger.debug("Retrieved %d custodians with services.", len(groups))
        return [to_custodian_result(g) for g in groups]
