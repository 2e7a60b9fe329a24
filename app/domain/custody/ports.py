"""
Port interfaces (ABCs) for the custody bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Optional

from app.domain.custody.entities import (
    AuditActor,
    CustodianWithServices,
    CustodyService,
    CustodyServiceChanges,
    CustodyServiceFilter,
    DeletionCheck,
    NewCustodyService,
    PageRequest,
)


class CustodyServiceRepository(ABC):
    """Port for persisting and looking up custody services.

    Besides CRUD it answers the referential questions the use cases
    need: custodian existence, currency resolution, name uniqueness
    per custodian and active positions that block deletion.
    """

    @abstractmethod
    def find_all(
        self, filters: CustodyServiceFilter, page: PageRequest
    ) -> tuple[list[CustodyService], int]:
        """Return one page of matching custody services and the match count.

        Args:
            filters: Search criteria and ordering.
            page: Offset pagination window.

        Returns:
            Tuple of (services on the requested page, total matches
            before pagination).
        """
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, service_id: str) -> Optional[CustodyService]:
        """Return a custody service by its ID, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def find_by_custodian_id(self, custodian_id: str) -> list[CustodyService]:
        """Return all services of one custodian ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def find_default(self) -> Optional[CustodyService]:
        """Return the default custody service, or None if none is configured.

        The default is the first service whose custodian name carries the
        configured marker (e.g. "home delivery").
        """
        raise NotImplementedError

    @abstractmethod
    def group_by_custodian(
        self, search: Optional[str] = None
    ) -> list[CustodianWithServices]:
        """Return custodians with their services.

        Custodians without a name are skipped.

        Args:
            search: Optional case-insensitive filter on custodian name.
        """
        raise NotImplementedError

    @abstractmethod
    def create(self, data: NewCustodyService, actor: AuditActor) -> CustodyService:
        """Persist a new custody service and return it with its generated ID."""
        raise NotImplementedError

    @abstractmethod
    def update(
        self,
        service_id: str,
        changes: CustodyServiceChanges,
        actor: AuditActor,
    ) -> CustodyService:
        """Apply the supplied fields and refresh updated_at.

        Raises:
            CustodyServiceNotFoundError: If the service does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, service_id: str, actor: AuditActor) -> None:
        """Delete a custody service. Deleting a missing ID is a no-op."""
        raise NotImplementedError

    @abstractmethod
    def can_delete(self, service_id: str) -> DeletionCheck:
        """Report whether the service has no active positions."""
        raise NotImplementedError

    @abstractmethod
    def service_name_exists(
        self,
        custodian_id: str,
        name: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Return True if the custodian already has a service with this name.

        Comparison is case-insensitive. ``exclude_id`` lets a record keep
        its own name during an update.
        """
        raise NotImplementedError

    @abstractmethod
    def custodian_exists(self, custodian_id: str) -> bool:
        """Return True if the custodian exists."""
        raise NotImplementedError

    @abstractmethod
    def currency_exists(self, currency_id: str) -> bool:
        """Return True if a currency with this internal ID exists."""
        raise NotImplementedError

    @abstractmethod
    def resolve_currency_id(self, iso_code: str) -> Optional[str]:
        """Return the internal currency ID for an ISO code, or None."""
        raise NotImplementedError
