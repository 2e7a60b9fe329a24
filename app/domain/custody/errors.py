"""
Domain-specific errors for the custody bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class CustodyDomainError(Exception):
    """Base error for all custody domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class CustodyValidationError(CustodyDomainError):
    """Raised when a request breaks a structural or business rule."""


class ReferenceNotFoundError(CustodyDomainError):
    """Raised when a referenced custodian or currency does not exist."""


class CustodianNotFoundError(ReferenceNotFoundError):
    """Raised when a custody service points at an unknown custodian."""

    def __init__(self, custodian_id: str) -> None:
        super().__init__("Custodian not found")
        self.custodian_id = custodian_id


class CurrencyNotFoundError(ReferenceNotFoundError):
    """Raised when a currency ISO code cannot be resolved."""

    def __init__(self, currency: str) -> None:
        super().__init__(f"Currency '{currency}' not found")
        self.currency = currency


class CustodyConflictError(CustodyDomainError):
    """Raised when an operation collides with existing state."""


class DuplicateServiceNameError(CustodyConflictError):
    """Raised when a custodian already offers a service with the same name."""

    def __init__(self, custodian_id: str, name: str) -> None:
        super().__init__(
            "Custody service with this name already exists for this custodian"
        )
        self.custodian_id = custodian_id
        self.name = name


class ActivePositionsError(CustodyConflictError):
    """Raised when deleting a custody service that still backs positions."""

    def __init__(
        self,
        service_id: str,
        active_position_count: int,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(
            reason or "Cannot delete custody service with active positions"
        )
        self.service_id = service_id
        self.active_position_count = active_position_count
        self.reason = self.message


class CustodyServiceNotFoundError(CustodyDomainError):
    """Raised when a custody service cannot be found."""

    def __init__(self, service_id: Optional[str] = None) -> None:
        if service_id is None:
            super().__init__("Default custody service not found")
        else:
            super().__init__(f"Custody service not found: {service_id}")
        self.service_id = service_id


class CustodyStorageError(CustodyDomainError):
    """Raised when the backing store fails for infrastructural reasons."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Custody storage failure during {operation}")
        self.operation = operation
