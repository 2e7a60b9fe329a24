"""
Input validation rules for custody service requests.

Pure functions with no IO. Each validator stops at the first broken
rule and reports it; errors are never aggregated.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.domain.custody.entities import (
    UNSET,
    CustodyServiceChanges,
    CustodyServiceDraft,
    PaymentFrequency,
)

# Fractional digits kept by the NUMERIC(12, 2) fee and weight columns.
MONEY_SCALE = 2

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass."""

    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


def is_valid_uuid(value: Any) -> bool:
    """Return True if value is a hyphenated RFC 4122 identifier (v1-v5)."""
    return isinstance(value, str) and UUID_PATTERN.match(value) is not None


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric value to Decimal, or None if it is not numeric.

    Booleans are rejected even though they subclass int.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def exceeds_scale(value: Decimal, places: int = MONEY_SCALE) -> bool:
    """Return True if value has more fractional digits than the column keeps.

    Trailing zeros do not count: ``0.500`` fits a scale of 2.
    """
    return value.normalize().as_tuple().exponent < -places


def _check_weights(min_weight: Any, max_weight: Any) -> Optional[str]:
    low = high = None
    if min_weight is not None and min_weight is not UNSET:
        low = to_decimal(min_weight)
        if low is None:
            return "Minimum weight must be a number"
        if exceeds_scale(low):
            return f"Minimum weight must have at most {MONEY_SCALE} decimal places"
    if max_weight is not None and max_weight is not UNSET:
        high = to_decimal(max_weight)
        if high is None:
            return "Maximum weight must be a number"
        if exceeds_scale(high):
            return f"Maximum weight must have at most {MONEY_SCALE} decimal places"
    if low is not None and high is not None and low > high:
        return "Minimum weight cannot be greater than maximum weight"
    return None


def validate_create(draft: CustodyServiceDraft) -> ValidationResult:
    """Validate a request to create a custody service.

    Rules are checked in a fixed order: name, custodian ID, fee,
    payment frequency, currency, weight range.

    Args:
        draft: The raw create request.

    Returns:
        ValidationResult carrying the first failing rule's message.
    """
    if _is_blank(draft.name):
        return ValidationResult.fail("Custody service name is required")

    if not draft.custodian_id:
        return ValidationResult.fail("Custodian ID is required")

    if not is_valid_uuid(draft.custodian_id):
        return ValidationResult.fail("Invalid custodian ID format")

    if draft.fee is None:
        return ValidationResult.fail("Fee is required")

    fee = to_decimal(draft.fee)
    if fee is None:
        return ValidationResult.fail("Fee must be a number")

    if fee <= 0:
        return ValidationResult.fail("Fee must be a positive number")

    if exceeds_scale(fee):
        return ValidationResult.fail(
            f"Fee must have at most {MONEY_SCALE} decimal places"
        )

    if draft.payment_frequency not in PaymentFrequency.values():
        return ValidationResult.fail("Invalid payment frequency")

    if _is_blank(draft.currency):
        return ValidationResult.fail("Currency code is required")

    weight_error = _check_weights(draft.min_weight, draft.max_weight)
    if weight_error:
        return ValidationResult.fail(weight_error)

    return ValidationResult.ok()


def validate_update(changes: CustodyServiceChanges) -> ValidationResult:
    """Validate a partial update of a custody service.

    Only supplied fields are checked. Fee may be zero on update but
    never negative.

    Args:
        changes: The partial update.

    Returns:
        ValidationResult carrying the first failing rule's message.
    """
    if changes.is_supplied("name") and _is_blank(changes.name):
        return ValidationResult.fail("Custody service name cannot be empty")

    if changes.is_supplied("custodian_id") and not is_valid_uuid(
        changes.custodian_id
    ):
        return ValidationResult.fail("Invalid custodian ID format")

    if changes.is_supplied("fee"):
        if changes.fee is None:
            return ValidationResult.fail("Fee cannot be empty")
        fee = to_decimal(changes.fee)
        if fee is None:
            return ValidationResult.fail("Fee must be a number")
        # TODO: align with create (fee > 0) once product confirms zero-fee services are not allowed
        if fee < 0:
            return ValidationResult.fail("Fee cannot be negative")
        if exceeds_scale(fee):
            return ValidationResult.fail(
                f"Fee must have at most {MONEY_SCALE} decimal places"
            )

    if (
        changes.is_supplied("payment_frequency")
        and changes.payment_frequency not in PaymentFrequency.values()
    ):
        return ValidationResult.fail("Invalid payment frequency")

    if changes.is_supplied("currency") and _is_blank(changes.currency):
        return ValidationResult.fail("Currency code cannot be empty")

    weight_error = _check_weights(changes.min_weight, changes.max_weight)
    if weight_error:
        return ValidationResult.fail(weight_error)

    return ValidationResult.ok()
