"""
Adapter: In-memory custody service repository.

Implements CustodyServiceRepository port over plain Python collections.
Used by tests and by local runs without a database. Each instance owns
its records; ``reset()`` restores the fixture it was built from.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional
from uuid import uuid4

from app.domain.custody.entities import (
    AuditActor,
    CustodianWithServices,
    CustodyService,
    CustodyServiceChanges,
    CustodyServiceFilter,
    CustodyServiceSortField,
    DeletionCheck,
    NewCustodyService,
    PageRequest,
    PaymentFrequency,
    SortOrder,
)
from app.domain.custody.errors import CustodyServiceNotFoundError
from app.domain.custody.ports import CustodyServiceRepository

logger = logging.getLogger(__name__)

ACTIVE_POSITIONS_REASON = "Cannot delete custody service with active positions"

_UPDATABLE_FIELDS = (
    "name",
    "custodian_id",
    "fee",
    "payment_frequency",
    "currency_id",
    "min_weight",
    "max_weight",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _name_order(service: CustodyService) -> tuple[str, str]:
    return service.name.lower(), service.id


@dataclass
class CustodyFixture:
    """Seed state for an in-memory repository.

    Attributes:
        custodians: Custodian ID -> display name (may be empty).
        currencies: ISO code -> internal currency ID.
        services: Custody services present at start.
        active_positions: Custody service ID -> active position count.
    """

    custodians: dict[str, str] = field(default_factory=dict)
    currencies: dict[str, str] = field(default_factory=dict)
    services: list[CustodyService] = field(default_factory=list)
    active_positions: dict[str, int] = field(default_factory=dict)


def default_fixture() -> CustodyFixture:
    """Return a small catalog of custodians, currencies and services."""
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    currencies = {
        "USD": "bff9d8e0-e29b-41d4-a716-446655440001",
        "EUR": "bff9d8e0-e29b-41d4-a716-446655440002",
        "CHF": "bff9d8e0-e29b-41d4-a716-446655440003",
    }
    custodians = {
        "550e8400-e29b-41d4-a716-446655440001": "Loomis International",
        "550e8400-e29b-41d4-a716-446655440002": "Brinks Global Services",
        "550e8400-e29b-41d4-a716-446655440003": "Home Delivery",
    }
    services = [
        CustodyService(
            id="650e8400-e29b-41d4-a716-446655440001",
            name="Premium Vault Storage",
            custodian_id="550e8400-e29b-41d4-a716-446655440001",
            custodian_name="Loomis International",
            fee=Decimal("0.5"),
            payment_frequency=PaymentFrequency.ANNUAL,
            currency_id=currencies["CHF"],
            currency="CHF",
            min_weight=None,
            max_weight=None,
            created_at=created,
            updated_at=created,
        ),
        CustodyService(
            id="650e8400-e29b-41d4-a716-446655440002",
            name="Standard Vault",
            custodian_id="550e8400-e29b-41d4-a716-446655440002",
            custodian_name="Brinks Global Services",
            fee=Decimal("0.3"),
            payment_frequency=PaymentFrequency.QUARTERLY,
            currency_id=currencies["CHF"],
            currency="CHF",
            min_weight=Decimal("100"),
            max_weight=None,
            created_at=created,
            updated_at=created,
        ),
        CustodyService(
            id="650e8400-e29b-41d4-a716-446655440003",
            name="Home Delivery",
            custodian_id="550e8400-e29b-41d4-a716-446655440003",
            custodian_name="Home Delivery",
            fee=Decimal("20"),
            payment_frequency=PaymentFrequency.ONETIME,
            currency_id=currencies["CHF"],
            currency="CHF",
            min_weight=None,
            max_weight=None,
            created_at=created,
            updated_at=created,
        ),
    ]
    return CustodyFixture(
        custodians=custodians,
        currencies=currencies,
        services=services,
        active_positions={"650e8400-e29b-41d4-a716-446655440001": 5},
    )


class InMemoryCustodyServiceRepository(CustodyServiceRepository):
    """Custody service repository backed by dictionaries.

    Writes are serialized with a re-entrant lock so the adapter can be
    shared across FastAPI worker threads.
    """

    def __init__(
        self,
        fixture: Optional[CustodyFixture] = None,
        default_custodian_marker: str = "home delivery",
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._fixture = fixture if fixture is not None else CustodyFixture()
        self._marker = default_custodian_marker.lower()
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self.reset()

    # -- test helpers ---------------------------------------------------

    def reset(self) -> None:
        """Restore the fixture this repository was built from."""
        with self._lock:
            self._custodians = dict(self._fixture.custodians)
            self._currencies = dict(self._fixture.currencies)
            self._services = {s.id: s for s in self._fixture.services}
            self._active_positions = dict(self._fixture.active_positions)

    def set_active_position_count(self, service_id: str, count: int) -> None:
        with self._lock:
            self._active_positions[service_id] = count

    def add_custodian(self, custodian_id: str, name: str) -> None:
        with self._lock:
            self._custodians[custodian_id] = name

    def add_currency(self, iso_code: str, currency_id: str) -> None:
        with self._lock:
            self._currencies[iso_code] = currency_id

    # -- port implementation -------------------------------------------

    def find_all(
        self, filters: CustodyServiceFilter, page: PageRequest
    ) -> tuple[list[CustodyService], int]:
        with self._lock:
            matches = [s for s in self._services.values() if self._matches(s, filters)]

        # Ties fall back to name then id, ascending in both directions.
        matches.sort(key=_name_order)
        matches.sort(
            key=self._sort_key(filters.sort_by),
            reverse=filters.sort_order == SortOrder.DESC,
        )
        return matches[page.offset : page.offset + page.limit], len(matches)

    def find_by_id(self, service_id: str) -> Optional[CustodyService]:
        with self._lock:
            return self._services.get(service_id)

    def find_by_custodian_id(self, custodian_id: str) -> list[CustodyService]:
        with self._lock:
            services = [
                s for s in self._services.values() if s.custodian_id == custodian_id
            ]
        return sorted(services, key=_name_order)

    def find_default(self) -> Optional[CustodyService]:
        with self._lock:
            for service in self._services.values():
                if self._marker in service.custodian_name.lower():
                    return service
        return None

    def group_by_custodian(
        self, search: Optional[str] = None
    ) -> list[CustodianWithServices]:
        needle = search.lower() if search else None
        with self._lock:
            groups = []
            for custodian_id, custodian_name in self._custodians.items():
                if not custodian_name:
                    continue
                if needle and needle not in custodian_name.lower():
                    continue
                services = sorted(
                    (s for s in self._services.values() if s.custodian_id == custodian_id),
                    key=_name_order,
                )
                groups.append(
                    CustodianWithServices(
                        custodian_id=custodian_id,
                        custodian_name=custodian_name,
                        services=services,
                    )
                )
        return sorted(groups, key=lambda g: (g.custodian_name.lower(), g.custodian_id))

    def create(self, data: NewCustodyService, actor: AuditActor) -> CustodyService:
        now = self._clock()
        with self._lock:
            service = CustodyService(
                id=self._id_factory(),
                name=data.name,
                custodian_id=data.custodian_id,
                custodian_name=self._custodians.get(data.custodian_id, ""),
                fee=data.fee,
                payment_frequency=data.payment_frequency,
                currency_id=data.currency_id,
                currency=self._currency_code(data.currency_id),
                min_weight=data.min_weight,
                max_weight=data.max_weight,
                created_at=now,
                updated_at=now,
            )
            self._services[service.id] = service

        logger.debug("Stored custody service id=%s for user=%s.", service.id, actor.id)
        return service

    def update(
        self,
        service_id: str,
        changes: CustodyServiceChanges,
        actor: AuditActor,
    ) -> CustodyService:
        with self._lock:
            existing = self._services.get(service_id)
            if existing is None:
                raise CustodyServiceNotFoundError(service_id)

            supplied = changes.supplied()
            values = {k: v for k, v in supplied.items() if k in _UPDATABLE_FIELDS}
            if "custodian_id" in values:
                values["custodian_name"] = self._custodians.get(values["custodian_id"], "")
            if "currency_id" in values:
                values["currency"] = self._currency_code(values["currency_id"])

            updated = replace(existing, updated_at=self._clock(), **values)
            self._services[service_id] = updated

        logger.debug("Updated custody service id=%s for user=%s.", service_id, actor.id)
        return updated

    def delete(self, service_id: str, actor: AuditActor) -> None:
        with self._lock:
            if self._services.pop(service_id, None) is None:
                return
            self._active_positions.pop(service_id, None)
        logger.debug("Removed custody service id=%s for user=%s.", service_id, actor.id)

    def can_delete(self, service_id: str) -> DeletionCheck:
        with self._lock:
            count = self._active_positions.get(service_id, 0)
        if count > 0:
            return DeletionCheck(
                can_delete=False,
                reason=ACTIVE_POSITIONS_REASON,
                active_position_count=count,
            )
        return DeletionCheck(can_delete=True)

    def service_name_exists(
        self,
        custodian_id: str,
        name: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        wanted = name.lower()
        with self._lock:
            return any(
                s.custodian_id == custodian_id
                and s.name.lower() == wanted
                and s.id != exclude_id
                for s in self._services.values()
            )

    def custodian_exists(self, custodian_id: str) -> bool:
        with self._lock:
            return custodian_id in self._custodians

    def currency_exists(self, currency_id: str) -> bool:
        with self._lock:
            return currency_id in self._currencies.values()

    def resolve_currency_id(self, iso_code: str) -> Optional[str]:
        with self._lock:
            return self._currencies.get(iso_code)

    # -- helpers --------------------------------------------------------

    def _currency_code(self, currency_id: str) -> str:
        for code, cid in self._currencies.items():
            if cid == currency_id:
                return code
        return ""

    @staticmethod
    def _matches(service: CustodyService, filters: CustodyServiceFilter) -> bool:
        if filters.search and filters.search.lower() not in service.name.lower():
            return False
        if filters.custodian_id and service.custodian_id != filters.custodian_id:
            return False
        if filters.payment_frequency and service.payment_frequency != filters.payment_frequency:
            return False
        if filters.currency and service.currency != filters.currency:
            return False
        if filters.min_fee is not None and service.fee < filters.min_fee:
            return False
        if filters.max_fee is not None and service.fee > filters.max_fee:
            return False
        return True

    @staticmethod
    def _sort_key(sort_by: CustodyServiceSortField):
        if sort_by == CustodyServiceSortField.FEE:
            return lambda s: s.fee
        if sort_by == CustodyServiceSortField.CREATED_AT:
            return lambda s: s.created_at
        return lambda s: s.name.lower()
