"""
Tests for the custody application layer (use cases).

Use cases run against the in-memory repository, or a MagicMock port
where the test is about orchestration order.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.application.custody.check_custody_service_deletion import (
    CheckCustodyServiceDeletionUseCase,
)
from app.application.custody.create_custody_service import CreateCustodyServiceUseCase
from app.application.custody.delete_custody_service import DeleteCustodyServiceUseCase
from app.application.custody.dtos import (
    CreateCustodyServiceCommand,
    DeleteCustodyServiceCommand,
    ListCustodyServicesQuery,
    UpdateCustodyServiceCommand,
)
from app.application.custody.get_custodians_with_services import (
    GetCustodiansWithServicesUseCase,
)
from app.application.custody.get_custody_service import GetCustodyServiceUseCase
from app.application.custody.get_default_custody_service import (
    GetDefaultCustodyServiceUseCase,
)
from app.application.custody.list_custodian_services import (
    ListCustodianServicesUseCase,
)
from app.application.custody.list_custody_services import ListCustodyServicesUseCase
from app.application.custody.update_custody_service import UpdateCustodyServiceUseCase
from app.domain.custody.entities import (
    AuditActor,
    CustodyServiceChanges,
    CustodyServiceDraft,
    DeletionCheck,
)
from app.domain.custody.errors import (
    ActivePositionsError,
    CurrencyNotFoundError,
    CustodianNotFoundError,
    CustodyServiceNotFoundError,
    CustodyValidationError,
    DuplicateServiceNameError,
)
from app.infrastructure.custody.in_memory_repository import (
    CustodyFixture,
    InMemoryCustodyServiceRepository,
    default_fixture,
)

LOOMIS_ID = "550e8400-e29b-41d4-a716-446655440001"
BRINKS_ID = "550e8400-e29b-41d4-a716-446655440002"
UNKNOWN_CUSTODIAN_ID = "550e8400-e29b-41d4-a716-446655440099"
PREMIUM_ID = "650e8400-e29b-41d4-a716-446655440001"
STANDARD_ID = "650e8400-e29b-41d4-a716-446655440002"
HOME_DELIVERY_ID = "650e8400-e29b-41d4-a716-446655440003"
MISSING_ID = "650e8400-e29b-41d4-a716-446655440099"

ACTOR = AuditActor(id="user-1", email="ops@example.com")


class TickingClock:
    """Returns a strictly increasing timestamp on each call."""

    def __init__(self) -> None:
        self._now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def repository() -> InMemoryCustodyServiceRepository:
    return InMemoryCustodyServiceRepository(
        fixture=default_fixture(), clock=TickingClock()
    )


def _create_command(**overrides) -> CreateCustodyServiceCommand:
    values = {
        "name": "Gold Vault",
        "custodian_id": LOOMIS_ID,
        "fee": 0.5,
        "payment_frequency": "annual",
        "currency": "CHF",
    }
    values.update(overrides)
    return CreateCustodyServiceCommand(draft=CustodyServiceDraft(**values), actor=ACTOR)


def _update_command(service_id: str, **changes) -> UpdateCustodyServiceCommand:
    return UpdateCustodyServiceCommand(
        service_id=service_id, changes=CustodyServiceChanges(**changes), actor=ACTOR
    )


class TestCreateCustodyServiceUseCase:
    """Tests for CreateCustodyServiceUseCase."""

    def test_creates_service_with_resolved_references(self, repository) -> None:
        result = CreateCustodyServiceUseCase(repository).execute(_create_command())

        assert result.name == "Gold Vault"
        assert result.custodian_name == "Loomis International"
        assert result.currency == "CHF"
        assert result.fee == Decimal("0.5")
        assert result.payment_frequency == "annual"
        assert result.created_at == result.updated_at
        assert repository.find_by_id(result.id) is not None

    def test_name_is_trimmed(self, repository) -> None:
        result = CreateCustodyServiceUseCase(repository).execute(
            _create_command(name="  Silver Vault  ")
        )
        assert result.name == "Silver Vault"

    def test_validation_error_raised_before_repository_access(self) -> None:
        port = MagicMock()
        with pytest.raises(CustodyValidationError, match="Fee must be a positive number"):
            CreateCustodyServiceUseCase(port).execute(_create_command(fee=-10))
        port.custodian_exists.assert_not_called()
        port.create.assert_not_called()

    def test_unknown_custodian_rejected(self, repository) -> None:
        with pytest.raises(CustodianNotFoundError):
            CreateCustodyServiceUseCase(repository).execute(
                _create_command(custodian_id=UNKNOWN_CUSTODIAN_ID)
            )

    def test_unknown_currency_rejected(self, repository) -> None:
        with pytest.raises(CurrencyNotFoundError, match="Currency 'XYZ' not found"):
            CreateCustodyServiceUseCase(repository).execute(_create_command(currency="XYZ"))

    def test_duplicate_name_rejected_case_insensitively(self, repository) -> None:
        with pytest.raises(DuplicateServiceNameError):
            CreateCustodyServiceUseCase(repository).execute(
                _create_command(name="premium vault storage")
            )

    def test_same_name_allowed_for_another_custodian(self, repository) -> None:
        result = CreateCustodyServiceUseCase(repository).execute(
            _create_command(name="Premium Vault Storage", custodian_id=BRINKS_ID)
        )
        assert result.custodian_id == BRINKS_ID

    def test_checks_run_in_order(self) -> None:
        port = MagicMock()
        port.custodian_exists.return_value = True
        port.resolve_currency_id.return_value = "currency-id"
        port.service_name_exists.return_value = True

        with pytest.raises(DuplicateServiceNameError):
            CreateCustodyServiceUseCase(port).execute(_create_command())

        called = [c[0] for c in port.method_calls]
        assert called == ["custodian_exists", "resolve_currency_id", "service_name_exists"]
        port.create.assert_not_called()


class TestUpdateCustodyServiceUseCase:
    """Tests for UpdateCustodyServiceUseCase."""

    def test_only_supplied_fields_change(self, repository) -> None:
        before = repository.find_by_id(STANDARD_ID)
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(STANDARD_ID, fee=0.6)
        )

        assert result.fee == Decimal("0.6")
        assert result.name == before.name
        assert result.min_weight == before.min_weight
        assert result.payment_frequency == "quarterly"
        assert result.updated_at > before.updated_at
        assert result.created_at == before.created_at

    def test_zero_fee_allowed(self, repository) -> None:
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(STANDARD_ID, fee=0)
        )
        assert result.fee == Decimal("0")

    def test_explicit_null_clears_weight(self, repository) -> None:
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(STANDARD_ID, min_weight=None)
        )
        assert result.min_weight is None

    def test_weight_range_checked_against_stored_value(self, repository) -> None:
        """Standard Vault has min_weight 100; max_weight 50 would invert the range."""
        with pytest.raises(CustodyValidationError, match="Minimum weight"):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command(STANDARD_ID, max_weight=50)
            )

    def test_currency_change_resolves_id(self, repository) -> None:
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(STANDARD_ID, currency="EUR")
        )
        assert result.currency == "EUR"
        assert result.currency_id == "bff9d8e0-e29b-41d4-a716-446655440002"

    def test_custodian_change_refreshes_name(self, repository) -> None:
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(STANDARD_ID, custodian_id=LOOMIS_ID)
        )
        assert result.custodian_name == "Loomis International"

    def test_malformed_id_rejected(self, repository) -> None:
        with pytest.raises(CustodyValidationError, match="Invalid custody service ID format"):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command("invalid-uuid", fee=1)
            )

    def test_missing_service_raises_not_found(self, repository) -> None:
        with pytest.raises(CustodyServiceNotFoundError):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command(MISSING_ID, fee=1)
            )

    def test_renaming_to_taken_name_rejected(self, repository) -> None:
        CreateCustodyServiceUseCase(repository).execute(
            _create_command(name="Second Vault", custodian_id=LOOMIS_ID)
        )
        with pytest.raises(DuplicateServiceNameError):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command(PREMIUM_ID, name="SECOND VAULT")
            )

    def test_renaming_to_own_name_allowed(self, repository) -> None:
        result = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(PREMIUM_ID, name="premium vault storage")
        )
        assert result.name == "premium vault storage"

    def test_moving_to_custodian_with_same_name_rejected(self, repository) -> None:
        CreateCustodyServiceUseCase(repository).execute(
            _create_command(name="Standard Vault", custodian_id=LOOMIS_ID)
        )
        with pytest.raises(DuplicateServiceNameError):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command(STANDARD_ID, custodian_id=LOOMIS_ID)
            )

    def test_unknown_currency_rejected(self, repository) -> None:
        with pytest.raises(CurrencyNotFoundError):
            UpdateCustodyServiceUseCase(repository).execute(
                _update_command(STANDARD_ID, currency="XYZ")
            )


class TestDeleteCustodyServiceUseCase:
    """Tests for DeleteCustodyServiceUseCase."""

    def test_blocked_by_active_positions(self, repository) -> None:
        with pytest.raises(ActivePositionsError) as exc_info:
            DeleteCustodyServiceUseCase(repository).execute(
                DeleteCustodyServiceCommand(service_id=PREMIUM_ID, actor=ACTOR)
            )
        assert exc_info.value.active_position_count == 5
        assert repository.find_by_id(PREMIUM_ID) is not None

    def test_deletes_when_no_positions(self, repository) -> None:
        DeleteCustodyServiceUseCase(repository).execute(
            DeleteCustodyServiceCommand(service_id=STANDARD_ID, actor=ACTOR)
        )
        assert repository.find_by_id(STANDARD_ID) is None

    def test_deleting_missing_id_succeeds(self, repository) -> None:
        DeleteCustodyServiceUseCase(repository).execute(
            DeleteCustodyServiceCommand(service_id=MISSING_ID, actor=ACTOR)
        )

    def test_malformed_id_rejected(self, repository) -> None:
        with pytest.raises(CustodyValidationError):
            DeleteCustodyServiceUseCase(repository).execute(
                DeleteCustodyServiceCommand(service_id="invalid-uuid", actor=ACTOR)
            )

    def test_gate_checked_before_delete(self) -> None:
        port = MagicMock()
        port.can_delete.return_value = DeletionCheck(
            can_delete=False, reason="busy", active_position_count=2
        )
        with pytest.raises(ActivePositionsError, match="busy"):
            DeleteCustodyServiceUseCase(port).execute(
                DeleteCustodyServiceCommand(service_id=STANDARD_ID, actor=ACTOR)
            )
        port.delete.assert_not_called()


class TestListCustodyServicesUseCase:
    """Tests for ListCustodyServicesUseCase."""

    def test_default_listing_sorted_by_name(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(ListCustodyServicesQuery())
        assert [s.name for s in result.services] == [
            "Home Delivery",
            "Premium Vault Storage",
            "Standard Vault",
        ]
        assert result.pagination.total_items == 3
        assert result.pagination.total_pages == 1

    def test_second_page_of_one(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(page=2, limit=1)
        )
        assert [s.name for s in result.services] == ["Premium Vault Storage"]
        page = result.pagination
        assert (page.current_page, page.items_per_page, page.total_pages) == (2, 1, 3)
        assert page.has_next_page
        assert page.has_previous_page

    def test_page_and_limit_are_clamped(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository, max_page_size=2).execute(
            ListCustodyServicesQuery(page=0, limit=500)
        )
        assert result.pagination.current_page == 1
        assert result.pagination.items_per_page == 2
        assert len(result.services) == 2

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_clamped_to_one(self, repository, limit) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(limit=limit)
        )
        assert result.pagination.items_per_page == 1
        assert result.pagination.total_pages == 3
        assert len(result.services) == 1

    def test_missing_limit_uses_configured_default(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository, default_page_size=2).execute(
            ListCustodyServicesQuery()
        )
        assert result.pagination.items_per_page == 2
        assert len(result.services) == 2

    def test_malformed_custodian_filter_rejected(self) -> None:
        port = MagicMock()
        with pytest.raises(CustodyValidationError, match="Invalid custodian ID format"):
            ListCustodyServicesUseCase(port).execute(
                ListCustodyServicesQuery(custodian_id="not-a-uuid")
            )
        port.find_all.assert_not_called()

    def test_fee_range_filter(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(min_fee=Decimal("0.4"), max_fee=Decimal("1"))
        )
        assert [s.id for s in result.services] == [PREMIUM_ID]

    def test_search_is_case_insensitive(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(search="VAULT")
        )
        assert {s.id for s in result.services} == {PREMIUM_ID, STANDARD_ID}

    def test_sort_by_fee_descending(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(sort_by="fee", sort_order="desc")
        )
        assert [s.fee for s in result.services] == [
            Decimal("20"),
            Decimal("0.5"),
            Decimal("0.3"),
        ]

    def test_unknown_sort_field_falls_back_to_name(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(sort_by="custodyservicename; DROP TABLE")
        )
        assert result.services[0].name == "Home Delivery"

    def test_invalid_payment_frequency_rejected(self, repository) -> None:
        with pytest.raises(CustodyValidationError, match="Invalid payment frequency"):
            ListCustodyServicesUseCase(repository).execute(
                ListCustodyServicesQuery(payment_frequency="weekly")
            )

    def test_payment_frequency_filter(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(payment_frequency="onetime")
        )
        assert [s.id for s in result.services] == [HOME_DELIVERY_ID]

    def test_empty_page_past_the_end(self, repository) -> None:
        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(page=5, limit=2)
        )
        assert result.services == []
        assert not result.pagination.has_next_page


class TestReadUseCases:
    """Tests for the single-record and grouping use cases."""

    def test_get_by_id(self, repository) -> None:
        result = GetCustodyServiceUseCase(repository).execute(PREMIUM_ID)
        assert result.name == "Premium Vault Storage"

    def test_get_missing_raises_not_found(self, repository) -> None:
        with pytest.raises(CustodyServiceNotFoundError):
            GetCustodyServiceUseCase(repository).execute(MISSING_ID)

    def test_get_malformed_id_rejected(self, repository) -> None:
        with pytest.raises(CustodyValidationError):
            GetCustodyServiceUseCase(repository).execute("invalid-uuid")

    def test_default_service_is_home_delivery(self, repository) -> None:
        result = GetDefaultCustodyServiceUseCase(repository).execute()
        assert result.id == HOME_DELIVERY_ID

    def test_default_missing_raises_not_found(self) -> None:
        empty = InMemoryCustodyServiceRepository(fixture=CustodyFixture())
        with pytest.raises(CustodyServiceNotFoundError, match="Default"):
            GetDefaultCustodyServiceUseCase(empty).execute()

    def test_custodians_grouped_and_sorted(self, repository) -> None:
        repository.add_custodian("550e8400-e29b-41d4-a716-446655440004", "Argor Vaults")
        results = GetCustodiansWithServicesUseCase(repository).execute()

        assert [r.custodian_name for r in results] == [
            "Argor Vaults",
            "Brinks Global Services",
            "Home Delivery",
            "Loomis International",
        ]
        assert results[0].services == []

    def test_custodian_search(self, repository) -> None:
        results = GetCustodiansWithServicesUseCase(repository).execute(search="brinks")
        assert [r.custodian_id for r in results] == [BRINKS_ID]

    def test_custodian_services(self, repository) -> None:
        results = ListCustodianServicesUseCase(repository).execute(LOOMIS_ID)
        assert [r.id for r in results] == [PREMIUM_ID]

    def test_custodian_services_unknown_custodian(self, repository) -> None:
        with pytest.raises(CustodianNotFoundError):
            ListCustodianServicesUseCase(repository).execute(UNKNOWN_CUSTODIAN_ID)

    def test_deletion_check_reports_positions(self, repository) -> None:
        result = CheckCustodyServiceDeletionUseCase(repository).execute(PREMIUM_ID)
        assert not result.can_delete
        assert result.active_position_count == 5

    def test_deletion_check_allows_free_service(self, repository) -> None:
        result = CheckCustodyServiceDeletionUseCase(repository).execute(STANDARD_ID)
        assert result.can_delete
        assert result.reason is None

    def test_deletion_check_missing_service(self, repository) -> None:
        with pytest.raises(CustodyServiceNotFoundError):
            CheckCustodyServiceDeletionUseCase(repository).execute(MISSING_ID)


class TestCustodyServiceLifecycle:
    """Create, list, update and delete a service end to end."""

    def test_full_lifecycle(self, repository) -> None:
        created = CreateCustodyServiceUseCase(repository).execute(
            _create_command(name="Lifecycle Vault", custodian_id=BRINKS_ID, fee=2)
        )

        listed = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(custodian_id=BRINKS_ID)
        )
        assert created.id in {s.id for s in listed.services}

        updated = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(created.id, payment_frequency="monthly", fee="2.50")
        )
        assert updated.payment_frequency == "monthly"
        assert updated.fee == Decimal("2.50")
        assert updated.updated_at > created.updated_at

        repository.set_active_position_count(created.id, 1)
        with pytest.raises(ActivePositionsError):
            DeleteCustodyServiceUseCase(repository).execute(
                DeleteCustodyServiceCommand(service_id=created.id, actor=ACTOR)
            )

        repository.set_active_position_count(created.id, 0)
        DeleteCustodyServiceUseCase(repository).execute(
            DeleteCustodyServiceCommand(service_id=created.id, actor=ACTOR)
        )
        with pytest.raises(CustodyServiceNotFoundError):
            GetCustodyServiceUseCase(repository).execute(created.id)


class TestPremiumVaultScenario:
    """Scenario over a catalog that starts with no services."""

    @pytest.fixture
    def empty_catalog(self) -> InMemoryCustodyServiceRepository:
        fixture = default_fixture()
        fixture.services = []
        fixture.active_positions = {}
        return InMemoryCustodyServiceRepository(fixture=fixture, clock=TickingClock())

    def test_create_conflict_update_and_gated_delete(self, empty_catalog) -> None:
        repository = empty_catalog
        command = _create_command(name="Premium Vault Storage", fee=0.5)

        created = CreateCustodyServiceUseCase(repository).execute(command)
        assert created.id
        assert created.created_at == created.updated_at

        with pytest.raises(DuplicateServiceNameError):
            CreateCustodyServiceUseCase(repository).execute(command)

        updated = UpdateCustodyServiceUseCase(repository).execute(
            _update_command(created.id, fee=0.3)
        )
        assert updated.fee == Decimal("0.3")
        assert updated.updated_at > created.updated_at
        assert updated.name == created.name
        assert updated.custodian_id == created.custodian_id

        repository.set_active_position_count(created.id, 3)
        with pytest.raises(ActivePositionsError) as exc_info:
            DeleteCustodyServiceUseCase(repository).execute(
                DeleteCustodyServiceCommand(service_id=created.id, actor=ACTOR)
            )
        assert exc_info.value.active_position_count == 3

        repository.set_active_position_count(created.id, 0)
        DeleteCustodyServiceUseCase(repository).execute(
            DeleteCustodyServiceCommand(service_id=created.id, actor=ACTOR)
        )
        assert repository.find_by_id(created.id) is None

    def test_second_page_over_two_matches(self, empty_catalog) -> None:
        repository = empty_catalog
        create = CreateCustodyServiceUseCase(repository)
        create.execute(_create_command(name="Alpha Vault"))
        second = create.execute(_create_command(name="Beta Vault"))

        result = ListCustodyServicesUseCase(repository).execute(
            ListCustodyServicesQuery(page=2, limit=1)
        )

        assert [s.id for s in result.services] == [second.id]
        assert result.pagination.total_items == 2
