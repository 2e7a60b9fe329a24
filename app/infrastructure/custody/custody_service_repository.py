"""
Adapter: Custody service repository.

Implements CustodyServiceRepository port.
Reads and writes custody services in PostgreSQL, joining custodian and
currency tables for display names. Driver failures surface as
CustodyStorageError.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

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
from app.domain.custody.errors import CustodyServiceNotFoundError, CustodyStorageError
from app.domain.custody.ports import CustodyServiceRepository

logger = logging.getLogger(__name__)

ACTIVE_POSITIONS_REASON = "Cannot delete custody service with active positions"

SELECT_FIELDS = """
    cs.id, cs.custodyservicename, cs.custodianid, cs.fee,
    cs.paymentfrequency, cs.currencyid, cs.minweight, cs.maxweight,
    cs.createdat, cs.updatedat,
    c.custodianname, curr.isocode3 AS currency
"""

FROM_CLAUSE = """
    FROM custodyservice cs
    JOIN custodian c ON cs.custodianid = c.id
    JOIN currency curr ON cs.currencyid = curr.id
"""

SORT_COLUMNS = {
    CustodyServiceSortField.NAME: "LOWER(cs.custodyservicename)",
    CustodyServiceSortField.FEE: "cs.fee",
    CustodyServiceSortField.CREATED_AT: "cs.createdat",
}

# Domain field -> custodyservice column for partial updates.
UPDATE_COLUMNS = {
    "name": "custodyservicename",
    "custodian_id": "custodianid",
    "fee": "fee",
    "payment_frequency": "paymentfrequency",
    "currency_id": "currencyid",
    "min_weight": "minweight",
    "max_weight": "maxweight",
}


def _to_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def _like_pattern(term: str) -> str:
    """Build a substring pattern that matches LIKE wildcards literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _row_to_service(row: Mapping[str, Any]) -> CustodyService:
    """Map a joined custodyservice row to a domain entity."""
    return CustodyService(
        id=str(row["id"]),
        name=row["custodyservicename"],
        custodian_id=str(row["custodianid"]),
        custodian_name=row["custodianname"] or "",
        fee=Decimal(str(row["fee"])),
        payment_frequency=PaymentFrequency(row["paymentfrequency"]),
        currency_id=str(row["currencyid"]),
        currency=row["currency"] or "",
        min_weight=_to_decimal(row["minweight"]),
        max_weight=_to_decimal(row["maxweight"]),
        created_at=row["createdat"],
        updated_at=row["updatedat"],
    )


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into CustodyStorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "Custody storage failure during %s: %s", operation, type(exc).__name__
        )
        raise CustodyStorageError(operation) from exc


class PostgresCustodyServiceRepository(CustodyServiceRepository):
    """PostgreSQL implementation of the custody service repository.

    Implements the CustodyServiceRepository port defined in the domain layer.
    All statements are parameterized; only whitelisted column names are
    interpolated into SQL.
    """

    def __init__(
        self, engine: Engine, default_custodian_marker: str = "home delivery"
    ) -> None:
        self._engine = engine
        self._marker = default_custodian_marker.lower()

    def find_all(
        self, filters: CustodyServiceFilter, page: PageRequest
    ) -> tuple[list[CustodyService], int]:
        """Return one page of matching services and the total match count.

        Args:
            filters: Search criteria and ordering.
            page: Offset pagination window.

        Returns:
            Tuple of (services, total before pagination).
        """
        conditions: list[str] = []
        params: dict[str, Any] = {}

        if filters.search:
            conditions.append("cs.custodyservicename ILIKE :search ESCAPE '\\'")
            params["search"] = _like_pattern(filters.search)
        if filters.custodian_id:
            conditions.append("cs.custodianid = :custodian_id")
            params["custodian_id"] = filters.custodian_id
        if filters.min_fee is not None:
            conditions.append("cs.fee >= :min_fee")
            params["min_fee"] = filters.min_fee
        if filters.max_fee is not None:
            conditions.append("cs.fee <= :max_fee")
            params["max_fee"] = filters.max_fee
        if filters.payment_frequency:
            conditions.append("cs.paymentfrequency = :payment_frequency")
            params["payment_frequency"] = filters.payment_frequency.value
        if filters.currency:
            conditions.append("curr.isocode3 = :currency")
            params["currency"] = filters.currency

        where = ""
        if conditions:
            where = "WHERE " + " AND ".join(conditions)

        sort_column = SORT_COLUMNS.get(filters.sort_by, SORT_COLUMNS[CustodyServiceSortField.NAME])
        sort_direction = "DESC" if filters.sort_order == SortOrder.DESC else "ASC"
        # Ties fall back to name then id, ascending in both directions.
        order_by = f"{sort_column} {sort_direction}"
        if sort_column != SORT_COLUMNS[CustodyServiceSortField.NAME]:
            order_by += ", LOWER(cs.custodyservicename) ASC"
        order_by += ", cs.id ASC"

        count_query = text(f"SELECT COUNT(*) {FROM_CLAUSE} {where}")
        data_query = text(
            f"""
            SELECT {SELECT_FIELDS}
            {FROM_CLAUSE}
            {where}
            ORDER BY {order_by}
            LIMIT :limit OFFSET :offset
            """
        )

        with _storage_errors("find_all"):
            with self._engine.connect() as conn:
                total = conn.execute(count_query, params).scalar_one()
                rows = conn.execute(
                    data_query,
                    {**params, "limit": page.limit, "offset": page.offset},
                ).mappings().all()

        return [_row_to_service(row) for row in rows], int(total)

    def find_by_id(self, service_id: str) -> Optional[CustodyService]:
        query = text(f"SELECT {SELECT_FIELDS} {FROM_CLAUSE} WHERE cs.id = :id")
        with _storage_errors("find_by_id"):
            with self._engine.connect() as conn:
                row = conn.execute(query, {"id": service_id}).mappings().first()
        return _row_to_service(row) if row else None

    def find_by_custodian_id(self, custodian_id: str) -> list[CustodyService]:
        query = text(
            f"""
            SELECT {SELECT_FIELDS}
            {FROM_CLAUSE}
            WHERE cs.custodianid = :custodian_id
            ORDER BY LOWER(cs.custodyservicename) ASC, cs.id ASC
            """
        )
        with _storage_errors("find_by_custodian_id"):
            with self._engine.connect() as conn:
                rows = conn.execute(query, {"custodian_id": custodian_id}).mappings().all()
        return [_row_to_service(row) for row in rows]

    def find_default(self) -> Optional[CustodyService]:
        """Return the first service of a custodian whose name carries the marker."""
        query = text(
            f"""
            SELECT {SELECT_FIELDS}
            {FROM_CLAUSE}
            WHERE LOWER(c.custodianname) LIKE :marker
            ORDER BY cs.createdat ASC
            LIMIT 1
            """
        )
        with _storage_errors("find_default"):
            with self._engine.connect() as conn:
                row = conn.execute(query, {"marker": f"%{self._marker}%"}).mappings().first()
        return _row_to_service(row) if row else None

    def group_by_custodian(
        self, search: Optional[str] = None
    ) -> list[CustodianWithServices]:
        """Return custodians with their services, including custodians with none.

        Args:
            search: Optional case-insensitive filter on custodian name.

        Returns:
            Custodians ordered by name, services ordered by name.
        """
        where = ""
        params: dict[str, Any] = {}
        if search:
            where = "WHERE c.custodianname ILIKE :search ESCAPE '\\'"
            params["search"] = _like_pattern(search)

        query = text(
            f"""
            SELECT
                c.id AS custodianid, c.custodianname,
                cs.id, cs.custodyservicename, cs.fee,
                cs.paymentfrequency, cs.currencyid, cs.minweight, cs.maxweight,
                cs.createdat, cs.updatedat,
                curr.isocode3 AS currency
            FROM custodian c
            LEFT JOIN custodyservice cs ON c.id = cs.custodianid
            LEFT JOIN currency curr ON cs.currencyid = curr.id
            {where}
            ORDER BY LOWER(c.custodianname) ASC, c.id ASC,
                LOWER(cs.custodyservicename) ASC, cs.id ASC
            """
        )
        with _storage_errors("group_by_custodian"):
            with self._engine.connect() as conn:
                rows = conn.execute(query, params).mappings().all()

        groups: dict[str, CustodianWithServices] = {}
        for row in rows:
            if not row["custodianname"]:
                continue
            custodian_id = str(row["custodianid"])
            group = groups.get(custodian_id)
            if group is None:
                group = CustodianWithServices(
                    custodian_id=custodian_id,
                    custodian_name=row["custodianname"],
                )
                groups[custodian_id] = group
            if row["id"] is not None:
                group.services.append(_row_to_service(row))

        return list(groups.values())

    def create(self, data: NewCustodyService, actor: AuditActor) -> CustodyService:
        """Insert a custody service and return it re-read with its joins."""
        query = text(
            """
            INSERT INTO custodyservice (
                custodyservicename, custodianid, fee, paymentfrequency,
                currencyid, minweight, maxweight, createdby, updatedby
            )
            VALUES (
                :name, :custodian_id, :fee, :payment_frequency,
                :currency_id, :min_weight, :max_weight, :actor_id, :actor_id
            )
            RETURNING id
            """
        )
        with _storage_errors("create"):
            with self._engine.begin() as conn:
                new_id = conn.execute(
                    query,
                    {
                        "name": data.name,
                        "custodian_id": data.custodian_id,
                        "fee": data.fee,
                        "payment_frequency": data.payment_frequency.value,
                        "currency_id": data.currency_id,
                        "min_weight": data.min_weight,
                        "max_weight": data.max_weight,
                        "actor_id": actor.id,
                    },
                ).scalar_one()

        logger.debug("Inserted custody service id=%s.", new_id)
        return self._require(str(new_id))

    def update(
        self,
        service_id: str,
        changes: CustodyServiceChanges,
        actor: AuditActor,
    ) -> CustodyService:
        """Apply supplied fields, stamp updatedby/updatedat, return the row.

        Raises:
            CustodyServiceNotFoundError: If no row has this ID.
        """
        assignments: list[str] = []
        params: dict[str, Any] = {"id": service_id, "actor_id": actor.id}

        for field_name, value in changes.supplied().items():
            column = UPDATE_COLUMNS.get(field_name)
            if column is None:
                continue
            if isinstance(value, PaymentFrequency):
                value = value.value
            assignments.append(f"{column} = :{field_name}")
            params[field_name] = value

        assignments.append("updatedby = :actor_id")
        assignments.append("updatedat = CURRENT_TIMESTAMP")

        query = text(
            f"""
            UPDATE custodyservice
            SET {", ".join(assignments)}
            WHERE id = :id
            RETURNING id
            """
        )
        with _storage_errors("update"):
            with self._engine.begin() as conn:
                updated_id = conn.execute(query, params).scalar_one_or_none()

        if updated_id is None:
            raise CustodyServiceNotFoundError(service_id)
        return self._require(service_id)

    def delete(self, service_id: str, actor: AuditActor) -> None:
        query = text("DELETE FROM custodyservice WHERE id = :id")
        with _storage_errors("delete"):
            with self._engine.begin() as conn:
                result = conn.execute(query, {"id": service_id})
        logger.debug(
            "Deleted %d custody service row(s) for id=%s by user=%s.",
            result.rowcount,
            service_id,
            actor.id,
        )

    def can_delete(self, service_id: str) -> DeletionCheck:
        query = text(
            """
            SELECT COUNT(*)
            FROM position
            WHERE custodyserviceid = :id AND status = 'active'
            """
        )
        with _storage_errors("can_delete"):
            with self._engine.connect() as conn:
                count = int(conn.execute(query, {"id": service_id}).scalar_one())

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
        query = """
            SELECT 1 FROM custodyservice
            WHERE custodianid = :custodian_id
              AND LOWER(custodyservicename) = LOWER(:name)
        """
        params: dict[str, Any] = {"custodian_id": custodian_id, "name": name}
        if exclude_id:
            query += " AND id != :exclude_id"
            params["exclude_id"] = exclude_id

        with _storage_errors("service_name_exists"):
            with self._engine.connect() as conn:
                row = conn.execute(text(query + " LIMIT 1"), params).first()
        return row is not None

    def custodian_exists(self, custodian_id: str) -> bool:
        query = text("SELECT 1 FROM custodian WHERE id = :id")
        with _storage_errors("custodian_exists"):
            with self._engine.connect() as conn:
                return conn.execute(query, {"id": custodian_id}).first() is not None

    def currency_exists(self, currency_id: str) -> bool:
        query = text("SELECT 1 FROM currency WHERE id = :id")
        with _storage_errors("currency_exists"):
            with self._engine.connect() as conn:
                return conn.execute(query, {"id": currency_id}).first() is not None

    def resolve_currency_id(self, iso_code: str) -> Optional[str]:
        query = text("SELECT id FROM currency WHERE isocode3 = :iso_code")
        with _storage_errors("resolve_currency_id"):
            with self._engine.connect() as conn:
                currency_id = conn.execute(query, {"iso_code": iso_code}).scalar_one_or_none()
        return str(currency_id) if currency_id is not None else None

    def _require(self, service_id: str) -> CustodyService:
        service = self.find_by_id(service_id)
        if service is None:
            raise CustodyServiceNotFoundError(service_id)
        return service
