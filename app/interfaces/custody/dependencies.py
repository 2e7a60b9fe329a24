"""
Dependency injection for the custody bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the custody context.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from app.application.custody.check_custody_service_deletion import (
    CheckCustodyServiceDeletionUseCase,
)
from app.application.custody.create_custody_service import CreateCustodyServiceUseCase
from app.application.custody.delete_custody_service import DeleteCustodyServiceUseCase
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
from app.core.config import Settings, settings
from app.domain.custody.entities import AuditActor
from app.domain.custody.ports import CustodyServiceRepository
from app.domain.custody.validators import is_valid_uuid
from app.infrastructure.custody.custody_service_repository import (
    PostgresCustodyServiceRepository,
)
from app.infrastructure.custody.in_memory_repository import (
    InMemoryCustodyServiceRepository,
    default_fixture,
)

logger = logging.getLogger(__name__)


def _get_db_engine(config: Settings) -> Engine:
    """Build a SQLAlchemy engine from application settings."""
    return create_engine(config.get_database_dsn(), pool_pre_ping=True)


def build_custody_repository(config: Settings) -> CustodyServiceRepository:
    """Build the repository adapter selected by ``custody_repository_backend``.

    Args:
        config: Application settings.

    Returns:
        The PostgreSQL adapter, or an in-memory adapter seeded with the
        default fixture.
    """
    if config.custody_repository_backend == "memory":
        logger.info("Using in-memory custody repository.")
        return InMemoryCustodyServiceRepository(
            fixture=default_fixture(),
            default_custodian_marker=config.default_custodian_marker,
        )
    return PostgresCustodyServiceRepository(
        engine=_get_db_engine(config),
        default_custodian_marker=config.default_custodian_marker,
    )


@lru_cache(maxsize=1)
def get_custody_repository() -> CustodyServiceRepository:
    """Return the process-wide repository adapter."""
    return build_custody_repository(settings)


def get_audit_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> AuditActor:
    """Read the authenticated caller from gateway-set headers.

    Raises:
        HTTPException: 401 if the user ID or email is missing, or the
            user ID is not a UUID.
    """
    if not x_user_id or not x_user_email:
        raise HTTPException(status_code=401, detail="Authenticated user required")
    if not is_valid_uuid(x_user_id):
        raise HTTPException(status_code=401, detail="Invalid user ID format")
    return AuditActor(id=x_user_id, email=x_user_email, role=x_user_role or "admin")


def get_create_custody_service_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> CreateCustodyServiceUseCase:
    """Build CreateCustodyServiceUseCase with its repository."""
    return CreateCustodyServiceUseCase(repository=repository)


def get_update_custody_service_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> UpdateCustodyServiceUseCase:
    """Build UpdateCustodyServiceUseCase with its repository."""
    return UpdateCustodyServiceUseCase(repository=repository)


def get_delete_custody_service_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> DeleteCustodyServiceUseCase:
    """Build DeleteCustodyServiceUseCase with its repository."""
    return DeleteCustodyServiceUseCase(repository=repository)


def get_list_custody_services_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> ListCustodyServicesUseCase:
    """Build ListCustodyServicesUseCase with its repository."""
    return ListCustodyServicesUseCase(
        repository=repository,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def get_custody_service_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> GetCustodyServiceUseCase:
    """Build GetCustodyServiceUseCase with its repository."""
    return GetCustodyServiceUseCase(repository=repository)


def get_default_custody_service_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> GetDefaultCustodyServiceUseCase:
    """Build GetDefaultCustodyServiceUseCase with its repository."""
    return GetDefaultCustodyServiceUseCase(repository=repository)


def get_custodians_with_services_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> GetCustodiansWithServicesUseCase:
    """Build GetCustodiansWithServicesUseCase with its repository."""
    return GetCustodiansWithServicesUseCase(repository=repository)


def get_list_custodian_services_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> ListCustodianServicesUseCase:
    """Build ListCustodianServicesUseCase with its repository."""
    return ListCustodianServicesUseCase(repository=repository)


def get_check_custody_service_deletion_use_case(
    repository: CustodyServiceRepository = Depends(get_custody_repository),
) -> CheckCustodyServiceDeletionUseCase:
    """Build CheckCustodyServiceDeletionUseCase with its repository."""
    return CheckCustodyServiceDeletionUseCase(repository=repository)
