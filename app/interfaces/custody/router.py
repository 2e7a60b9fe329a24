"""
FastAPI router for the custody bounded context.

All routes delegate to use cases. No business logic here.
Wire shapes are handled by Pydantic schemas; business validation
and error mapping are handled by the domain and the centralized
error handlers.
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from app.application.custody.check_custody_service_deletion import (
    CheckCustodyServiceDeletionUseCase,
)
from app.application.custody.create_custody_service import CreateCustodyServiceUseCase
from app.application.custody.delete_custody_service import DeleteCustodyServiceUseCase
from app.application.custody.dtos import (
    CreateCustodyServiceCommand,
    CustodianServicesResult,
    CustodyServiceResult,
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
)
from app.interfaces.custody.dependencies import (
    get_audit_actor,
    get_check_custody_service_deletion_use_case,
    get_create_custody_service_use_case,
    get_custodians_with_services_use_case,
    get_custody_service_use_case,
    get_default_custody_service_use_case,
    get_delete_custody_service_use_case,
    get_list_custodian_services_use_case,
    get_list_custody_services_use_case,
    get_update_custody_service_use_case,
)
from app.interfaces.custody.schemas import (
    CreateCustodyServiceRequest,
    CustodianServicesResponse,
    CustodiansWithServicesResponse,
    CustodianWithServicesItem,
    CustodyServiceItem,
    CustodyServiceListResponse,
    DeletionCheckResponse,
    ErrorResponse,
    PaginationItem,
    UpdateCustodyServiceRequest,
)
from app.shared.security.rate_limiting import WRITE_RATE_LIMIT, limiter

router = APIRouter(prefix="/custody", tags=["custody"])

_BAD_REQUEST = {400: {"model": ErrorResponse}}
_NOT_FOUND = {404: {"model": ErrorResponse}}
_CONFLICT = {409: {"model": ErrorResponse}}
_UNAUTHORIZED = {401: {"model": ErrorResponse}}


def _to_item(result: CustodyServiceResult) -> CustodyServiceItem:
    return CustodyServiceItem(**asdict(result))


def _to_custodian_item(result: CustodianServicesResult) -> CustodianWithServicesItem:
    return CustodianWithServicesItem(
        custodian_id=result.custodian_id,
        custodian_name=result.custodian_name,
        services=[_to_item(s) for s in result.services],
    )


@router.get(
    "/services",
    response_model=CustodyServiceListResponse,
    responses=_BAD_REQUEST,
    summary="List custody services",
    description=(
        "Paginated custody services with optional search, custodian, "
        "payment frequency, currency and fee range filters."
    ),
)
def list_custody_services(
    page: int = Query(default=1, description="1-indexed page number"),
    limit: Optional[int] = Query(default=None, description="Items per page"),
    search: Optional[str] = Query(default=None, description="Name substring"),
    custodian_id: Optional[str] = Query(default=None),
    payment_frequency: Optional[str] = Query(default=None),
    currency: Optional[str] = Query(default=None, description="ISO currency code"),
    min_fee: Optional[Decimal] = Query(default=None),
    max_fee: Optional[Decimal] = Query(default=None),
    sort_by: str = Query(default="name", description="name, fee or created_at"),
    sort_order: str = Query(default="asc", description="asc or desc"),
    use_case: ListCustodyServicesUseCase = Depends(get_list_custody_services_use_case),
) -> CustodyServiceListResponse:
    """List custody services page by page."""
    query = ListCustodyServicesQuery(
        page=page,
        limit=limit,
        search=search,
        custodian_id=custodian_id,
        payment_frequency=payment_frequency,
        currency=currency,
        min_fee=min_fee,
        max_fee=max_fee,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = use_case.execute(query)
    return CustodyServiceListResponse(
        services=[_to_item(s) for s in result.services],
        pagination=PaginationItem(**asdict(result.pagination)),
    )


@router.get(
    "/services/default",
    response_model=CustodyServiceItem,
    responses=_NOT_FOUND,
    summary="Get the default custody service",
    description="The service offered by the home-delivery custodian.",
)
def get_default_custody_service(
    use_case: GetDefaultCustodyServiceUseCase = Depends(
        get_default_custody_service_use_case
    ),
) -> CustodyServiceItem:
    """Return the default custody service."""
    return _to_item(use_case.execute())


@router.get(
    "/services/{service_id}",
    response_model=CustodyServiceItem,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Get a custody service",
)
def get_custody_service(
    service_id: str,
    use_case: GetCustodyServiceUseCase = Depends(get_custody_service_use_case),
) -> CustodyServiceItem:
    """Return one custody service by ID."""
    return _to_item(use_case.execute(service_id))


@router.get(
    "/services/{service_id}/deletion-check",
    response_model=DeletionCheckResponse,
    responses={**_BAD_REQUEST, **_NOT_FOUND},
    summary="Check whether a custody service can be deleted",
)
def check_custody_service_deletion(
    service_id: str,
    use_case: CheckCustodyServiceDeletionUseCase = Depends(
        get_check_custody_service_deletion_use_case
    ),
) -> DeletionCheckResponse:
    """Preview the outcome of deleting a custody service."""
    result = use_case.execute(service_id)
    return DeletionCheckResponse(**asdict(result))


@router.post(
    "/services",
    response_model=CustodyServiceItem,
    status_code=201,
    responses={**_BAD_REQUEST, **_CONFLICT, **_UNAUTHORIZED},
    summary="Create a custody service",
)
@limiter.limit(WRITE_RATE_LIMIT)
def create_custody_service(
    request: Request,
    payload: CreateCustodyServiceRequest,
    actor: AuditActor = Depends(get_audit_actor),
    use_case: CreateCustodyServiceUseCase = Depends(get_create_custody_service_use_case),
) -> CustodyServiceItem:
    """Create a custody service for a custodian."""
    draft = CustodyServiceDraft(
        name=payload.name,
        custodian_id=payload.custodian_id,
        fee=payload.fee,
        payment_frequency=payload.payment_frequency,
        currency=payload.currency,
        min_weight=payload.min_weight,
        max_weight=payload.max_weight,
    )
    result = use_case.execute(CreateCustodyServiceCommand(draft=draft, actor=actor))
    return _to_item(result)


@router.patch(
    "/services/{service_id}",
    response_model=CustodyServiceItem,
    responses={**_BAD_REQUEST, **_NOT_FOUND, **_CONFLICT, **_UNAUTHORIZED},
    summary="Partially update a custody service",
    description="Only fields present in the body are changed.",
)
@limiter.limit(WRITE_RATE_LIMIT)
def update_custody_service(
    request: Request,
    service_id: str,
    payload: UpdateCustodyServiceRequest,
    actor: AuditActor = Depends(get_audit_actor),
    use_case: UpdateCustodyServiceUseCase = Depends(get_update_custody_service_use_case),
) -> CustodyServiceItem:
    """Apply the supplied fields to a custody service."""
    changes = CustodyServiceChanges(**payload.model_dump(exclude_unset=True))
    command = UpdateCustodyServiceCommand(
        service_id=service_id, changes=changes, actor=actor
    )
    return _to_item(use_case.execute(command))


@router.delete(
    "/services/{service_id}",
    status_code=204,
    response_class=Response,
    responses={**_BAD_REQUEST, **_CONFLICT, **_UNAUTHORIZED},
    summary="Delete a custody service",
    description="Refused while the service has active positions.",
)
@limiter.limit(WRITE_RATE_LIMIT)
def delete_custody_service(
    request: Request,
    service_id: str,
    actor: AuditActor = Depends(get_audit_actor),
    use_case: DeleteCustodyServiceUseCase = Depends(get_delete_custody_service_use_case),
) -> Response:
    """Delete a custody service."""
    use_case.execute(DeleteCustodyServiceCommand(service_id=service_id, actor=actor))
    return Response(status_code=204)


@router.get(
    "/custodians",
    response_model=CustodiansWithServicesResponse,
    summary="List custodians with their services",
)
def list_custodians_with_services(
    search: Optional[str] = Query(default=None, description="Custodian name substring"),
    use_case: GetCustodiansWithServicesUseCase = Depends(
        get_custodians_with_services_use_case
    ),
) -> CustodiansWithServicesResponse:
    """Return every custodian with the services it offers."""
    results = use_case.execute(search=search)
    return CustodiansWithServicesResponse(
        custodians=[_to_custodian_item(r) for r in results]
    )


@router.get(
    "/custodians/{custodian_id}/services",
    response_model=CustodianServicesResponse,
    responses=_BAD_REQUEST,
    summary="List the services of one custodian",
)
def list_custodian_services(
    custodian_id: str,
    use_case: ListCustodianServicesUseCase = Depends(
        get_list_custodian_services_use_case
    ),
) -> CustodianServicesResponse:
    """Return the custody services offered by a custodian."""
    results = use_case.execute(custodian_id)
    return CustodianServicesResponse(
        custodian_id=custodian_id,
        services=[_to_item(s) for s in results],
    )
