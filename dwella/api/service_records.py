"""Homeowner review of contractor service submissions."""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.auth import CurrentUser, get_current_user
from dwella.database import get_db
from dwella.schemas.service_record import (
    ApproveResponse,
    PendingCountResponse,
    RecordResponse,
    RejectRequest,
    RejectResponse,
    ServiceRecordResponse,
)
from dwella.services import service_record_service

router = APIRouter(tags=["service-records"])


@router.post(
    "/homes/{home_id}/service-records/{service_record_id}/approve",
    response_model=ApproveResponse,
)
async def approve_service_record(
    home_id: str,
    service_record_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    service_record, final_record = await service_record_service.approve_service_record(
        db, home_id, service_record_id, user.id,
    )
    return ApproveResponse(
        service_record=ServiceRecordResponse.model_validate(service_record),
        final_record=RecordResponse.model_validate(final_record),
    )


@router.post(
    "/homes/{home_id}/service-records/{service_record_id}/reject",
    response_model=RejectResponse,
)
async def reject_service_record(
    home_id: str,
    service_record_id: str,
    req: RejectRequest | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    service_record = await service_record_service.reject_service_record(
        db, home_id, service_record_id, user.id, req.reason if req else None,
    )
    return RejectResponse(service_record=ServiceRecordResponse.model_validate(service_record))


@router.get(
    "/homes/{home_id}/service-records/pending",
    response_model=list[ServiceRecordResponse],
)
async def list_pending(
    home_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await service_record_service.list_pending_submissions(db, home_id, user.id)


@router.get("/service-records/pending/count", response_model=PendingCountResponse)
async def count_pending(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Pending submissions across all homes the caller owns."""
    total = await service_record_service.count_pending_submissions(db, user.id)
    return PendingCountResponse(total=total)
