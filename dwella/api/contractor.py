"""Contractor-facing endpoints for documenting completed work."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.auth import CurrentUser, get_current_pro
from dwella.database import get_db
from dwella.schemas.service_record import (
    AttachmentResponse,
    AttachmentUploadRequest,
    ServiceRecordCreateRequest,
    ServiceRecordResponse,
)
from dwella.services import service_record_service

router = APIRouter(prefix="/pro/service-records", tags=["contractor"])


@router.post("", response_model=ServiceRecordResponse, status_code=201)
async def submit_service_record(
    req: ServiceRecordCreateRequest,
    db: AsyncSession = Depends(get_db),
    pro: CurrentUser = Depends(get_current_pro),
):
    return await service_record_service.submit_service_record(
        db,
        pro.id,
        service_type=req.service_type,
        service_date=req.service_date,
        home_id=req.home_id,
        address=req.address.model_dump() if req.address else None,
        description=req.description,
        cost=req.cost,
    )


@router.post(
    "/{service_record_id}/attachments",
    response_model=list[AttachmentResponse],
    status_code=201,
)
async def add_attachments(
    service_record_id: str,
    req: AttachmentUploadRequest,
    db: AsyncSession = Depends(get_db),
    pro: CurrentUser = Depends(get_current_pro),
):
    return await service_record_service.add_service_record_attachments(
        db, service_record_id, pro.id, [f.model_dump() for f in req.files],
    )
