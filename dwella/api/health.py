import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from dwella import __version__
from dwella.config import settings
from dwella.database import get_db
from dwella.models.home import Home
from dwella.models.service_record import PENDING_SUBMISSION_STATUSES, ServiceRecord
from dwella.models.verification import HomeVerification, VerificationStatus
from dwella.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    homes = (await db.execute(select(func.count(Home.id)))).scalar() or 0
    pending_verifications = (await db.execute(
        select(func.count(HomeVerification.id)).where(
            HomeVerification.status == VerificationStatus.PENDING.value
        )
    )).scalar() or 0
    pending_records = (await db.execute(
        select(func.count(ServiceRecord.id)).where(
            ServiceRecord.status.in_(PENDING_SUBMISSION_STATUSES)
        )
    )).scalar() or 0

    return HealthResponse(
        status="healthy",
        version=__version__,
        homes_count=homes,
        pending_verifications_count=pending_verifications,
        pending_service_records_count=pending_records,
    )


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe: the database must answer a trivial query."""
    body = {"environment": settings.environment}
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=503,
            content={**body, "status": "not_ready", "database": "unavailable"},
        )
    return {**body, "status": "ready", "database": "connected"}
