from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.auth import CurrentUser, get_current_user
from dwella.database import get_db
from dwella.schemas.connection import ConnectionResponse
from dwella.services import connection_service

router = APIRouter(prefix="/homes/{home_id}/connections", tags=["connections"])


@router.delete("/{connection_id}", response_model=ConnectionResponse)
async def archive_connection(
    home_id: str,
    connection_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Disconnect a contractor from this home."""
    return await connection_service.archive_connection(db, home_id, connection_id, user.id)


@router.post("/{connection_id}/restore", response_model=ConnectionResponse)
async def restore_connection(
    home_id: str,
    connection_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await connection_service.restore_connection(db, home_id, connection_id, user.id)
