"""Homeowner-contractor connections for a home."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.access import require_home_access
from dwella.core.exceptions import (
    ActiveConnectionExistsError,
    ConnectionNotFoundError,
    ForbiddenError,
)
from dwella.models.connection import Connection, ConnectionStatus
from dwella.services import notification_service

logger = logging.getLogger(__name__)


async def get_active_connection(
    db: AsyncSession, home_id: str, contractor_id: str
) -> Connection | None:
    result = await db.execute(
        select(Connection).where(
            Connection.home_id == home_id,
            Connection.contractor_id == contractor_id,
            Connection.status == ConnectionStatus.ACTIVE.value,
        ).order_by(Connection.created_at.asc()).limit(1)
    )
    return result.scalar_one_or_none()


async def has_active_connection(db: AsyncSession, home_id: str, contractor_id: str) -> bool:
    return await get_active_connection(db, home_id, contractor_id) is not None


async def record_verified_service(
    db: AsyncSession,
    *,
    home_id: str,
    homeowner_id: str,
    contractor_id: str,
    service_record_id: str,
    cost: Decimal | None,
) -> Connection:
    """Credit one verified job to the (home, contractor) connection, creating it if needed.

    Does not commit; the caller owns the transaction.
    """
    amount = Decimal(str(cost)) if cost is not None else Decimal("0")
    connection = await get_active_connection(db, home_id, contractor_id)
    if connection is None:
        connection = Connection(
            homeowner_id=homeowner_id,
            contractor_id=contractor_id,
            home_id=home_id,
            status=ConnectionStatus.ACTIVE.value,
            invited_by=homeowner_id,
            established_via="VERIFIED_SERVICE",
            source_record_id=service_record_id,
            verified_service_count=1,
            total_spent=amount,
        )
        db.add(connection)
        await db.flush()
        return connection

    connection.verified_service_count = int(connection.verified_service_count or 0) + 1
    connection.total_spent = Decimal(str(connection.total_spent or 0)) + amount
    connection.updated_at = datetime.now(timezone.utc)
    return connection


async def _owned_connection(
    db: AsyncSession, home_id: str, connection_id: str, user_id: str, *, status: str | None = None
) -> Connection:
    home = await require_home_access(db, home_id, user_id)
    if home.owner_id != user_id:
        raise ForbiddenError("Only the homeowner can change a contractor connection")

    query = select(Connection).where(Connection.id == connection_id, Connection.home_id == home_id)
    if status is not None:
        query = query.where(Connection.status == status)
    connection = (await db.execute(query)).scalar_one_or_none()
    if connection is None:
        raise ConnectionNotFoundError(connection_id)
    return connection


async def archive_connection(
    db: AsyncSession, home_id: str, connection_id: str, user_id: str
) -> Connection:
    """Disconnect a contractor from a home (ACTIVE -> ARCHIVED)."""
    connection = await _owned_connection(db, home_id, connection_id, user_id)
    now = datetime.now(timezone.utc)
    connection.status = ConnectionStatus.ARCHIVED.value
    connection.archived_at = now
    connection.updated_at = now
    await db.commit()
    await db.refresh(connection)

    logger.info("Connection archived: %s (home=%s)", connection.id, home_id)
    notification_service.notify(
        connection.contractor_id,
        "A homeowner disconnected from you",
        {"type": "CONNECTION_ARCHIVED", "connection_id": connection.id, "home_id": home_id},
    )
    return connection


async def restore_connection(
    db: AsyncSession, home_id: str, connection_id: str, user_id: str
) -> Connection:
    """Reconnect an archived contractor (ARCHIVED -> ACTIVE)."""
    connection = await _owned_connection(
        db, home_id, connection_id, user_id, status=ConnectionStatus.ARCHIVED.value
    )
    if await has_active_connection(db, home_id, connection.contractor_id):
        raise ActiveConnectionExistsError()

    connection.status = ConnectionStatus.ACTIVE.value
    connection.archived_at = None
    connection.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(connection)

    logger.info("Connection restored: %s (home=%s)", connection.id, home_id)
    notification_service.notify(
        connection.contractor_id,
        "A homeowner reconnected with you",
        {"type": "CONNECTION_RESTORED", "connection_id": connection.id, "home_id": home_id},
    )
    return connection
