"""Contractor service submissions and the homeowner approval workflow.

Approval promotes a ServiceRecord into a permanent Record in a single
transaction: status stamp, new Record, attachment re-parenting, back-link and
connection credit either all land or none do. The contractor is notified
afterwards, outside the transaction.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.config import settings
from dwella.core.access import require_home_access
from dwella.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    HomeNotFoundError,
    InvalidAttachmentError,
    InvalidServiceRecordStateError,
    ServiceRecordHomeMismatchError,
    ServiceRecordNotFoundError,
)
from dwella.models.attachment import Attachment, AttachmentParent
from dwella.models.home import Home
from dwella.models.record import Record
from dwella.models.service_record import (
    PENDING_SUBMISSION_STATUSES,
    ServiceRecord,
    ServiceSubmissionStatus,
)
from dwella.models.user import User
from dwella.services import connection_service, notification_service

logger = logging.getLogger(__name__)

_is_sqlite: bool = settings.database_url.startswith("sqlite")

DEFAULT_REJECTION_REASON = "Rejected by homeowner"

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
_ALLOWED_TYPES: dict[str, frozenset[str]] = {
    "photo": frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"}),
    "invoice": frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"}),
    "warranty": frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"}),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _load_for_home(
    db: AsyncSession, home_id: str, service_record_id: str, *, lock: bool = False
) -> ServiceRecord:
    """Load a submission for review, row-locked on PostgreSQL when ``lock`` is set."""
    stmt = select(ServiceRecord).where(ServiceRecord.id == service_record_id)
    if lock and not _is_sqlite:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt.execution_options(populate_existing=True))
    service_record = result.scalar_one_or_none()
    if service_record is None:
        raise ServiceRecordNotFoundError(service_record_id)
    if service_record.home_id != home_id:
        raise ServiceRecordHomeMismatchError()
    return service_record


# ---------------------------------------------------------------------------
# Contractor side
# ---------------------------------------------------------------------------

async def _find_or_create_home(db: AsyncSession, address: dict) -> Home:
    result = await db.execute(
        select(Home).where(
            Home.address == address["street"],
            Home.city == address["city"],
            Home.state == address["state"],
            Home.zip == address["zip"],
        ).limit(1)
    )
    home = result.scalar_one_or_none()
    if home is None:
        home = Home(
            address=address["street"],
            address_line2=address.get("unit"),
            city=address["city"],
            state=address["state"],
            zip=address["zip"],
        )
        db.add(home)
        await db.flush()
        logger.info("Unclaimed home created from contractor address: %s", home.id)
    return home


async def submit_service_record(
    db: AsyncSession,
    contractor_id: str,
    *,
    service_type: str,
    service_date: datetime,
    home_id: str | None = None,
    address: dict | None = None,
    description: str | None = None,
    cost: float | None = None,
) -> ServiceRecord:
    """Document completed work for a home, pending homeowner review.

    With ``home_id`` the contractor must already hold an ACTIVE connection to
    the home. With ``address`` the home is looked up or created unclaimed.
    """
    if home_id:
        if not await connection_service.has_active_connection(db, home_id, contractor_id):
            raise ForbiddenError("You don't have access to this property")
        home = await db.get(Home, home_id)
        if home is None:
            raise HomeNotFoundError(home_id)
    elif address:
        home = await _find_or_create_home(db, address)
    else:
        raise BadRequestError("Either home_id or address is required")

    service_record = ServiceRecord(
        home_id=home.id,
        contractor_id=contractor_id,
        service_type=service_type,
        service_date=service_date,
        description=description,
        cost=Decimal(str(cost)) if cost is not None else None,
        status=ServiceSubmissionStatus.DOCUMENTED_UNVERIFIED.value,
        is_verified=False,
        address_snapshot=json.dumps({
            "address": home.address,
            "city": home.city,
            "state": home.state,
            "zip": home.zip,
        }),
    )
    db.add(service_record)
    await db.commit()
    await db.refresh(service_record)

    logger.info(
        "Service record submitted: %s (home=%s, contractor=%s)",
        service_record.id, home.id, contractor_id,
    )
    if home.owner_id:
        notification_service.notify(
            home.owner_id,
            "New work submitted for your review",
            {
                "type": "WORK_SUBMITTED",
                "service_record_id": service_record.id,
                "service_type": service_record.service_type,
            },
        )
    return service_record


def _validate_file(file: dict) -> None:
    name = file.get("name")
    if file.get("size", 0) > MAX_FILE_SIZE:
        raise InvalidAttachmentError(f"File {name} exceeds 10MB limit")
    category = file.get("category", "photo")
    allowed = _ALLOWED_TYPES.get(category)
    if allowed is None:
        raise InvalidAttachmentError(f"Unknown category '{category}' for file {name}")
    if file.get("type") not in allowed:
        if category == "photo":
            raise InvalidAttachmentError(f"File {name} must be an image")
        raise InvalidAttachmentError(f"File {name} must be PDF or image")


async def add_service_record_attachments(
    db: AsyncSession,
    service_record_id: str,
    contractor_id: str,
    files: list[dict],
) -> list[Attachment]:
    """Register uploaded files as attachments owned by a pending service record."""
    service_record = await db.get(ServiceRecord, service_record_id)
    if service_record is None:
        raise ServiceRecordNotFoundError(service_record_id)
    if service_record.contractor_id != contractor_id:
        raise ForbiddenError("You do not own this service record")
    if service_record.status not in PENDING_SUBMISSION_STATUSES:
        raise InvalidServiceRecordStateError(service_record.status, "attach files to")

    for file in files:
        _validate_file(file)

    timestamp = int(_utcnow().timestamp() * 1000)
    attachments = []
    for file in files:
        file_id = str(uuid.uuid4())
        name = file["name"]
        extension = name.rsplit(".", 1)[-1] if "." in name else "bin"
        category = file.get("category", "photo")
        attachment = Attachment(
            id=file_id,
            home_id=service_record.home_id,
            parent_type=AttachmentParent.SERVICE_RECORD.value,
            parent_id=service_record.id,
            file_name=name,
            mime_type=file["type"],
            size=file["size"],
            category=category,
            storage_key=(
                f"homes/{service_record.home_id}/service-records/{service_record.id}"
                f"/{category}/{timestamp}-{file_id}.{extension}"
            ),
            uploaded_by=contractor_id,
        )
        db.add(attachment)
        attachments.append(attachment)
    await db.commit()

    logger.info("%d attachment(s) added to service record %s", len(attachments), service_record.id)
    return attachments


# ---------------------------------------------------------------------------
# Homeowner review
# ---------------------------------------------------------------------------

async def _reparent_attachments(db: AsyncSession, service_record: ServiceRecord, record: Record) -> int:
    result = await db.execute(
        update(Attachment)
        .where(
            Attachment.parent_type == AttachmentParent.SERVICE_RECORD.value,
            Attachment.parent_id == service_record.id,
        )
        .values(parent_type=AttachmentParent.RECORD.value, parent_id=record.id)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


async def _claim_pending(db: AsyncSession, service_record_id: str, **values) -> bool:
    """Move a submission out of review in SQL. False when another request got there first."""
    result = await db.execute(
        update(ServiceRecord)
        .where(
            ServiceRecord.id == service_record_id,
            ServiceRecord.status.in_(PENDING_SUBMISSION_STATUSES),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _settled_approval(db: AsyncSession, service_record: ServiceRecord) -> tuple[ServiceRecord, Record]:
    if service_record.status == ServiceSubmissionStatus.APPROVED.value and service_record.final_record_id:
        final_record = await db.get(Record, service_record.final_record_id)
        if final_record is not None:
            return service_record, final_record
    raise InvalidServiceRecordStateError(service_record.status, "approve")


async def approve_service_record(
    db: AsyncSession,
    home_id: str,
    service_record_id: str,
    approver_id: str,
) -> tuple[ServiceRecord, Record]:
    """Promote a contractor submission into a permanent home Record.

    Approving an already-approved record returns the existing pair without
    writing anything. Approving a rejected record is a conflict.
    """
    home = await require_home_access(db, home_id, approver_id)
    service_record = await _load_for_home(db, home_id, service_record_id, lock=True)

    if service_record.status not in PENDING_SUBMISSION_STATUSES:
        return await _settled_approval(db, service_record)

    contractor = await db.get(User, service_record.contractor_id)
    now = _utcnow()
    try:
        claimed = await _claim_pending(
            db, service_record.id,
            status=ServiceSubmissionStatus.APPROVED.value,
            is_verified=True,
            claimed_by=approver_id,
            claimed_at=now,
            verified_by=approver_id,
            verified_at=now,
            approved_by=approver_id,
            approved_at=now,
        )
        if not claimed:
            await db.rollback()
            await db.refresh(service_record)
            return await _settled_approval(db, service_record)
        await db.refresh(service_record)

        final_record = Record(
            home_id=service_record.home_id,
            title=service_record.service_type,
            note=service_record.description,
            date=service_record.service_date,
            kind="maintenance",
            vendor=contractor.display_name if contractor else None,
            cost=service_record.cost,
            created_by=approver_id,
            verified_by=approver_id,
            verified_at=now,
        )
        db.add(final_record)
        await db.flush()

        moved = await _reparent_attachments(db, service_record, final_record)
        service_record.final_record_id = final_record.id

        await connection_service.record_verified_service(
            db,
            home_id=home_id,
            homeowner_id=home.owner_id or approver_id,
            contractor_id=service_record.contractor_id,
            service_record_id=service_record.id,
            cost=service_record.cost,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(service_record)
    await db.refresh(final_record)
    logger.info(
        "Service record approved: %s -> record %s (%d attachment(s) moved)",
        service_record.id, final_record.id, moved,
    )
    notification_service.notify(
        service_record.contractor_id,
        "Your service submission has been approved",
        {
            "type": "WORK_APPROVED",
            "service_record_id": service_record.id,
            "service_type": service_record.service_type,
        },
    )
    return service_record, final_record


async def reject_service_record(
    db: AsyncSession,
    home_id: str,
    service_record_id: str,
    approver_id: str,
    reason: str | None = None,
) -> ServiceRecord:
    """Reject a contractor submission. No Record is created and attachments stay put.

    Re-rejecting is a no-op; rejecting an approved record is a conflict.
    """
    await require_home_access(db, home_id, approver_id)
    service_record = await _load_for_home(db, home_id, service_record_id, lock=True)

    if service_record.status == ServiceSubmissionStatus.REJECTED.value:
        return service_record
    if service_record.status == ServiceSubmissionStatus.APPROVED.value:
        raise InvalidServiceRecordStateError(service_record.status, "reject")

    claimed = await _claim_pending(
        db, service_record.id,
        status=ServiceSubmissionStatus.REJECTED.value,
        rejection_reason=(reason or "").strip() or DEFAULT_REJECTION_REASON,
    )
    await db.commit()
    await db.refresh(service_record)
    if not claimed:
        if service_record.status == ServiceSubmissionStatus.REJECTED.value:
            return service_record
        raise InvalidServiceRecordStateError(service_record.status, "reject")

    logger.info("Service record rejected: %s by %s", service_record.id, approver_id)
    notification_service.notify(
        service_record.contractor_id,
        "Work record rejected",
        {
            "type": "WORK_REJECTED",
            "service_record_id": service_record.id,
            "service_type": service_record.service_type,
            "reason": service_record.rejection_reason,
        },
    )
    return service_record


# ---------------------------------------------------------------------------
# Pending queues
# ---------------------------------------------------------------------------

def _pending_filter():
    return (
        ServiceRecord.status.in_(PENDING_SUBMISSION_STATUSES),
        ServiceRecord.is_verified == False,  # noqa: E712
        ServiceRecord.archived_at.is_(None),
    )


async def list_pending_submissions(db: AsyncSession, home_id: str, user_id: str) -> list[ServiceRecord]:
    await require_home_access(db, home_id, user_id)
    result = await db.execute(
        select(ServiceRecord)
        .where(ServiceRecord.home_id == home_id, *_pending_filter())
        .order_by(ServiceRecord.created_at.desc())
    )
    return list(result.scalars().all())


async def count_pending_submissions(db: AsyncSession, user_id: str) -> int:
    """Pending submissions across every home the user owns."""
    result = await db.execute(
        select(func.count(ServiceRecord.id))
        .join(Home, Home.id == ServiceRecord.home_id)
        .where(Home.owner_id == user_id, *_pending_filter())
    )
    return result.scalar() or 0
