"""Home verification: postcard code challenges and vendor attestations.

A postcard verification moves PENDING -> COMPLETED | EXPIRED | CANCELLED and
never leaves a terminal state. Checks on validation run in a fixed order:
pending lookup, expiry, attempt budget, then the code itself.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.config import settings
from dwella.core.access import require_home_owner
from dwella.core.auth import CurrentUser
from dwella.core.exceptions import (
    ForbiddenError,
    HomeNotFoundError,
    RateLimitedError,
    UpstreamDeliveryError,
    VerificationError,
)
from dwella.core.verification_codes import VerificationCodeHasher, generate_numeric_code
from dwella.models.home import Home, HomeVerificationStatus
from dwella.models.verification import HomeVerification, VerificationMethod, VerificationStatus
from dwella.services.connection_service import has_active_connection
from dwella.services.postcard_service import PostalAddress, PostcardDeliveryError, PostcardSender

logger = logging.getLogger(__name__)

NO_PENDING_MESSAGE = "No pending postcard verification found."
EXPIRED_MESSAGE = "This verification code has expired. Request a new postcard."
EXHAUSTED_MESSAGE = "Too many incorrect attempts. Please request a new postcard verification."
INCORRECT_MESSAGE = "Incorrect verification code."
MISSING_CODE_MESSAGE = "Verification code is required."
THROTTLED_MESSAGE = "Too many postcard requests. Please wait before resending."
DELIVERY_FAILED_MESSAGE = "Failed to send postcard. Please try again later."

_hasher: VerificationCodeHasher | None = None


def get_code_hasher() -> VerificationCodeHasher:
    global _hasher
    if _hasher is None:
        _hasher = VerificationCodeHasher(settings.verification_code_secret)
    return _hasher


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _latest_postcard(db: AsyncSession, home_id: str, *, pending_only: bool = False):
    query = select(HomeVerification).where(
        HomeVerification.home_id == home_id,
        HomeVerification.method == VerificationMethod.POSTCARD.value,
    )
    if pending_only:
        query = query.where(HomeVerification.status == VerificationStatus.PENDING.value)
    query = query.order_by(HomeVerification.created_at.desc()).limit(1)
    # Counters are updated in SQL, so reload rather than trust the identity map.
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def issue_postcard_verification(
    db: AsyncSession,
    home_id: str,
    user: CurrentUser,
    sender: PostcardSender,
    hasher: VerificationCodeHasher | None = None,
) -> dict:
    """Create a PENDING postcard verification and mail its code to the home."""
    hasher = hasher or get_code_hasher()
    home = await require_home_owner(db, home_id, user.id)
    now = _utcnow()

    last = await _latest_postcard(db, home_id)
    if last is not None:
        interval = timedelta(hours=settings.postcard_min_interval_hours)
        if now - _as_utc(last.created_at) < interval:
            logger.warning("Postcard throttled for home %s (last=%s)", home_id, last.id)
            raise RateLimitedError(THROTTLED_MESSAGE)

    code = generate_numeric_code(settings.verification_code_length)
    verification = HomeVerification(
        home_id=home_id,
        method=VerificationMethod.POSTCARD.value,
        status=VerificationStatus.PENDING.value,
        code_hash=hasher.hash(code),
        max_attempts=settings.verification_max_attempts,
        created_by_user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(days=settings.verification_expiry_days),
    )
    db.add(verification)
    await db.commit()

    to = PostalAddress(
        name=user.name or "Current Resident",
        address_line1=home.address,
        address_line2=home.address_line2,
        city=home.city,
        state=home.state,
        postal_code=home.zip,
        country=home.country or "US",
    )
    try:
        provider_id = await sender.send(to, home_id, code)
    except Exception as exc:
        verification.status = VerificationStatus.CANCELLED.value
        await db.commit()
        if isinstance(exc, PostcardDeliveryError):
            logger.warning("Postcard delivery failed; verification %s cancelled", verification.id)
        else:
            logger.exception("Unexpected postcard sender error; verification %s cancelled", verification.id)
        raise UpstreamDeliveryError(DELIVERY_FAILED_MESSAGE) from exc

    verification.provider_id = provider_id
    await db.commit()

    logger.info(
        "Postcard verification issued: %s for home %s (provider=%s)",
        verification.id, home_id, provider_id,
    )
    return {
        "ok": True,
        "verification_id": verification.id,
        "provider_id": provider_id,
        "expires_at": verification.expires_at,
    }


async def _update_if_pending(
    db: AsyncSession, verification_id: str, *, within_budget: bool = False, **values
) -> bool:
    """Apply ``values`` in SQL only while the row is still PENDING. Returns whether it matched."""
    stmt = update(HomeVerification).where(
        HomeVerification.id == verification_id,
        HomeVerification.status == VerificationStatus.PENDING.value,
    )
    if within_budget:
        stmt = stmt.where(HomeVerification.attempts < HomeVerification.max_attempts)
    result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    return result.rowcount == 1


def _mark_home_verified(home: Home, user_id: str, now: datetime) -> None:
    home.verification_status = HomeVerificationStatus.VERIFIED_BY_POSTCARD.value
    home.verification_method = VerificationMethod.POSTCARD.value
    home.verified_at = now
    home.verified_by_user_id = user_id


async def validate_postcard_code(
    db: AsyncSession,
    home_id: str,
    user_id: str,
    code: str | None,
    hasher: VerificationCodeHasher | None = None,
) -> Home:
    """Check ``code`` against the home's latest pending postcard verification.

    On success the verification and the home are updated in one commit.
    Every rejection raises VerificationError with a message telling the
    user whether to retry or request a new postcard.
    """
    if not isinstance(code, str) or not code.strip():
        raise VerificationError(MISSING_CODE_MESSAGE)
    hasher = hasher or get_code_hasher()

    home = await require_home_owner(db, home_id, user_id)
    verification = await _latest_postcard(db, home_id, pending_only=True)
    if verification is None:
        raise VerificationError(NO_PENDING_MESSAGE)

    now = _utcnow()
    expires_at = _as_utc(verification.expires_at)
    if expires_at is not None and expires_at < now:
        await _update_if_pending(db, verification.id, status=VerificationStatus.EXPIRED.value)
        await db.commit()
        logger.info("Verification %s expired", verification.id)
        raise VerificationError(EXPIRED_MESSAGE)

    if verification.attempts >= verification.max_attempts:
        await _update_if_pending(db, verification.id, status=VerificationStatus.CANCELLED.value)
        await db.commit()
        logger.info("Verification %s cancelled after %d attempts", verification.id, verification.attempts)
        raise VerificationError(EXHAUSTED_MESSAGE)

    if not hasher.matches(code.strip(), verification.code_hash):
        await _update_if_pending(
            db, verification.id, within_budget=True,
            attempts=HomeVerification.attempts + 1,
            last_attempt_at=now,
        )
        await db.commit()
        raise VerificationError(INCORRECT_MESSAGE)

    try:
        claimed = await _update_if_pending(
            db, verification.id, within_budget=True,
            status=VerificationStatus.COMPLETED.value,
            completed_at=now,
            last_attempt_at=now,
        )
        if claimed:
            _mark_home_verified(home, user_id, now)
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    if not claimed:
        # Another request settled this verification or used up its attempts first.
        await db.rollback()
        await db.refresh(verification)
        raise VerificationError(NO_PENDING_MESSAGE if verification.is_terminal else EXHAUSTED_MESSAGE)

    await db.refresh(home)
    logger.info("Home %s verified by postcard (verification=%s)", home_id, verification.id)
    return home


async def verify_home_by_vendor(
    db: AsyncSession,
    home_id: str,
    vendor_user_id: str,
    homeowner_user_id: str | None = None,
) -> Home:
    """Record a COMPLETED vendor verification and mark the home VERIFIED_BY_VENDOR."""
    home = await db.get(Home, home_id)
    if home is None:
        raise HomeNotFoundError(home_id)
    if not await has_active_connection(db, home_id, vendor_user_id):
        raise ForbiddenError("You don't have access to this property")

    now = _utcnow()
    credited = homeowner_user_id or vendor_user_id
    try:
        db.add(HomeVerification(
            home_id=home_id,
            method=VerificationMethod.VENDOR.value,
            status=VerificationStatus.COMPLETED.value,
            vendor_id=vendor_user_id,
            created_by_user_id=credited,
            code_hash=None,
            created_at=now,
            completed_at=now,
        ))
        home.verification_status = HomeVerificationStatus.VERIFIED_BY_VENDOR.value
        home.verification_method = VerificationMethod.VENDOR.value
        home.verified_at = now
        home.verified_by_user_id = credited
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(home)
    logger.info("Home %s verified by vendor %s", home_id, vendor_user_id)
    return home


async def get_verification_status(db: AsyncSession, home_id: str, user_id: str) -> dict:
    """Owner-only view of a home's verification state and any pending postcard."""
    home = await require_home_owner(db, home_id, user_id)
    pending = await _latest_postcard(db, home_id, pending_only=True)
    return {
        "home_id": home.id,
        "verification_status": home.verification_status,
        "verification_method": home.verification_method,
        "verified_at": home.verified_at,
        "pending": pending,
    }
