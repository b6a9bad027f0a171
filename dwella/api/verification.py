from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dwella.core.auth import CurrentUser, get_current_pro, get_current_user
from dwella.database import get_db
from dwella.schemas.home import HomeResponse
from dwella.schemas.verification import (
    PostcardIssuedResponse,
    VendorVerificationRequest,
    VerificationStatusResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from dwella.services import verification_service
from dwella.services.postcard_service import PostcardSender, get_postcard_sender

router = APIRouter(tags=["verification"])


@router.post(
    "/homes/{home_id}/verification/postcard",
    response_model=PostcardIssuedResponse,
    status_code=201,
)
async def request_postcard(
    home_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    sender: PostcardSender = Depends(get_postcard_sender),
):
    """Mail a verification code to the home's address."""
    return await verification_service.issue_postcard_verification(db, home_id, user, sender)


@router.post("/homes/{home_id}/verification/verify", response_model=VerifyCodeResponse)
async def verify_postcard_code(
    home_id: str,
    req: VerifyCodeRequest | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    home = await verification_service.validate_postcard_code(
        db, home_id, user.id, req.code if req else None,
    )
    return VerifyCodeResponse(home=HomeResponse.model_validate(home))


@router.get("/homes/{home_id}/verification", response_model=VerificationStatusResponse)
async def get_verification_status(
    home_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return await verification_service.get_verification_status(db, home_id, user.id)


@router.post("/pro/homes/{home_id}/vendor-verification", response_model=HomeResponse)
async def vendor_verification(
    home_id: str,
    req: VendorVerificationRequest,
    db: AsyncSession = Depends(get_db),
    pro: CurrentUser = Depends(get_current_pro),
):
    """A connected contractor attests that the homeowner lives at this address."""
    return await verification_service.verify_home_by_vendor(
        db, home_id, pro.id, req.homeowner_user_id,
    )
