from datetime import datetime
from typing import Any

from pydantic import BaseModel

from dwella.schemas.home import HomeResponse


class VerifyCodeRequest(BaseModel):
    # Checked in the service so a missing or non-string code is a 400, not a 422.
    code: Any = None


class PostcardIssuedResponse(BaseModel):
    ok: bool = True
    verification_id: str
    provider_id: str
    expires_at: datetime


class VerifyCodeResponse(BaseModel):
    ok: bool = True
    home: HomeResponse


class PendingVerificationInfo(BaseModel):
    id: str
    attempts: int
    max_attempts: int
    created_at: datetime
    expires_at: datetime | None = None

    model_config = {"from_attributes": True}


class VerificationStatusResponse(BaseModel):
    home_id: str
    verification_status: str
    verification_method: str | None = None
    verified_at: datetime | None = None
    pending: PendingVerificationInfo | None = None


class VendorVerificationRequest(BaseModel):
    homeowner_user_id: str | None = None
