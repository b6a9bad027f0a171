from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class AddressInput(BaseModel):
    street: str = Field(..., min_length=1)
    unit: str | None = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)


class ServiceRecordCreateRequest(BaseModel):
    home_id: str | None = None
    address: AddressInput | None = None
    service_type: str = Field(..., min_length=1, max_length=200)
    service_date: datetime
    description: str | None = None
    cost: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _home_or_address(self):
        if not self.home_id and self.address is None:
            raise ValueError("Either home_id or address is required")
        return self


class AttachmentFile(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=100)
    size: int = Field(..., gt=0)
    category: str = Field(default="photo", pattern="^(photo|invoice|warranty)$")


class AttachmentUploadRequest(BaseModel):
    files: list[AttachmentFile] = Field(..., min_length=1)


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class AttachmentResponse(BaseModel):
    id: str
    home_id: str
    parent_type: str
    parent_id: str
    file_name: str
    mime_type: str
    size: int
    category: str
    storage_key: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ServiceRecordResponse(BaseModel):
    id: str
    home_id: str
    contractor_id: str
    service_type: str
    description: str | None = None
    service_date: datetime
    cost: float | None = None
    status: str
    is_verified: bool
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    final_record_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RecordResponse(BaseModel):
    id: str
    home_id: str
    title: str
    note: str | None = None
    date: datetime | None = None
    kind: str
    vendor: str | None = None
    cost: float | None = None
    created_by: str
    verified_by: str | None = None
    verified_at: datetime | None = None

    model_config = {"from_attributes": True}


class ApproveResponse(BaseModel):
    success: bool = True
    service_record: ServiceRecordResponse
    final_record: RecordResponse


class RejectResponse(BaseModel):
    success: bool = True
    service_record: ServiceRecordResponse


class PendingCountResponse(BaseModel):
    total: int
