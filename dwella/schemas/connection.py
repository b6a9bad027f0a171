from datetime import datetime

from pydantic import BaseModel


class ConnectionResponse(BaseModel):
    id: str
    homeowner_id: str
    contractor_id: str
    home_id: str
    status: str
    established_via: str | None = None
    source_record_id: str | None = None
    verified_service_count: int
    total_spent: float
    archived_at: datetime | None = None

    model_config = {"from_attributes": True}
