from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    homes_count: int
    pending_verifications_count: int
    pending_service_records_count: int
