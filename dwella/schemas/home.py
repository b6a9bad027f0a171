from datetime import datetime

from pydantic import BaseModel


class HomeResponse(BaseModel):
    id: str
    owner_id: str | None = None
    address: str
    address_line2: str | None = None
    city: str
    state: str
    zip: str
    country: str = "US"
    verification_status: str
    verification_method: str | None = None
    verified_at: datetime | None = None
    verified_by_user_id: str | None = None

    model_config = {"from_attributes": True}
