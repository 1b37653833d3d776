# dashpipe/schemas/delivery.py
from pydantic import BaseModel
from typing import List


class DeliveryRecord(BaseModel):
    """Binding carried by a delivery credential."""
    session_token: str
    node: str
    content_id: str
    created_at: float
    expires_at: float

    class Config:
        frozen = True


class LicenseKey(BaseModel):
    kty: str = "oct"
    kid: str
    k: str


class LicenseResponse(BaseModel):
    keys: List[LicenseKey]
    type: str = "temporary"


class HealthStatus(BaseModel):
    status: str = "ok"
    sessions: int
    deliveryTokens: int
    uptime: str
