# dashpipe/schemas/session.py
from pydantic import AliasChoices, BaseModel, Field
from typing import Optional


class SessionRecord(BaseModel):
    user_id: str
    origin: str
    created_at: float
    expires_at: float

    class Config:
        frozen = True


class LoginRequest(BaseModel):
    # Both optional: the login handler reports missing fields itself
    username: Optional[str] = Field(default=None, validation_alias=AliasChoices("username", "identity"))
    password: Optional[str] = Field(default=None, validation_alias=AliasChoices("password", "secret"))


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    userId: str
    expiresIn: int
    message: str


class LogoutRequest(BaseModel):
    token: Optional[str] = Field(default=None, validation_alias=AliasChoices("token", "credential"))


class SessionInfo(BaseModel):
    valid: bool
    userId: Optional[str] = None
    remaining: Optional[int] = None
    expiresAt: Optional[str] = None
    token: Optional[str] = None
