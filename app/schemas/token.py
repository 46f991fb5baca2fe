from datetime import datetime

from pydantic import BaseModel

from app.schemas.user import UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expiration: datetime
    user: UserResponse
