from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    id: str
    full_name: str
    phone_number: str = ""
    email: str = ""
    profile_picture_url: str = ""

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    id: str
    user_name: str
    full_name: str
    phone_number: str = ""
    email: str = ""
    profile_picture_url: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None


class UserProfileUpdateResponse(BaseModel):
    success: bool
    message: str
    profile: UserProfileResponse
