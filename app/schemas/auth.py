from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.core.config import settings


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=6, max_length=32)
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH, max_length=72)
    confirm_password: str
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class LoginRequest(BaseModel):
    phone_number: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH, max_length=72)
    confirm_new_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("Passwords do not match.")
        return self


class MessageResponse(BaseModel):
    success: bool = True
    message: str
