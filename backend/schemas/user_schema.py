from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Literal, Optional
from db.models.account import STATUS_ACTIVE, STATUS_BANNED, STATUS_INACTIVE


class CamelModel(BaseModel):
    """Accepts camelCase keys from clients as well as the snake_case names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1)
    surname: str = Field(min_length=1)
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)

class LoginRequest(CamelModel):
    email: EmailStr
    password: str

class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

class ChangePasswordRequest(CamelModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(min_length=1, alias="newPassword")

class ForgotPasswordRequest(CamelModel):
    email: EmailStr

class ResetPasswordRequest(CamelModel):
    email: EmailStr
    code: str
    new_password: str = Field(min_length=1, alias="newPassword")

class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    surname: Optional[str] = None
    username: Optional[str] = None
    email: Optional[EmailStr] = None

class StatusUpdate(CamelModel):
    status: Literal[STATUS_ACTIVE, STATUS_INACTIVE, STATUS_BANNED]
