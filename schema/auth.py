# schema/auth.py
from __future__ import annotations
from typing import Optional, Literal
from datetime import datetime
from pydantic import BaseModel, EmailStr, ConfigDict, model_validator, constr


class RegisterIn(BaseModel):
    first_name: constr(strip_whitespace=True, min_length=1, max_length=120)
    last_name: constr(strip_whitespace=True, min_length=1, max_length=120)
    email: EmailStr
    password: constr(min_length=8, max_length=128)
    confirm_password: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "first_name": "Amadou",
                "last_name": "Diallo",
                "email": "amadou@example.com",
                "password": "ExamplePass123!",
                "confirm_password": "ExamplePass123!"
            }
        }
    )

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class LogoutIn(BaseModel):
    refresh_token: str


class VerifyCodeIn(BaseModel):
    email: EmailStr
    code: constr(strip_whitespace=True, pattern=r"^\d{6}$")


class ResendCodeIn(BaseModel):
    email: EmailStr


class UserOut(BaseModel):
    public_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: EmailStr
    role: Literal["client", "developer", "agent"] = "client"
    is_email_verified: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    requires_email_verification: bool = True


class MessageOut(BaseModel):
    message: str
