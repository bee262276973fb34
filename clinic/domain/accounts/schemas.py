"""Account domain schemas - Pydantic models for registration and login"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Role
from ...shared.validators import clean_optional_text, validate_email


class RegisterRequest(BaseModel):
    """Schema for registering an account and its profile"""

    email: str
    password: str
    role: Role = Role.PATIENT
    name: str
    # Patient profile
    age: Optional[int] = None
    gender: Optional[str] = None
    dietaryRestrictions: Optional[str] = None
    allergies: Optional[str] = None
    # Doctor profile
    specialization: Optional[str] = None
    # Both
    contactInfo: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v

    @field_validator("specialization", "gender", "contactInfo", "dietaryRestrictions", "allergies")
    @classmethod
    def strip_text(cls, v):
        return clean_optional_text(v)


class AddDoctorRequest(BaseModel):
    """Schema for an admin creating a doctor account"""

    email: str
    password: str
    name: str
    specialization: str
    contactInfo: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class AccountResponse(BaseModel):
    id: int
    email: str
    role: str
    name: str


class LoginResponse(BaseModel):
    message: str
    token: str
    user: AccountResponse


class DoctorSummary(BaseModel):
    id: int
    name: str
    specialization: str

    class Config:
        from_attributes = True
