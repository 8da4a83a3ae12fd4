"""
Database Schemas for the Photoflow back office

Each Pydantic model represents a MongoDB collection. Field aliases give the
camelCase names the documents are stored and served under.
Project, event, quotation, billing, service, settings and chat documents are
schema-less and have no model here.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class User(BaseModel):
    """
    Users collection schema
    Passwords are stored as bcrypt hashes; reset tokens as sha256 digests.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="Email address (unique)")
    name: str = Field("New User", description="Display name")
    password_hash: str = Field(..., alias="passwordHash", description="BCrypt hash of the user's password")
    role: str = Field("photographer", description="Account role")
    password_reset_token: Optional[str] = Field(None, alias="passwordResetToken")
    password_reset_expires: Optional[datetime] = Field(None, alias="passwordResetExpires")


# Fields that never leave the server
USER_PRIVATE_FIELDS = ("passwordHash", "passwordResetToken", "passwordResetExpires")


class Payment(BaseModel):
    """Payment owed to a team member for one event (soft reference by eventId)."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventId", min_length=1)
    event_name: str = Field(..., alias="eventName", min_length=1)
    amount: float = Field(..., ge=0)
    date: datetime
    status: Literal["pending", "partial", "paid"] = "pending"
    notes: str = ""


class TeamMember(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    phone: str = ""
    email: EmailStr = Field(..., description="Email address (unique among members)")
    avatar: Optional[str] = None
    payments: List[Payment] = Field(default_factory=list)


class Policy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = Field(None, description="Legacy numeric id")
    content: str = Field(..., min_length=1)
    group: str = "Uncategorized"


# Request bodies. Fields are optional so presence is checked by the handlers
# and reported as a 400 with a readable message.

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")


class AuthResponse(BaseModel):
    token: str
    user: dict
