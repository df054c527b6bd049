from datetime import datetime

from pydantic import Field

from egisedge.core.auth import UserRole
from egisedge.schemas.base import CamelModel


class UserProfile(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole = Field(alias="userType")
    created_at: datetime


class SignupRequest(CamelModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None
    user_type: str | None = None


class SignupUserOut(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole = Field(alias="userType")


class SignupOut(CamelModel):
    user: SignupUserOut


class ProfileOut(CamelModel):
    user: UserProfile
