"""
User model for authentication and profile management.
"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, BeforeValidator, field_validator
from typing import Optional, Annotated, Any
from datetime import datetime


# --- MongoDB ObjectIds leave the API as plain strings ---
ObjectIdStr = Annotated[str, BeforeValidator(lambda v: str(v))]

ALLOWED_USER_UPDATES = ("name", "age", "email", "password")


class UserFields(BaseModel):
    """Validators shared by every model that writes user fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("password", check_fields=False)
    @classmethod
    def reject_weak_password(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and "password" in v.lower():
            raise ValueError("Password may not include the phrase 'password'")
        return v


class UserCreate(UserFields):
    """Model for user registration"""
    name: str = Field(..., min_length=1, examples=["Bob Belcher"])
    age: int = Field(0, ge=0)
    email: EmailStr = Field(..., examples=["bob@bobsburgers.com"])
    password: str = Field(..., min_length=7)


class UserUpdate(UserFields):
    """Model for profile updates; only keys that were sent are applied"""
    name: str = Field(None, min_length=1)
    age: int = Field(None, ge=0)
    email: EmailStr = None
    password: str = Field(None, min_length=7)


class UserLogin(BaseModel):
    """Model for user login"""
    email: str
    password: str


class UserPublic(BaseModel):
    """User model for API responses (no password, tokens or avatar)"""
    id: ObjectIdStr = Field(..., alias="_id")
    name: str
    age: int = 0
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class AuthResponse(BaseModel):
    """Profile plus the freshly issued bearer token"""
    user: UserPublic
    token: str
