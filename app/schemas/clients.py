"""Request/response schemas for clients."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.schemas.common import strip_required


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: str = Field(..., min_length=1, max_length=255)
    contact_email: EmailStr

    @field_validator("name", "contact_person")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("contact_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class ClientUpdate(BaseModel):
    """Explicit patch for a client; only fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, min_length=1, max_length=255)
    contact_email: EmailStr | None = None

    @field_validator("name", "contact_person")
    @classmethod
    def validate_text(cls, v: str | None) -> str | None:
        return None if v is None else strip_required(v)

    @field_validator("contact_email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return None if v is None else v.lower()


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_person: str
    contact_email: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ClientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_person: str
    contact_email: str
