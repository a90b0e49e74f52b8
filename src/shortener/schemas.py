from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shortener.utils import as_utc, utcnow, validate_and_fix_url


class Algorithm(str, Enum):
    HASH = "hash"
    UUID = "uuid"
    CUSTOM = "custom"


class DeviceClass(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"
    OTHER = "other"


class CustomOptions(BaseModel):
    length: int = Field(7, ge=4, le=12)
    include_numbers: bool = True
    include_uppercase: bool = True
    include_lowercase: bool = True
    exclude_similar: bool = True

    @model_validator(mode="after")
    def check_alphabet(self):
        if not (self.include_numbers or self.include_uppercase or self.include_lowercase):
            raise ValueError("custom_options must include at least one character class")
        return self


class LinkCreate(BaseModel):
    original_url: str
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=500)
    expires_at: datetime | None = None
    algorithm: Algorithm = Algorithm.HASH
    custom_options: CustomOptions | None = None

    @field_validator("original_url")
    @classmethod
    def fix_url(cls, value: str) -> str:
        return validate_and_fix_url(value)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("expires_at")
    @classmethod
    def expiry_as_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class BulkItem(BaseModel):
    """Items are validated one by one so a bad URL fails only its own slot."""
    original_url: str | None = None
    title: str | None = None
    description: str | None = None
    expires_at: datetime | None = None


class BulkCreate(BaseModel):
    urls: list[BulkItem]
    algorithm: Algorithm = Algorithm.HASH
    custom_options: CustomOptions | None = None


class LinkPatch(BaseModel):
    original_url: str | None = None
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=500)
    expires_at: datetime | None = None
    is_active: bool | None = None

    @field_validator("original_url", "is_active")
    @classmethod
    def not_null(cls, value, info):
        # omit the field to keep the stored value; a link always has a target and a flag
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("original_url")
    @classmethod
    def fix_url(cls, value: str) -> str:
        return validate_and_fix_url(value)

    @field_validator("expires_at")
    @classmethod
    def expiry_as_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class LinkRecord(BaseModel):
    id: int | None = None
    original_url: str
    short_code: str
    owner_id: UUID | None = None
    title: str | None = None
    description: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def timestamps_as_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or utcnow())


class ClickMetadata(BaseModel):
    source_ip: str | None = None
    user_agent: str | None = None
    referrer: str | None = None


class ClickRecord(ClickMetadata):
    id: int | None = None
    link_id: int
    occurred_at: datetime = Field(default_factory=utcnow)
    device_class: DeviceClass = DeviceClass.OTHER

    model_config = ConfigDict(from_attributes=True)

    @field_validator("occurred_at")
    @classmethod
    def occurred_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class LinkOut(BaseModel):
    id: int
    original_url: str
    short_code: str
    full_short_url: str
    title: str | None
    description: str | None
    is_active: bool
    expires_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LinkCreated(LinkOut):
    algorithm_used: Algorithm


class ValidateRequest(BaseModel):
    url: str
