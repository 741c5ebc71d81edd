from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from typing import Annotated, Optional

# ObjectIds travel as hex strings outside the repositories
PyObjectId = Annotated[str, BeforeValidator(str)]

API_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def utcnow() -> datetime:
    """Naive UTC now, truncated to the millisecond precision MongoDB keeps."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class User(BaseModel):
    model_config = API_CONFIG

    id: Optional[PyObjectId] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: str
    email: str
    password_hash: Optional[str] = Field(default=None, exclude=True)
    active: bool = True
    photo_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserCreate(BaseModel):
    model_config = API_CONFIG

    name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=6)
    photo_url: Optional[str] = None


class UserUpdate(BaseModel):
    model_config = API_CONFIG

    name: Optional[str] = Field(default=None, min_length=3)
    email: Optional[EmailStr] = None
    photo_url: Optional[str] = None
    active: Optional[bool] = None


class Identity(BaseModel):
    """The authenticated caller, as forwarded by the gateway headers."""

    email: EmailStr
    name: Optional[str] = None


class Assignee(BaseModel):
    email: str
    name: str
