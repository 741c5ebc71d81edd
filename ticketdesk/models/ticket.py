from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from .lookup import LookupEntity
from .user import API_CONFIG, PyObjectId, User, utcnow


class Ticket(BaseModel):
    model_config = API_CONFIG

    id: Optional[PyObjectId] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    number: str
    problem_description: str
    priority_id: PyObjectId
    type_id: PyObjectId
    environment_id: PyObjectId
    origin_id: PyObjectId
    status_id: PyObjectId
    requester_id: PyObjectId
    assignee_id: Optional[PyObjectId] = None
    evidence: str
    attachments: Optional[str] = None
    resolution_details: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    handling_started_at: Optional[datetime] = None
    handling_ended_at: Optional[datetime] = None


class TicketCreate(BaseModel):
    model_config = API_CONFIG

    problem_description: str = Field(min_length=10)
    priority: str = Field(min_length=1)
    type: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    origin: str = Field(min_length=1)
    assignee_email: Optional[EmailStr] = None
    evidence: str = Field(min_length=1)
    attachments: Optional[str] = None

    @field_validator("assignee_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TicketUpdate(TicketCreate):
    status: str = Field(min_length=1)
    resolution_details: Optional[str] = None


class TicketView(BaseModel):
    """A ticket with its lookups and people resolved."""

    model_config = API_CONFIG

    id: PyObjectId
    number: str
    problem_description: str
    priority: LookupEntity
    type: LookupEntity
    environment: LookupEntity
    origin: LookupEntity
    status: LookupEntity
    requester: Optional[User] = None
    assignee: Optional[User] = None
    evidence: str
    attachments: Optional[str] = None
    resolution_details: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    handling_started_at: Optional[datetime] = None
    handling_ended_at: Optional[datetime] = None


class ChartDataItem(BaseModel):
    name: str
    value: int
