from pydantic import AliasChoices, BaseModel, Field
from datetime import datetime
from typing import List, Optional

from .user import API_CONFIG, PyObjectId, utcnow


class MenuItem(BaseModel):
    model_config = API_CONFIG

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    icon_name: Optional[str] = None
    parent_id: Optional[PyObjectId] = None
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class MenuNode(BaseModel):
    model_config = API_CONFIG

    id: PyObjectId
    title: str
    icon_name: Optional[str] = None
    parent_id: Optional[PyObjectId] = None
    sub_menus: List["MenuNode"] = Field(default_factory=list)
