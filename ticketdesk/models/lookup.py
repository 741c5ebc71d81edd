from enum import Enum
from pydantic import AliasChoices, BaseModel, Field

from .user import API_CONFIG, PyObjectId


class LookupCategory(str, Enum):
    PRIORITY = "priority"
    TYPE = "type"
    ENVIRONMENT = "environment"
    ORIGIN = "origin"
    STATUS = "status"

    @property
    def collection(self) -> str:
        return COLLECTIONS[self]

    @property
    def label(self) -> str:
        return LABELS[self]


COLLECTIONS = {
    LookupCategory.PRIORITY: "priorities",
    LookupCategory.TYPE: "types",
    LookupCategory.ENVIRONMENT: "environments",
    LookupCategory.ORIGIN: "origins",
    LookupCategory.STATUS: "statuses",
}

LABELS = {
    LookupCategory.PRIORITY: "Prioridade",
    LookupCategory.TYPE: "Tipo",
    LookupCategory.ENVIRONMENT: "Ambiente",
    LookupCategory.ORIGIN: "Origem",
    LookupCategory.STATUS: "Situação",
}


class LookupEntity(BaseModel):
    model_config = API_CONFIG

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    description: str
