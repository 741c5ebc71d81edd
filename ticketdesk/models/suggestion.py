from pydantic import BaseModel, EmailStr, Field

from .user import API_CONFIG


class SuggestAssigneeRequest(BaseModel):
    model_config = API_CONFIG

    problem_description: str = Field(min_length=1)


class AssigneeSuggestion(BaseModel):
    model_config = API_CONFIG

    assignee_email: EmailStr
    reason: str
