"""Assignee suggestion through a Groq-hosted chat model.

One JSON-mode completion per request; the reply is validated into an
``AssigneeSuggestion``. No retries and no caching: any failure reaches the
caller as a single ``UpstreamError``.
"""

from groq import Groq, GroqError
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import json
import logging

from .config import GROQ_API_KEY, GROQ_MODEL
from .directory import permitted_assignees
from .errors import UpstreamError, ValidationError
from .models import AssigneeSuggestion

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI assistant helping to assign support tickets to the most appropriate person.

Given a problem description, suggest an assignee (email address) and explain your reasoning.
Consider their expertise and current workload.

Known assignees:
{assignees}

Reply with a JSON object with exactly two keys:
  "assigneeEmail": the email address of the suggested assignee
  "reason": a short explanation of the choice"""


class AssigneeSuggester:
    def __init__(self, client: Optional[Groq] = None, model: str = GROQ_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self) -> Groq:
        if self._client is None:
            self._client = Groq(api_key=GROQ_API_KEY)
        return self._client

    def _system_prompt(self) -> str:
        assignees = "\n".join(f"  - {a.name} <{a.email}>" for a in permitted_assignees())
        return SYSTEM_PROMPT.format(assignees=assignees or "  (none registered)")

    def suggest(self, problem_description: str) -> AssigneeSuggestion:
        if not problem_description or not problem_description.strip():
            raise ValidationError(
                "Invalid input",
                {"problemDescription": ["Problem description cannot be empty."]},
            )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._system_prompt()},
                    {"role": "user", "content": f"Problem Description: {problem_description}"},
                ],
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content or ""
            return AssigneeSuggestion(**json.loads(content))
        except GroqError as e:
            logger.exception("Assignee suggestion call failed")
            raise UpstreamError("Failed to get AI assignee suggestion.") from e
        except (IndexError, AttributeError, json.JSONDecodeError, TypeError, PydanticValidationError) as e:
            logger.exception("Assignee suggestion reply could not be parsed")
            raise UpstreamError("Failed to get AI assignee suggestion.") from e
