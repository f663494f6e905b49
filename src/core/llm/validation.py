"""Schema gate for untrusted generation results.

Backends return whatever the model produced. Only four fields are read:
``subject`` and ``body`` are mandatory, ``tone`` falls back to
professional, ``reasoning`` falls back to an empty string. Anything else
the model emits is dropped.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.models.enums import FollowUpTone

logger = logging.getLogger(__name__)


class FollowUpDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    subject: str
    body: str
    tone: FollowUpTone = FollowUpTone.professional
    reasoning: str = ""

    @field_validator("subject", "body", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    @field_validator("tone", mode="before")
    @classmethod
    def _known_tone(cls, value: Any) -> FollowUpTone:
        try:
            return FollowUpTone(value)
        except ValueError:
            return FollowUpTone.professional

    @field_validator("reasoning", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


def validate_follow_up_result(raw: Any) -> FollowUpDraft | None:
    """Return a validated draft, or None when the result must be rejected."""
    if not isinstance(raw, Mapping):
        logger.error("Invalid follow-up result: expected an object, got %s", type(raw).__name__)
        return None

    fields = {key: raw[key] for key in ("subject", "body", "tone", "reasoning") if key in raw}
    try:
        return FollowUpDraft.model_validate(fields)
    except PydanticValidationError as e:
        bad = ", ".join(str(err["loc"][0]) for err in e.errors())
        logger.error("Invalid follow-up result: missing or invalid %s", bad)
        return None
