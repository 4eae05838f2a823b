"""
Input validation schemas using Pydantic v2
Validates caller-supplied payloads before any store access
"""

import logging
import re
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidArgument

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

ModelT = TypeVar("ModelT", bound=BaseModel)


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_title(title: str, max_length: int = 255) -> str:
        """Sanitize a display title - keep letters (any script), digits and punctuation"""
        title = InputSanitizer.sanitize_string(title, max_length)

        # Remove control characters and markup brackets only
        title = re.sub(r"[<>\x00-\x1f\x7f]", "", title)

        return title.strip()


# ==================== SCHEMAS ====================


class CompetitionNameInput(BaseModel):
    competitionName: str = Field(..., max_length=255)

    @field_validator("competitionName")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Competition name must be nonempty after trimming"""
        v = InputSanitizer.sanitize_title(v)
        if len(v) == 0:
            raise ValueError("Competition name must be nonempty")
        return v


class NonEventRoundInput(BaseModel):
    """A schedule slot that is not part of any event (lunch, awards...)"""

    title: str = Field(..., max_length=100)
    startMinutes: int = Field(..., ge=0, lt=MINUTES_PER_DAY, description="Minutes after midnight")
    durationMinutes: int = Field(..., ge=0, le=MINUTES_PER_DAY)
    nthDay: Optional[int] = Field(None, ge=0, le=365)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = InputSanitizer.sanitize_title(v, 100)
        if len(v) == 0:
            raise ValueError("title cannot be empty")
        return v


class RoundUpdateInput(BaseModel):
    """Field-level round edit. Which fields may appear is checked by PermissionGuard."""

    formatCode: Optional[str] = Field(None, min_length=1, max_length=4)
    nthDay: Optional[int] = Field(None, ge=0, le=365)
    startMinutes: Optional[int] = Field(None, ge=0, lt=MINUTES_PER_DAY)
    durationMinutes: Optional[int] = Field(None, ge=0, le=MINUTES_PER_DAY)
    title: Optional[str] = Field(None, max_length=100)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return InputSanitizer.sanitize_title(v, 100)

    model_config = ConfigDict(extra="forbid")


class GroupInput(BaseModel):
    """A group document; anything beyond the key fields is kept verbatim"""

    competitionId: str = Field(..., min_length=1)
    roundId: str = Field(..., min_length=1)
    group: str = Field(..., min_length=1, max_length=50, description="Group label, e.g. 'A'")

    @field_validator("group")
    @classmethod
    def validate_group(cls, v: str) -> str:
        v = InputSanitizer.sanitize_string(v, 50)
        if len(v) == 0:
            raise ValueError("group label cannot be empty")
        return v

    model_config = ConfigDict(extra="allow")


def validate_input(model: Type[ModelT], data: dict) -> ModelT:
    """
    Validate a payload against ``model``

    Returns:
        The validated model instance

    Raises:
        InvalidArgument: If validation fails
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{model.__name__} validation failed: {e}")
        raise InvalidArgument(f"Invalid {model.__name__}: {e.errors(include_url=False)}")


# ==================== EXPORT ====================

__all__ = [
    "InputSanitizer",
    "CompetitionNameInput",
    "NonEventRoundInput",
    "RoundUpdateInput",
    "GroupInput",
    "validate_input",
]
