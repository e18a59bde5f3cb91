"""
Data models for Countify.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, NamedTuple, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from .validators import normalize_bounds

DEFAULT_SESSION_NAME = "New Count"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class HapticKind(StrEnum):
    """Kinds of haptic event a state change can request."""

    INCREMENT = "increment"
    DECREMENT = "decrement"
    RESET = "reset"


class StepResult(NamedTuple):
    """Outcome of a bounded increment or decrement."""

    session: "CountSession"
    applied: bool


class RegistryDefaults(BaseModel):
    """Settings applied to newly created sessions."""

    haptic_enabled: bool = Field(default=True)
    allow_negatives: bool = Field(default=False)


class CountSession(BaseModel):
    """
    One counter with its configuration and current value.

    Construction never fails on numeric input: step size, limits and count
    are normalized instead. Operations return new sessions and leave the
    receiver untouched.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(default=DEFAULT_SESSION_NAME)
    count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: Optional[datetime] = Field(
        default=None, description="Defaults to created_at"
    )
    haptic_enabled: bool = Field(default=True)
    allow_negatives: bool = Field(default=False)
    step_size: int = Field(default=1)
    upper_limit: Optional[int] = Field(default=None, description="Inclusive ceiling")
    lower_limit: Optional[int] = Field(default=None, description="Inclusive floor")
    favorite: bool = Field(default=False)

    @field_validator("created_at", "last_modified")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Read naive timestamps as UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def normalize(self) -> "CountSession":
        """Clamp step size, limits and count into a consistent state."""
        count, step_size, upper_limit, lower_limit = normalize_bounds(
            self.count, self.step_size, self.upper_limit, self.lower_limit
        )
        self.count = count
        self.step_size = step_size
        self.upper_limit = upper_limit
        self.lower_limit = lower_limit
        if self.last_modified is None:
            self.last_modified = self.created_at
        return self

    def replace(self, **changes: Any) -> "CountSession":
        """Return a normalized copy with the given fields changed."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    def can_increment(self) -> bool:
        if self.upper_limit is None:
            return True
        return self.count + self.step_size <= self.upper_limit

    def can_decrement(self) -> bool:
        if self.lower_limit is not None:
            return self.count - self.step_size >= self.lower_limit
        return self.allow_negatives or self.count >= self.step_size

    def increment_within_limits(self) -> StepResult:
        """
        Add one step, or snap to the upper limit when a full step overshoots.

        Returns:
            StepResult with the new session and whether the count changed
        """
        if self.can_increment():
            return StepResult(self.replace(count=self.count + self.step_size), True)
        if self.upper_limit is not None and self.count < self.upper_limit:
            return StepResult(self.replace(count=self.upper_limit), True)
        return StepResult(self.replace(), False)

    def decrement_within_limits(self) -> StepResult:
        """
        Subtract one step, falling back to a partial step when needed.

        With a lower limit, a short step snaps to the limit. Without one, and
        with negatives disallowed, a short step snaps to zero. There is no
        matching zero-snap on increment.

        Returns:
            StepResult with the new session and whether the count changed
        """
        if self.can_decrement():
            return StepResult(self.replace(count=self.count - self.step_size), True)
        if self.lower_limit is not None:
            if self.count > self.lower_limit:
                return StepResult(self.replace(count=self.lower_limit), True)
        elif not self.allow_negatives and 0 < self.count < self.step_size:
            return StepResult(self.replace(count=0), True)
        return StepResult(self.replace(), False)

    def is_at_upper_limit(self) -> bool:
        return self.upper_limit is not None and self.count == self.upper_limit

    def is_at_lower_limit(self) -> bool:
        return self.lower_limit is not None and self.count == self.lower_limit

    @property
    def reset_value(self) -> int:
        """Value a reset returns to: a positive lower limit, else zero."""
        if self.lower_limit is not None and self.lower_limit > 0:
            return self.lower_limit
        return 0

    def reset(self) -> "CountSession":
        return self.replace(count=self.reset_value)

    def renamed(self, name: str) -> "CountSession":
        return self.replace(name=name)

    def toggle_favorite(self) -> "CountSession":
        return self.replace(favorite=not self.favorite)

    def duplicate(self, **overrides: Any) -> "CountSession":
        """
        Build a copy under a new identity.

        The copy is named "<name> Copy" and gets a fresh id and fresh
        timestamps unless they are supplied in ``overrides``. The favorite
        flag is not carried over.
        """
        data = {
            "name": f"{self.name} Copy",
            "count": self.count,
            "haptic_enabled": self.haptic_enabled,
            "allow_negatives": self.allow_negatives,
            "step_size": self.step_size,
            "upper_limit": self.upper_limit,
            "lower_limit": self.lower_limit,
        }
        data.update(overrides)
        return type(self).model_validate(data)

    def limits_description(self) -> str:
        if self.lower_limit is not None and self.upper_limit is not None:
            return f"{self.lower_limit} - {self.upper_limit}"
        if self.lower_limit is not None:
            return f"Min: {self.lower_limit}"
        if self.upper_limit is not None:
            return f"Max: {self.upper_limit}"
        return "None"
