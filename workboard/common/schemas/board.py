"""
Board Schemas

User-facing inputs (profile, prioritization tunables) and the scored task
records handed to the board assembler.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator
from enum import Enum

from .signal import SignalSource


class Column(str, Enum):
    """Board column. DONE is only reached by a user action."""
    NOW = "NOW"
    NEXT = "NEXT"
    WAITING = "WAITING"
    DONE = "DONE"


class UserProfile(BaseModel):
    """The end user a board is built for"""
    id: str
    name: Optional[str] = None
    role_title: str = "AI Enablement and Automation Lead"


class UserPrioritizationConfig(BaseModel):
    """
    Per-user tunables, owned by the settings layer and read-only here.

    The three source weights are expected to sum to 1.0 but this is not
    enforced.
    """
    key_channels: List[str] = Field(default_factory=list)
    key_people: List[str] = Field(default_factory=list)
    exec_senders: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    working_hour_start: int = Field(default=9, ge=0, le=23)
    working_hour_end: int = Field(default=18, ge=1, le=24)

    task_min: int = Field(default=8, ge=3, le=30)
    task_max: int = Field(default=20, ge=5, le=40)

    channel_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    email_weight: float = Field(default=0.35, ge=0.0, le=1.0)
    calendar_weight: float = Field(default=0.25, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_task_bounds(self) -> "UserPrioritizationConfig":
        if self.task_min > self.task_max:
            raise ValueError(f"task_min ({self.task_min}) must not exceed task_max ({self.task_max})")
        return self


class ScoredTask(BaseModel):
    """One ranked board entry"""
    title: str
    source: SignalSource
    effort_minutes: int
    due_at: Optional[datetime] = None
    column: Column
    link: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    why: str = ""
