"""Outcomes returned by the lifecycle engine."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from skirmish.models.registry import PlayerRecord

if TYPE_CHECKING:
    from skirmish.services.confirmation import ClearPrompt
    from skirmish.services.lifecycle import Roster


class Category(str, Enum):
    UNAUTHORIZED = "unauthorized"
    PRECONDITION_FAILED = "precondition_failed"
    IDENTITY_MISMATCH = "identity_mismatch"
    STORE_UNAVAILABLE = "store_unavailable"


class Outcome(str, Enum):
    OK = "ok"
    UNAUTHORIZED = "unauthorized"
    NOT_CONNECTED = "not_connected"
    NOT_REGISTERED = "not_registered"
    ALREADY_REGISTERED = "already_registered"
    INVALID_DISPLAY_NAME = "invalid_display_name"
    INVALID_LINK = "invalid_link"
    NO_CHANNEL_CONFIGURED = "no_channel_configured"
    INVALID_CHANNEL = "invalid_channel"
    WRONG_CHANNEL_TYPE = "wrong_channel_type"
    NOT_SUBMITTED = "not_submitted"
    UNKNOWN_PROMPT = "unknown_prompt"
    IDENTITY_MISMATCH = "identity_mismatch"
    STORE_UNAVAILABLE = "store_unavailable"

    @property
    def category(self) -> Optional[Category]:
        if self is Outcome.OK:
            return None
        if self is Outcome.UNAUTHORIZED:
            return Category.UNAUTHORIZED
        if self is Outcome.IDENTITY_MISMATCH:
            return Category.IDENTITY_MISMATCH
        if self is Outcome.STORE_UNAVAILABLE:
            return Category.STORE_UNAVAILABLE
        return Category.PRECONDITION_FAILED


@dataclass(frozen=True)
class Result:
    """What an operation did. Only the fields relevant to the operation are set.

    ``record`` is a snapshot of the affected player after the operation.
    ``changed`` tells "removed" from "nothing to remove" for remove/deny.
    """

    outcome: Outcome
    operation: str = ""
    target: Optional[str] = None
    record: Optional[PlayerRecord] = None
    changed: Optional[bool] = None
    channel_id: Optional[str] = None
    looks_like_archive: Optional[bool] = None
    reviewed: Optional[bool] = None
    roster: Optional["Roster"] = None
    prompt: Optional["ClearPrompt"] = None
    action: Optional[str] = None
    cleared: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK
