"""In-memory player registry - the aggregate that gets persisted as one document."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass
class PlayerRecord:
    """Registration and decklist state for one player.

    Only the methods below change a record. Together they keep
    ``deck_link is None`` exactly when ``deck_submitted`` is false, and
    ``deck_reviewed`` false whenever nothing is submitted.
    """

    display_name: Optional[str] = None
    registered: bool = False
    registration_requested: bool = False
    deck_link: Optional[str] = None
    deck_submitted: bool = False
    deck_reviewed: bool = False

    def __post_init__(self) -> None:
        # Normalize anything built from stored data
        if self.deck_link is None or not self.deck_submitted:
            self.deck_link = None
            self.deck_submitted = False
            self.deck_reviewed = False
        if self.registered:
            self.registration_requested = False

    def connect(self, display_name: str) -> None:
        self.display_name = display_name

    def request_admission(self) -> None:
        self.registration_requested = True

    def admit(self) -> None:
        self.registered = True
        self.registration_requested = False

    def submit(self, link: str) -> None:
        """Accept a new deck link. Any previous review no longer applies."""
        self.deck_link = link
        self.deck_submitted = True
        self.deck_reviewed = False

    def mark_reviewed(self, reviewed: bool) -> None:
        if not self.deck_submitted:
            raise ValueError("cannot review a deck that was not submitted")
        self.deck_reviewed = reviewed

    def clear(self) -> bool:
        """Reset registration and deck state. Returns True if there was anything to clear."""
        had_anything = (
            self.registered
            or self.registration_requested
            or self.deck_submitted
            or self.deck_link is not None
        )
        self.registered = False
        self.registration_requested = False
        self.deck_link = None
        self.deck_submitted = False
        self.deck_reviewed = False
        return had_anything

    def copy(self) -> PlayerRecord:
        return replace(self)


@dataclass
class EventConfig:
    """Event-wide settings. ``submissions_channel_id`` of None means submissions are disabled."""

    submissions_channel_id: Optional[str] = None


@dataclass
class Registry:
    """Event config plus every known player, keyed by identity in first-seen order."""

    config: EventConfig = field(default_factory=EventConfig)
    players: dict[str, PlayerRecord] = field(default_factory=dict)

    def get(self, identity: str) -> Optional[PlayerRecord]:
        """Look up a player without creating one."""
        return self.players.get(identity)

    def get_or_create(self, identity: str) -> PlayerRecord:
        """Return the live record for ``identity``, allocating a default record on first sight."""
        record = self.players.get(identity)
        if record is None:
            record = PlayerRecord()
            self.players[identity] = record
        return record

    def clear_players(self) -> int:
        """Drop every player record. Returns how many were dropped."""
        count = len(self.players)
        self.players = {}
        return count

