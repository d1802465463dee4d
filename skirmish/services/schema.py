"""Registry document encoding, plus decoders for every shape the bot has ever written.

Three generations exist in the wild:

* v1 - ``{"allowedUsers": [...]}`` (or ``{id: bool}``): a single list of admitted players.
* v2 - ``{"pendingUsers": [...], "allowedUsers": [...]}``: players waiting for a mod, and admitted ones.
* v3 - ``{"players": {id: {...}}}``: one record per player. This is what gets written today.

Decoding tries the current shape first, then each legacy shape in turn, and
normalizes whichever matches into a ``Registry``. Missing fields take their
defaults and an unreadable field or player costs only itself. Only a payload
that is not a JSON object at all becomes an empty registry.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from skirmish.models.registry import EventConfig, PlayerRecord, Registry

logger = logging.getLogger("skirmish.schema")

SCHEMA_VERSION = 3

_LEGACY_LIST_KEYS = ("allowedUsers", "allowed", "pendingUsers", "pending")


def _identity(value: Any) -> Optional[str]:
    """Discord snowflakes were sometimes stored as numbers. Anything else is not an identity."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value).strip() or None


def _identities(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    identities = [_identity(v) for v in values]
    dropped = identities.count(None)
    if dropped:
        logger.warning("Dropped %d unreadable player ids", dropped)
    return [i for i in identities if i is not None]


def _player_entry(identity: str, value: Any) -> PlayerV3:
    """Decode one player on its own. A bad field falls back to its default, not the whole record."""
    if isinstance(value, PlayerV3):
        return value
    if not isinstance(value, dict):
        if value is not None:
            logger.warning("Player %s is not an object - using an empty record", identity)
        return PlayerV3()
    try:
        return PlayerV3.model_validate(value)
    except ValidationError as e:
        bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
    for name, field in PlayerV3.model_fields.items():
        keys = {name, field.alias or name}
        if keys & bad:
            bad |= keys
    logger.warning("Player %s: ignoring unreadable fields %s", identity, ", ".join(sorted(bad)))
    try:
        return PlayerV3.model_validate({k: v for k, v in value.items() if k not in bad})
    except ValidationError:
        return PlayerV3()


class _Document(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    submissions_channel_id: Optional[str] = Field(default=None, alias="submissionsChannelId")

    @field_validator("submissions_channel_id", mode="before")
    @classmethod
    def _channel_id(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        channel_id = _identity(value)
        if channel_id is None:
            logger.warning("Ignoring unreadable submissions channel %r", value)
        return channel_id

    @field_validator("players", mode="before", check_fields=False)
    @classmethod
    def _players(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            if value is not None:
                logger.warning("Ignoring players of type %s", type(value).__name__)
            return {}
        return {str(k): _player_entry(str(k), v) for k, v in value.items()}


class PlayerV3(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    display_name: Optional[str] = Field(default=None, alias="displayName")
    registered: Optional[bool] = False
    registration_requested: Optional[bool] = Field(default=False, alias="registrationRequested")
    deck_link: Optional[str] = Field(default=None, alias="deckLink")
    deck_submitted: Optional[bool] = Field(default=False, alias="deckSubmitted")
    deck_reviewed: Optional[bool] = Field(default=False, alias="deckReviewed")

    def to_record(self) -> PlayerRecord:
        return PlayerRecord(
            display_name=self.display_name or None,
            registered=bool(self.registered),
            registration_requested=bool(self.registration_requested),
            deck_link=self.deck_link or None,
            deck_submitted=bool(self.deck_submitted),
            deck_reviewed=bool(self.deck_reviewed),
        )

    @classmethod
    def from_record(cls, record: PlayerRecord) -> PlayerV3:
        return cls(
            display_name=record.display_name,
            registered=record.registered,
            registration_requested=record.registration_requested,
            deck_link=record.deck_link,
            deck_submitted=record.deck_submitted,
            deck_reviewed=record.deck_reviewed,
        )


class DocumentV3(_Document):
    """Current shape: one record per player."""

    schema_version: Optional[int] = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    players: dict[str, PlayerV3] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _not_legacy(cls, data: Any) -> Any:
        # A players map next to the old id lists is a v2 document, not this one
        if isinstance(data, dict) and any(key in data for key in _LEGACY_LIST_KEYS):
            raise ValueError("document carries legacy admission lists")
        return data

    def to_registry(self) -> Registry:
        return Registry(
            config=EventConfig(submissions_channel_id=self.submissions_channel_id),
            players={identity.strip(): p.to_record() for identity, p in self.players.items()},
        )


class DocumentV2(_Document):
    """Pending + allowed lists. Some of these files also kept a players map for deck links."""

    pending: list[str] = Field(validation_alias=AliasChoices("pendingUsers", "pending"))
    allowed: list[str] = Field(default_factory=list, validation_alias=AliasChoices("allowedUsers", "allowed"))
    players: dict[str, PlayerV3] = Field(default_factory=dict)

    @field_validator("pending", "allowed", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> list[str]:
        return _identities(value)

    def to_registry(self) -> Registry:
        registry = Registry(config=EventConfig(submissions_channel_id=self.submissions_channel_id))
        for identity, p in self.players.items():
            registry.players[identity.strip()] = p.to_record()
        for identity in self.pending:
            registry.get_or_create(identity).request_admission()
        for identity in self.allowed:
            registry.get_or_create(identity).admit()
        return registry


class DocumentV1(_Document):
    """A single list of admitted players, either as ids or as an ``{id: bool}`` map."""

    allowed: Union[list[str], dict[str, bool]] = Field(validation_alias=AliasChoices("allowedUsers", "allowed"))
    players: dict[str, PlayerV3] = Field(default_factory=dict)

    @field_validator("allowed", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): bool(v) for k, v in value.items()}
        return _identities(value)

    def to_registry(self) -> Registry:
        registry = Registry(config=EventConfig(submissions_channel_id=self.submissions_channel_id))
        for identity, p in self.players.items():
            registry.players[identity.strip()] = p.to_record()
        if isinstance(self.allowed, dict):
            entries = self.allowed.items()
        else:
            entries = ((identity, True) for identity in self.allowed)
        for identity, admitted in entries:
            record = registry.get_or_create(identity.strip())
            if admitted:
                record.admit()
        return registry


DECODERS: list[tuple[int, type[_Document]]] = [
    (3, DocumentV3),
    (2, DocumentV2),
    (1, DocumentV1),
]


def decode_document(raw: Union[str, bytes], source: str = "document") -> Registry:
    """Decode any known generation into a Registry. Never raises."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, UnicodeDecodeError, RecursionError):
        logger.warning("Could not parse %s as JSON - starting with an empty registry", source)
        return Registry()
    if not isinstance(data, dict):
        logger.warning("%s is not a JSON object - starting with an empty registry", source)
        return Registry()

    for version, model in DECODERS:
        try:
            document = model.model_validate(data)
        except ValidationError:
            continue
        registry = document.to_registry()
        if version != SCHEMA_VERSION:
            logger.info("Migrated %s from schema v%d (%d players)", source, version, len(registry.players))
        return registry

    logger.warning("%s matches no known schema - starting with an empty registry", source)
    return Registry()


def encode_document(registry: Registry) -> str:
    """Serialize the full registry in the current shape."""
    document = DocumentV3(
        schema_version=SCHEMA_VERSION,
        submissions_channel_id=registry.config.submissions_channel_id,
        players={identity: PlayerV3.from_record(record) for identity, record in registry.players.items()},
    )
    return document.model_dump_json(by_alias=True, indent=2)

