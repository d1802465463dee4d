"""Registration and decklist lifecycle - every rule behind the /skirmish commands.

Each operation returns a ``Result`` instead of raising. Reading the registry,
changing it and saving it happen under one lock, so two players submitting at
the same time cannot overwrite each other. Nothing that talks to Discord runs
under the lock: the submissions channel is looked up before it is taken, and
announcements and DMs go out after it is released. Delivery failures are only logged.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Iterator, Optional

import config
from skirmish.checks import Actor, Gate
from skirmish.models.registry import PlayerRecord, Registry
from skirmish.services.confirmation import CANCEL, ConfirmationProtocol
from skirmish.services.notifier import (
    REGISTRATION_APPROVED,
    REGISTRATION_REMOVED,
    REGISTRATION_REQUEST,
    SUBMISSION,
    Notice,
    Notifier,
)
from skirmish.services.results import Outcome, Result
from skirmish.services.store import RegistryStore, StoreUnavailable

logger = logging.getLogger("skirmish.lifecycle")


def looks_like_archive(link: str) -> bool:
    """Whether a link looks like a Piltover Archive deck. Only used to word the announcement."""
    return link.startswith("https://") and "piltover" in link.lower()


@dataclass(frozen=True)
class ChannelRef:
    """A channel picked in a command, and whether it can hold text messages."""

    id: str
    text_capable: bool


class Roster:
    """Lazy view of every known player in first-seen order.

    Each iteration walks the registry as it is at that moment and yields copies,
    so a roster can be iterated again and never leaks live records.
    """

    def __init__(self, registry: Registry):
        self._registry = registry

    def __iter__(self) -> Iterator[tuple[str, PlayerRecord]]:
        players = self._registry.players
        for identity in list(players):
            record = players.get(identity)
            if record is not None:
                yield identity, record.copy()


class LifecycleEngine:
    def __init__(
        self,
        registry: Registry,
        store: RegistryStore,
        gate: Gate,
        notifier: Notifier,
        require_registration: bool = config.REQUIRE_REGISTRATION,
        confirmations: Optional[ConfirmationProtocol] = None,
    ):
        self.registry = registry
        self.store = store
        self.gate = gate
        self.notifier = notifier
        self.require_registration = require_registration
        self.confirmations = confirmations or ConfirmationProtocol()
        self._lock = asyncio.Lock()

    async def _persist(self) -> bool:
        """Save the registry. On failure the in-memory change stays applied."""
        try:
            await self.store.save(self.registry)
        except StoreUnavailable:
            logger.exception("Registry change applied in memory but not saved")
            return False
        return True

    async def _deliver(self, what: str, call: Awaitable[None]) -> None:
        try:
            await call
        except Exception as e:
            logger.warning("Could not deliver %s: %s", what, e)

    async def _channel_usable(self, channel_id: str) -> bool:
        try:
            return await self.notifier.channel_available(channel_id)
        except Exception as e:
            logger.warning("Could not resolve submissions channel %s: %s", channel_id, e)
            return False

    async def _submissions_channel(self) -> tuple[Optional[Outcome], Optional[str]]:
        """Look up the configured channel. Runs outside the lock, so callers re-check the id under it."""
        channel_id = self.registry.config.submissions_channel_id
        if channel_id is None:
            return Outcome.NO_CHANNEL_CONFIGURED, None
        if not await self._channel_usable(channel_id):
            return Outcome.INVALID_CHANNEL, channel_id
        return None, channel_id

    # Player commands

    async def connect(self, actor: Actor, display_name: str) -> Result:
        name = display_name.strip()
        if not name:
            return Result(Outcome.INVALID_DISPLAY_NAME, "connect")
        async with self._lock:
            record = self.registry.get_or_create(actor.identity)
            record.connect(name)
            snapshot = record.copy()
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "connect", target=actor.identity)
        logger.info("Player %s connected as %s", actor.identity, name)
        return Result(Outcome.OK, "connect", target=actor.identity, record=snapshot)

    async def request_registration(self, actor: Actor) -> Result:
        while True:
            failure, channel_id = await self._submissions_channel()
            async with self._lock:
                if self.registry.config.submissions_channel_id != channel_id:
                    continue  # Channel changed while it was being looked up
                record = self.registry.get(actor.identity)
                if record is None or not record.display_name:
                    return Result(Outcome.NOT_CONNECTED, "register", target=actor.identity)
                if record.registered:
                    return Result(Outcome.ALREADY_REGISTERED, "register", target=actor.identity)
                if failure:
                    return Result(failure, "register", target=actor.identity, channel_id=channel_id)
                record.request_admission()
                snapshot = record.copy()
                if not await self._persist():
                    return Result(Outcome.STORE_UNAVAILABLE, "register", target=actor.identity)
            break

        notice = Notice(REGISTRATION_REQUEST, actor.identity, display_name=snapshot.display_name)
        await self._deliver("registration request", self.notifier.announce(channel_id, notice))
        return Result(Outcome.OK, "register", target=actor.identity, record=snapshot, channel_id=channel_id)

    async def submit(self, actor: Actor, link: str) -> Result:
        link = link.strip()
        if not link:
            return Result(Outcome.INVALID_LINK, "submit")
        while True:
            failure, channel_id = await self._submissions_channel()
            async with self._lock:
                if self.registry.config.submissions_channel_id != channel_id:
                    continue  # Channel changed while it was being looked up
                record = self.registry.get(actor.identity)
                if record is None or not record.display_name:
                    return Result(Outcome.NOT_CONNECTED, "submit", target=actor.identity)
                if self.require_registration and not record.registered:
                    return Result(Outcome.NOT_REGISTERED, "submit", target=actor.identity)
                if failure:
                    return Result(failure, "submit", target=actor.identity, channel_id=channel_id)
                record.submit(link)
                snapshot = record.copy()
                if not await self._persist():
                    return Result(Outcome.STORE_UNAVAILABLE, "submit", target=actor.identity)
            break

        archive = looks_like_archive(link)
        logger.info("Player %s submitted a deck", actor.identity)
        notice = Notice(
            SUBMISSION,
            actor.identity,
            display_name=snapshot.display_name,
            link=link,
            looks_like_archive=archive,
        )
        await self._deliver("deck submission", self.notifier.announce(channel_id, notice))
        return Result(
            Outcome.OK,
            "submit",
            target=actor.identity,
            record=snapshot,
            channel_id=channel_id,
            looks_like_archive=archive,
        )

    # Mod commands

    async def set_submissions_channel(self, actor: Actor, channel: ChannelRef) -> Result:
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "setsubmissions")
        if not channel.text_capable:
            return Result(Outcome.WRONG_CHANNEL_TYPE, "setsubmissions", channel_id=channel.id)
        async with self._lock:
            self.registry.config.submissions_channel_id = channel.id
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "setsubmissions", channel_id=channel.id)
        logger.info("Submissions channel set to %s by %s", channel.id, actor.identity)
        return Result(Outcome.OK, "setsubmissions", channel_id=channel.id)

    async def allow(self, actor: Actor, target: str) -> Result:
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "allow", target=target)
        async with self._lock:
            record = self.registry.get_or_create(target)
            changed = not record.registered
            record.admit()
            snapshot = record.copy()
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "allow", target=target)

        if changed:
            notice = Notice(REGISTRATION_APPROVED, target, display_name=snapshot.display_name)
            await self._deliver("approval DM", self.notifier.notify_player(target, notice))
        return Result(Outcome.OK, "allow", target=target, record=snapshot, changed=changed)

    approve = allow

    async def remove(self, actor: Actor, target: str) -> Result:
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "remove", target=target)
        async with self._lock:
            record = self.registry.get_or_create(target)
            changed = record.clear()
            snapshot = record.copy()
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "remove", target=target)

        if changed:
            notice = Notice(REGISTRATION_REMOVED, target, display_name=snapshot.display_name)
            await self._deliver("removal DM", self.notifier.notify_player(target, notice))
        return Result(Outcome.OK, "remove", target=target, record=snapshot, changed=changed)

    deny = remove

    async def mark_reviewed(self, actor: Actor, target: str, reviewed: bool) -> Result:
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "reviewed", target=target)
        async with self._lock:
            record = self.registry.get(target)
            if record is None or not record.deck_submitted:
                return Result(Outcome.NOT_SUBMITTED, "reviewed", target=target)
            record.mark_reviewed(reviewed)
            snapshot = record.copy()
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "reviewed", target=target)
        return Result(Outcome.OK, "reviewed", target=target, record=snapshot, reviewed=reviewed)

    async def list(self, actor: Actor) -> Result:
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "list")
        return Result(Outcome.OK, "list", roster=Roster(self.registry))

    async def request_clear(self, actor: Actor) -> Result:
        """Open a clear prompt. Nothing is cleared until ``resolve_clear`` confirms it."""
        if not self.gate.allows(actor):
            return Result(Outcome.UNAUTHORIZED, "clear")
        prompt = self.confirmations.issue(actor.identity)
        return Result(Outcome.OK, "clear", prompt=prompt)

    async def resolve_clear(self, actor: Actor, token: str) -> Result:
        async with self._lock:
            outcome, action = self.confirmations.resolve(token, actor.identity, self.gate.allows(actor))
            if outcome is not Outcome.OK:
                return Result(outcome, "clear")
            if action == CANCEL:
                return Result(Outcome.OK, "clear", action=action)
            cleared = self.registry.clear_players()
            if not await self._persist():
                return Result(Outcome.STORE_UNAVAILABLE, "clear", action=action)
        logger.info("All %d tracked players cleared by %s", cleared, actor.identity)
        return Result(Outcome.OK, "clear", action=action, cleared=cleared)
