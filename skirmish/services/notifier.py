"""Outbound notices: announcements in the submissions channel and DMs to players."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import discord

logger = logging.getLogger("skirmish.notifier")

SUBMISSION = "submission"
REGISTRATION_REQUEST = "registration-request"
REGISTRATION_APPROVED = "registration-approved"
REGISTRATION_REMOVED = "registration-removed"


@dataclass(frozen=True)
class Notice:
    kind: str
    actor_identity: str
    display_name: Optional[str] = None
    link: Optional[str] = None
    looks_like_archive: bool = False


class Notifier(Protocol):
    """Delivery is best effort. The engine never lets a failure here undo a saved change."""

    async def channel_available(self, channel_id: str) -> bool: ...

    async def announce(self, channel_id: str, notice: Notice) -> None: ...

    async def notify_player(self, identity: str, notice: Notice) -> None: ...


class DiscordNotifier:
    """Notifier backed by a connected discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def _text_channel(self, channel_id: str) -> discord.TextChannel | None:
        try:
            channel = self.client.get_channel(int(channel_id)) or await self.client.fetch_channel(int(channel_id))
        except (ValueError, discord.NotFound, discord.Forbidden, discord.HTTPException):
            return None
        return channel if isinstance(channel, discord.TextChannel) else None

    async def channel_available(self, channel_id: str) -> bool:
        return await self._text_channel(channel_id) is not None

    async def announce(self, channel_id: str, notice: Notice) -> None:
        from skirmish.listeners.buttons import RegistrationRequestView
        from skirmish.services.discord_embeds import build_notice_embed

        channel = await self._text_channel(channel_id)
        if channel is None:
            raise LookupError(f"Submissions channel {channel_id} is not a reachable text channel")
        embed = build_notice_embed(notice)
        if notice.kind == REGISTRATION_REQUEST:
            await channel.send(embed=embed, view=RegistrationRequestView(notice.actor_identity))
        else:
            await channel.send(embed=embed)

    async def notify_player(self, identity: str, notice: Notice) -> None:
        from skirmish.services.discord_embeds import direct_notice_text

        user = self.client.get_user(int(identity)) or await self.client.fetch_user(int(identity))
        await user.send(direct_notice_text(notice))
