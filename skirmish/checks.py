"""Authorization gate for mod-only skirmish actions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import discord

import config


@dataclass(frozen=True)
class Actor:
    """Whoever invoked a command: identity, role ids/names, and whether they hold Manage Server."""

    identity: str
    roles: frozenset[str] = field(default_factory=frozenset)
    elevated: bool = False


def is_privileged(
    actor_identity: str,
    actor_roles: Iterable[str],
    has_elevated_permission: bool,
    privileged_roles: Iterable[str],
) -> bool:
    """True if the actor has an elevated permission or any privileged role."""
    if has_elevated_permission:
        return True
    return not set(actor_roles).isdisjoint(privileged_roles)


class Gate:
    """Privileged-role set from config. Role names are compared lowercase."""

    def __init__(self, privileged_roles: Optional[Iterable[str]] = None):
        if privileged_roles is None:
            privileged_roles = config.MODERATOR_ROLE_IDS | config.MODERATOR_ROLE_NAMES
        self.privileged_roles = frozenset(r.strip().lower() for r in privileged_roles if r.strip())

    def allows(self, actor: Actor) -> bool:
        return is_privileged(actor.identity, actor.roles, actor.elevated, self.privileged_roles)


def _get_member(interaction: discord.Interaction) -> discord.Member | None:
    """Get Member from interaction."""
    if not interaction.guild:
        return None
    member = getattr(interaction, "member", None) or (
        interaction.user if isinstance(interaction.user, discord.Member) else None
    )
    return member


def _get_role_ids(member: discord.Member) -> set[str]:
    """Get member's role IDs. Uses raw _roles to bypass guild.get_role() returning None.
    discord.py's member.roles filters through guild.get_role(); if the guild role cache
    is incomplete, roles can appear empty even when _roles has IDs from the API payload."""
    ids = set()
    raw = getattr(member, "_roles", None)
    if raw is not None:
        ids.update(str(r) for r in raw)
    for r in member.roles:
        ids.add(str(r.id))
    return ids


def _get_role_names(member: discord.Member) -> set[str]:
    """Get member's role names (lowercase)."""
    names = {r.name.lower() for r in member.roles}
    raw = getattr(member, "_roles", None)
    guild = member.guild
    if raw is not None and guild is not None:
        for role_id in raw:
            role = guild.get_role(int(role_id))
            if role is not None:
                names.add(role.name.lower())
    return names


async def _get_member_with_roles(interaction: discord.Interaction) -> discord.Member | None:
    """Get Member with roles. Fetches via REST API if we have no role IDs."""
    member = _get_member(interaction)
    if not member or not interaction.guild:
        return None
    if len(_get_role_ids(member)) <= 1:  # Only @everyone or empty
        try:
            member = await interaction.guild.fetch_member(interaction.user.id)
        except discord.NotFound:
            return None
    return member


async def actor_from_interaction(interaction: discord.Interaction) -> Actor:
    """Build the Actor for whoever triggered this interaction. Outside a server nobody is privileged."""
    identity = str(interaction.user.id)
    member = await _get_member_with_roles(interaction)
    if member is None:
        return Actor(identity=identity)
    perms = member.guild_permissions
    return Actor(
        identity=identity,
        roles=frozenset(_get_role_ids(member) | _get_role_names(member)),
        elevated=perms.manage_guild or perms.administrator,
    )
