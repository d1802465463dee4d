"""Skirmish cog - /skirmish connect, register, submit, setsubmissions, allow, remove, reviewed, list, clear."""
from __future__ import annotations

import discord
from discord import app_commands

from skirmish.checks import actor_from_interaction
from skirmish.listeners.buttons import ClearConfirmView
from skirmish.services.discord_embeds import outcome_message, roster_messages
from skirmish.services.lifecycle import ChannelRef, LifecycleEngine

TEXT_CHANNEL_TYPES = (discord.ChannelType.text, discord.ChannelType.news)

skirmish_group = app_commands.Group(
    name="skirmish",
    description="Skirmish tools: connect, submit, list, and manage decklists.",
    guild_only=True,
)


def _engine(interaction: discord.Interaction) -> LifecycleEngine:
    return interaction.client.engine


async def _reply(interaction: discord.Interaction, content: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True)
    else:
        await interaction.response.send_message(content, ephemeral=True)


@skirmish_group.command(name="connect", description="Connect your Discord to your Riftbound Play Network Display Name.")
@app_commands.describe(display_name="Your Riftbound Play Network Display Name")
async def connect(interaction: discord.Interaction, display_name: str) -> None:
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).connect(actor, display_name)
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="register", description="Ask the organizers to admit you to this Summoner Skirmish.")
async def register(interaction: discord.Interaction) -> None:
    await interaction.response.defer(ephemeral=True)  # Posting the request can be slow
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).request_registration(actor)
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="submit", description="Submit your Piltover Archive deck link for this Summoner Skirmish.")
@app_commands.describe(link="Piltover Archive deck link")
async def submit(interaction: discord.Interaction, link: str) -> None:
    await interaction.response.defer(ephemeral=True)
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).submit(actor, link)
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="setsubmissions", description="Set the channel where decklists will be posted. (Mods only)")
@app_commands.describe(channel="Channel for decklist submissions")
async def setsubmissions(interaction: discord.Interaction, channel: app_commands.AppCommandChannel) -> None:
    actor = await actor_from_interaction(interaction)
    ref = ChannelRef(id=str(channel.id), text_capable=channel.type in TEXT_CHANNEL_TYPES)
    result = await _engine(interaction).set_submissions_channel(actor, ref)
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="allow", description="Admit a player to this Summoner Skirmish. (Mods only)")
@app_commands.describe(user="Player to admit")
async def allow(interaction: discord.Interaction, user: discord.User) -> None:
    await interaction.response.defer(ephemeral=True)  # DM to the player happens inline
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).allow(actor, str(user.id))
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="remove", description="Clear a player's registration and deck submission. (Mods only)")
@app_commands.describe(user="Player to remove submission for")
async def remove(interaction: discord.Interaction, user: discord.User) -> None:
    await interaction.response.defer(ephemeral=True)
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).remove(actor, str(user.id))
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="reviewed", description="Mark whether a player's decklist has been reviewed. (Mods only)")
@app_commands.describe(user="Player", reviewed="Has this player's deck been reviewed?")
async def reviewed(interaction: discord.Interaction, user: discord.User, reviewed: bool) -> None:
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).mark_reviewed(actor, str(user.id), reviewed)
    await _reply(interaction, outcome_message(result))


@skirmish_group.command(name="list", description="Show all known players and their deck submission / review status. (Mods only)")
async def list_cmd(interaction: discord.Interaction) -> None:
    actor = await actor_from_interaction(interaction)
    result = await _engine(interaction).list(actor)
    if not result.ok:
        await _reply(interaction, outcome_message(result))
        return
    for message in roster_messages(result.roster):
        await _reply(interaction, message)


@skirmish_group.command(name="clear", description="Clear ALL tracked Skirmish submissions. (Mods only)")
async def clear(interaction: discord.Interaction) -> None:
    engine = _engine(interaction)
    actor = await actor_from_interaction(interaction)
    result = await engine.request_clear(actor)
    if not result.ok:
        await _reply(interaction, outcome_message(result))
        return
    await interaction.response.send_message(
        outcome_message(result),
        view=ClearConfirmView(engine, result.prompt),
        ephemeral=True,
    )
