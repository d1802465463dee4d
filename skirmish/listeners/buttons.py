"""Button handling: clear confirmation prompts and approve/deny on registration requests."""
from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import ui
from discord.ext import commands

from skirmish.checks import actor_from_interaction
from skirmish.services.confirmation import ClearPrompt
from skirmish.services.discord_embeds import mention, outcome_message
from skirmish.services.lifecycle import LifecycleEngine

logger = logging.getLogger("skirmish.buttons")

CLEAR_PROMPT_TIMEOUT = 15 * 60  # Discord interaction tokens last 15 minutes
REGISTRATION_PREFIX = "skirmish:reg:"
APPROVE = "approve"
DENY = "deny"


def registration_button_id(action: str, identity: str) -> str:
    return f"{REGISTRATION_PREFIX}{action}:{identity}"


def parse_registration_button_id(custom_id: str) -> Optional[tuple[str, str]]:
    """(action, target identity) for an approve/deny button, or None."""
    if not custom_id.startswith(REGISTRATION_PREFIX):
        return None
    parts = custom_id[len(REGISTRATION_PREFIX):].split(":")
    if len(parts) != 2 or parts[0] not in (APPROVE, DENY) or not parts[1]:
        return None
    return parts[0], parts[1]


class ClearConfirmView(ui.View):
    """Confirm / Cancel buttons for /skirmish clear. Each button's custom_id is a confirmation token."""

    def __init__(self, engine: LifecycleEngine, prompt: ClearPrompt):
        super().__init__(timeout=CLEAR_PROMPT_TIMEOUT)
        self.engine = engine
        self.prompt = prompt
        confirm = ui.Button(
            label="Confirm", emoji="✅", style=discord.ButtonStyle.success, custom_id=prompt.confirm_token
        )
        cancel = ui.Button(
            label="Cancel", emoji="❌", style=discord.ButtonStyle.danger, custom_id=prompt.cancel_token
        )
        confirm.callback = self._resolve
        cancel.callback = self._resolve
        self.add_item(confirm)
        self.add_item(cancel)

    async def _resolve(self, interaction: discord.Interaction) -> None:
        token = (interaction.data or {}).get("custom_id", "")
        actor = await actor_from_interaction(interaction)
        result = await self.engine.resolve_clear(actor, token)
        if not result.ok:
            # Prompt stays open for the mod who started it
            await interaction.response.send_message(outcome_message(result), ephemeral=True)
            return
        self.stop()
        await interaction.response.edit_message(content=outcome_message(result), view=None)

    async def on_timeout(self) -> None:
        self.engine.confirmations.discard(self.prompt.nonce)


class RegistrationRequestView(ui.View):
    """Approve / Deny buttons under a registration request. Clicks are handled by the listener below."""

    def __init__(self, identity: str):
        super().__init__(timeout=None)
        self.add_item(
            ui.Button(label="Approve", emoji="✅", style=discord.ButtonStyle.success,
                      custom_id=registration_button_id(APPROVE, identity))
        )
        self.add_item(
            ui.Button(label="Deny", emoji="❌", style=discord.ButtonStyle.danger,
                      custom_id=registration_button_id(DENY, identity))
        )


async def _handle_registration_button(interaction: discord.Interaction, bot: commands.Bot) -> None:
    """Approve or deny a registration request. Survives restarts since state lives in the custom_id."""
    if interaction.type is not discord.InteractionType.component:
        return
    parsed = parse_registration_button_id((interaction.data or {}).get("custom_id", ""))
    if parsed is None:
        return
    action, target = parsed

    # Member fetch and the DM to the player can outlast Discord's 3 second window
    await interaction.response.defer()
    engine: LifecycleEngine = bot.engine
    actor = await actor_from_interaction(interaction)
    if action == APPROVE:
        result = await engine.approve(actor, target)
    else:
        result = await engine.deny(actor, target)

    if not result.ok:
        await interaction.followup.send(outcome_message(result), ephemeral=True)
        return
    verdict = "Approved" if action == APPROVE else "Denied"
    logger.info("Registration for %s %s by %s", target, verdict.lower(), actor.identity)
    await interaction.edit_original_response(
        content=f"{verdict} by {mention(actor.identity)}: {outcome_message(result)}",
        view=None,
    )


def setup(bot: commands.Bot) -> None:
    """Register the approve/deny button listener."""

    async def on_interaction(interaction: discord.Interaction) -> None:
        await _handle_registration_button(interaction, bot)

    bot.add_listener(on_interaction, "on_interaction")
