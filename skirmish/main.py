"""Main bot entry point."""
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

import config
from skirmish.checks import Gate
from skirmish.cogs.skirmish import skirmish_group
from skirmish.http_server import start_http_server
from skirmish.listeners import buttons
from skirmish.models import init_db
from skirmish.services.lifecycle import LifecycleEngine
from skirmish.services.notifier import DiscordNotifier
from skirmish.services.store import RegistryStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("skirmish")

intents = discord.Intents.default()


async def sync_commands(tree: app_commands.CommandTree, guild_id: Optional[int]) -> None:
    """Sync slash commands. With a guild id they land on that server right away instead of globally."""
    if guild_id:
        guild = discord.Object(id=guild_id)
        tree.copy_global_to(guild=guild)
        await tree.sync(guild=guild)
        logger.info("Commands synced to guild %s", guild_id)
    else:
        await tree.sync()
        logger.info("Commands synced globally")


class SkirmishBot(commands.Bot):
    """Summoner Skirmish Discord bot."""

    def __init__(self):
        super().__init__(
            command_prefix="!",
            intents=intents,
        )
        self.engine = None
        self.http_runner = None

    async def on_ready(self) -> None:
        logger.info("Bot ready: %s (ID: %s)", self.user, self.user.id if self.user else "?")

    async def setup_hook(self) -> None:
        """Load the registry, wire the engine and register commands."""
        await init_db()
        store = RegistryStore()
        registry = await store.load()
        logger.info(
            "Loaded registry: %d players, submissions channel %s",
            len(registry.players),
            registry.config.submissions_channel_id or "not set",
        )
        self.engine = LifecycleEngine(
            registry=registry,
            store=store,
            gate=Gate(),
            notifier=DiscordNotifier(self),
            require_registration=config.REQUIRE_REGISTRATION,
        )

        self.tree.add_command(skirmish_group)
        await sync_commands(self.tree, config.GUILD_ID)

        # Global error handler: always respond so Discord doesn't show "application did not respond"
        async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
            msg = "Something went wrong handling that interaction."
            if isinstance(error, app_commands.errors.NoPrivateMessage):
                msg = "Use this in a server."
            else:
                logger.exception("Command error: %s", error)
            try:
                if interaction.response.is_done():
                    await interaction.followup.send(msg, ephemeral=True)
                else:
                    await interaction.response.send_message(msg, ephemeral=True)
            except discord.HTTPException:
                pass

        self.tree.on_error = on_app_command_error

        buttons.setup(self)
        self.http_runner = await start_http_server(self)

    async def close(self) -> None:
        """Cleanup on shutdown."""
        if self.http_runner:
            await self.http_runner.cleanup()
        await super().close()


def main() -> None:
    """Run the bot."""
    if not config.DISCORD_TOKEN:
        raise ValueError("DISCORD_TOKEN is required")
    if not (config.MODERATOR_ROLE_IDS or config.MODERATOR_ROLE_NAMES):
        logger.warning("No moderator roles configured - only members with Manage Server can run mod commands")

    bot = SkirmishBot()
    bot.run(config.DISCORD_TOKEN)


if __name__ == "__main__":
    main()
