import asyncio
import logging

import discord
from beanie import init_beanie
from discord.errors import CheckFailure
from discord.ext.commands import CommandOnCooldown
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from upstash_redis.asyncio import Redis

from config import MONGODB_URI, PYTHON_ENV, config
from services import BeanieLedgerStore, LedgerError, LedgerService
from utils.embeds import ErrorEmbed

logger = logging.getLogger("tally")


class Tally(discord.Bot):
    """A custom Discord bot class for Tally."""

    def __init__(self, *args, **options):
        name = config["app"]["name"]
        version = config["app"]["version"]

        logger.info(f"⏳ {name} (v{version}) Initializing...")

        # Event to track if the bot is fully initialised
        self._initialised: asyncio.Event = asyncio.Event()

        # Redis - Caching
        self.redis: Redis = Redis.from_env()

        # MongoDB - Database
        self.mongo: AsyncMongoClient = AsyncMongoClient(MONGODB_URI)
        self.db: AsyncDatabase = self.mongo["tally-main" if PYTHON_ENV == "production" else "tally-dev"]

        # Ledger - Runs, drops, sales and splits
        self.ledger: LedgerService = LedgerService(BeanieLedgerStore())

        super().__init__(*args, **options)

    async def on_ready(self) -> None:
        """Called when the bot is ready."""

        await init_beanie(
            database=self.db,
            document_models=[
                "models.players.Player",
                "models.runs.Run",
                "models.drops.Drop",
                "models.sales.Sale",
            ],
        )

        for cog in self.cogs:
            logger.info(f"🔗 Loaded Cog: {cog}")

        await self.change_presence(activity=discord.CustomActivity(name=f"💰 v{config['app']['version']} • /help"))

        if not self._initialised.is_set():
            self._initialised.set()

        logger.info(f"✅ Initialised: {self.user} ({round(self.latency * 1000)}ms) ({len(self.guilds)} guilds)")

    async def on_application_command_error(self, ctx: discord.ApplicationContext, exception: Exception) -> None:
        """
        Handle errors for application commands for the entire application.

        Ledger errors are the caller's fault and are shown to them as is.

        Args:
            ctx (discord.ApplicationContext): The application context
            exception (Exception): The exception that was raised
        """

        if isinstance(exception, discord.ApplicationCommandInvokeError):
            exception = exception.original

        try:
            if isinstance(exception, LedgerError):
                embed = ErrorEmbed(exception.title, exception.message)
                await self._respond_with_error(ctx, embed)
            elif isinstance(exception, CheckFailure):
                embed = ErrorEmbed("Permission Denied", "You do not have permission to use this command")
                await self._respond_with_error(ctx, embed)
            elif isinstance(exception, CommandOnCooldown):
                embed = ErrorEmbed(
                    "Command On Cooldown",
                    f"This command is on cooldown, try again in `{exception.retry_after:.2f}` seconds",
                )
                await self._respond_with_error(ctx, embed)
            else:
                logger.error("[COG] Application Command Error", exc_info=exception)
                await self._respond_with_error(ctx, ErrorEmbed())
        except Exception:
            logger.exception("[TALLY] Application Command Handler Error")

    async def _respond_with_error(self, ctx: discord.ApplicationContext, embed: discord.Embed) -> None:
        # Commands that deferred can only answer through the followup webhook
        if ctx.response.is_done():
            await ctx.followup.send(embed=embed, ephemeral=True)
        else:
            await ctx.respond(embed=embed, ephemeral=True)

    async def wait_until_initialised(self) -> None:
        """Wait until the bot is fully initialised."""

        await self._initialised.wait()
