import logging

import discord

from config import config
from core import Cog, Tally

logger = logging.getLogger("tally")

CATEGORY_TITLES: dict[str, str] = {
    "utility": "",
    "players": "👤 **Player Commands**",
    "runs": "🗺️ **Run Commands**",
    "drops": "⚔️ **Drop Commands**",
    "sales": "💰 **Sale Commands**",
}


class UtilityCog(Cog, name="Utility"):
    """A cog for utility commands."""

    @discord.slash_command(description="Ping the application")
    async def ping(self, ctx: discord.ApplicationContext) -> None:
        """
        Ping the application.

        Args:
            ctx (discord.ApplicationContext): The application context
        """

        await ctx.respond("🟢 Pong!", ephemeral=True)

    @discord.slash_command(description="Information about the application")
    async def info(self, ctx: discord.ApplicationContext) -> None:
        """
        Get information about the application.

        Args:
            ctx (discord.ApplicationContext): The application context
        """

        embed = discord.Embed(title="App Information", description=f"{config['app']['name']} keeps the books for runs and their sales", colour=0x00FF00)
        embed.add_field(name="Version", value=f"`{config['app']['version']}`")
        embed.add_field(name="Latency", value=f"`{round(self.bot.latency * 1000)} ms`")
        embed.add_field(name="Guilds", value=f"`{len(self.bot.guilds)}`", inline=False)

        await ctx.respond(embed=embed, ephemeral=True)

    @discord.slash_command(description="Get a list of available commands")
    async def help(self, ctx: discord.ApplicationContext) -> None:
        """
        Get a list of available commands.

        Args:
            ctx (discord.ApplicationContext): The application context
        """

        await ctx.defer(ephemeral=True)

        embed = discord.Embed(title="Help", description="Need some help? Gotchu", colour=0xFFFFFF)

        # Commands grouped by the cog they belong to, in display order
        categories: dict[str, list[tuple[str, str]]] = {name: [] for name in CATEGORY_TITLES}
        other_commands: list[tuple[str, str]] = []

        for cog_name, cog in self.bot.cogs.items():
            bucket = categories.get(cog_name.lower(), other_commands)

            for command in cog.get_commands():
                # Check guild restrictions
                if getattr(command, "guild_ids", None) and not (ctx.guild and ctx.guild.id in command.guild_ids):
                    continue

                if isinstance(command, discord.SlashCommandGroup):
                    for subcommand in command.subcommands:
                        if isinstance(subcommand, discord.SlashCommand):
                            bucket.append((f"/{subcommand.qualified_name}", subcommand.description or "No description provided"))
                elif isinstance(command, discord.SlashCommand):
                    bucket.append((f"/{command.qualified_name}", command.description or "No description provided"))

        for category, commands_ in categories.items():
            if not commands_:
                continue

            title = CATEGORY_TITLES[category]
            if title:
                embed.add_field(name=title, value="", inline=False)
            for name, desc in commands_:
                embed.add_field(name=f"`{name}`", value=f"᲼⤷ {desc}", inline=False)

        if other_commands:
            embed.add_field(name="🔧 **Other Commands**", value="", inline=False)
            for name, desc in other_commands:
                embed.add_field(name=f"`{name}`", value=f"᲼⤷ {desc}", inline=False)

        # Add footer with guild info
        if ctx.guild:
            embed.set_footer(text=f"Commands available in {ctx.guild.name}")
        else:
            embed.set_footer(text="Commands available globally")

        await ctx.followup.send(embed=embed, ephemeral=True)


def setup(bot: Tally) -> None:
    """
    Load the UtilityCog into the bot.

    Args:
        bot (Tally): The bot instance to load the cog into.
    """

    bot.add_cog(UtilityCog(bot))
