import logging

import discord

from config import config
from core import Cog, Tally
from utils import format_ws
from utils.embeds import PlayersEmbed, SuccessEmbed

GUILD_IDS = config["ledger"]["guilds"] or None

logger = logging.getLogger("tally")


class PlayersCog(Cog, name="Players", guild_ids=GUILD_IDS):
    """
    A cog to manage the players that take part in runs and receive splits.
    """

    player = discord.SlashCommandGroup("player", "Manage players and their payouts")

    @player.command(description="Register a new player")
    @discord.option("name", str, description="The player's display name")
    @discord.option("member", discord.Member, description="The Discord member the player belongs to", required=False)
    @discord.option("default_cut", float, description="Default cut percentage (0-100)", required=False)
    @discord.option("notes", str, description="Anything worth remembering", required=False)
    async def add(
        self,
        ctx: discord.ApplicationContext,
        name: str,
        member: discord.Member | None = None,
        default_cut: float | None = None,
        notes: str | None = None,
    ) -> None:
        """
        Register a new player.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            name (str): The player's display name.
            member (discord.Member | None): The Discord member to link.
            default_cut (float | None): Default cut percentage.
            notes (str | None): Free text.
        """

        await ctx.defer(ephemeral=True)

        player = await self.ledger.create_player(
            name, discord_id=str(member.id) if member else None, default_cut_percent=default_cut, notes=notes
        )

        logger.info(f"[PLAYERS] Player {player.name} Added By {ctx.author} ({ctx.author.id})")

        embed = SuccessEmbed(title="Player Added", description=f"**{player.name}** can now join runs")
        await ctx.followup.send(embed=embed, ephemeral=True)

    @player.command(name="list", description="List all players and what they are owed")
    async def list_players(self, ctx: discord.ApplicationContext) -> None:
        """
        List all players with their outstanding payouts.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
        """

        await ctx.defer(ephemeral=True)

        players = await self.ledger.list_players_with_owed()
        await ctx.followup.send(embed=PlayersEmbed(players), ephemeral=True)

    @player.command(description="Show a player's details")
    @discord.option("name", str, description="The player's name")
    async def info(self, ctx: discord.ApplicationContext, name: str) -> None:
        """
        Show a player's details and what they are owed.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            name (str): The player's name.
        """

        await ctx.defer(ephemeral=True)

        player = await self.ledger.find_player_by_name(name)
        owed = dict((p.id, owed) for p, owed in await self.ledger.list_players_with_owed())

        embed = discord.Embed(title=player.name, colour=discord.Colour.blurple())
        if player.discord_id:
            embed.add_field(name="Member", value=f"<@{player.discord_id}>", inline=True)
        if player.default_cut_percent is not None:
            embed.add_field(name="Default Cut", value=f"`{player.default_cut_percent:g}%`", inline=True)
        embed.add_field(name="Owed", value=f"`{format_ws(owed.get(player.id, 0.0))}`", inline=True)
        if player.notes:
            embed.add_field(name="Notes", value=player.notes[:1024], inline=False)
        embed.set_footer(text=f"Player ID: {player.id}")

        await ctx.followup.send(embed=embed, ephemeral=True)

    @player.command(description="Mark all of a player's outstanding splits as paid")
    @discord.option("name", str, description="The player who was paid out")
    async def paid(self, ctx: discord.ApplicationContext, name: str) -> None:
        """
        Mark every unpaid split of a player as paid.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            name (str): The player's name.
        """

        await ctx.defer(ephemeral=True)

        player = await self.ledger.find_player_by_name(name)
        changed, paid_ws = await self.ledger.set_player_splits_paid(player.id)

        if not changed:
            embed = SuccessEmbed(title="Nothing Owed", description=f"**{player.name}** has no outstanding splits")
        else:
            embed = SuccessEmbed(
                title="Splits Paid",
                description=f"Marked `{len(changed)}` split(s) worth `{format_ws(paid_ws)}` as paid for **{player.name}**",
            )

        await ctx.followup.send(embed=embed, ephemeral=True)


def setup(bot: Tally) -> None:
    """
    Load the PlayersCog into the bot.

    Args:
        bot (Tally): The bot instance to load the cog into.
    """

    bot.add_cog(PlayersCog(bot))
