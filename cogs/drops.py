import logging

import discord

from config import config
from core import Cog, Tally
from utils import format_ws
from utils.embeds import SuccessEmbed
from utils.enums import DisenchantTarget, DropStatus, WeaponType

GUILD_IDS = config["ledger"]["guilds"] or None

WEAPON_CHOICES = [weapon.value for weapon in WeaponType]
STATUS_CHOICES = [DropStatus.UNSOLD.value, DropStatus.LISTED.value]

logger = logging.getLogger("tally")


class DropsCog(Cog, name="Drops", guild_ids=GUILD_IDS):
    """
    A cog to log the items that dropped during runs.
    """

    drop = discord.SlashCommandGroup("drop", "Log and correct the drops of a run")

    @drop.command(description="Log a drop for a run")
    @discord.option("run_number", int, description="The run the drop came from")
    @discord.option("owner", str, description="Participant holding the item")
    @discord.option("weapon_type", str, description="The kind of weapon", choices=WEAPON_CHOICES)
    @discord.option("main_roll", int, description="Main roll from -5 to 5", min_value=-5, max_value=5)
    @discord.option("secondary_roll", int, description="Secondary roll from -1 to 1", min_value=-1, max_value=1)
    @discord.option("notes", str, description="Anything worth remembering", required=False)
    async def add(
        self,
        ctx: discord.ApplicationContext,
        run_number: int,
        owner: str,
        weapon_type: str,
        main_roll: int,
        secondary_roll: int,
        notes: str | None = None,
    ) -> None:
        """
        Log a drop for an open run.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            owner (str): The holding participant's name.
            weapon_type (str): The kind of weapon.
            main_roll (int): Main roll.
            secondary_roll (int): Secondary roll.
            notes (str | None): Free text.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        holder = await self.ledger.find_player_by_name(owner)

        drop = await self.ledger.add_drop(run.id, holder.id, weapon_type, main_roll, secondary_roll, notes)
        logger.info(f"[DROPS] Drop {drop.id} Logged By {ctx.author} ({ctx.author.id})")

        embed = SuccessEmbed(
            title="Drop Logged",
            description=(
                f"**{drop.weapon_type.value}** `{drop.main_roll:+d}/{drop.secondary_roll:+d}` held by **{holder.name}**"
                f" in run #{run.run_number}\n\nDrop ID: `{drop.id}`"
            ),
        )
        await ctx.followup.send(embed=embed, ephemeral=True)

    @drop.command(name="list", description="List the drops of a run")
    @discord.option("run_number", int, description="The run number")
    async def list_drops(self, ctx: discord.ApplicationContext, run_number: int) -> None:
        """
        List the drops of a run with their status.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        drops = await self.ledger.list_drops(run.id)
        players = await self.ledger.players_by_id()

        embed = discord.Embed(title=f"Drops • Run #{run.run_number}", colour=discord.Colour.blurple())

        if not drops:
            embed.description = "*No drops logged yet - use `/drop add` to log one!*"
        else:
            lines = []
            for drop in drops:
                holder = players.get(drop.owner_id)
                status = drop.status.value
                if drop.status == DropStatus.DISENCHANTED and drop.disenchanted_into:
                    status += f" ({drop.disenchanted_into.value}, {format_ws(run.price_of(drop.disenchanted_into))})"
                lines.append(
                    f"`{drop.id}` **{drop.weapon_type.value}** `{drop.main_roll:+d}/{drop.secondary_roll:+d}`"
                    f" • {holder.name if holder else 'Unknown'} • {status}"
                )
            embed.description = "\n".join(lines)[:4096]

        embed.set_footer(text=f"{len(drops)} drop(s)")
        await ctx.followup.send(embed=embed, ephemeral=True)

    @drop.command(description="Correct a drop")
    @discord.option("drop_id", str, description="The drop to correct")
    @discord.option("owner", str, description="New holder", required=False)
    @discord.option("weapon_type", str, description="The kind of weapon", choices=WEAPON_CHOICES, required=False)
    @discord.option("main_roll", int, description="Main roll from -5 to 5", min_value=-5, max_value=5, required=False)
    @discord.option("secondary_roll", int, description="Secondary roll from -1 to 1", min_value=-1, max_value=1, required=False)
    @discord.option("status", str, description="Put the drop back on the market", choices=STATUS_CHOICES, required=False)
    @discord.option("notes", str, description="Replace the notes", required=False)
    async def edit(
        self,
        ctx: discord.ApplicationContext,
        drop_id: str,
        owner: str | None = None,
        weapon_type: str | None = None,
        main_roll: int | None = None,
        secondary_roll: int | None = None,
        status: str | None = None,
        notes: str | None = None,
    ) -> None:
        """
        Correct a drop. Sales it belonged to are recalculated.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            drop_id (str): The drop ID.
            owner (str | None): New holder's name.
            weapon_type (str | None): New weapon type.
            main_roll (int | None): New main roll.
            secondary_roll (int | None): New secondary roll.
            status (str | None): New status, unsold or listed.
            notes (str | None): New notes.
        """

        await ctx.defer(ephemeral=True)

        owner_id = (await self.ledger.find_player_by_name(owner)).id if owner else None

        drop, report = await self.ledger.correct_drop(
            drop_id.strip(),
            owner_id=owner_id,
            weapon_type=weapon_type,
            main_roll=main_roll,
            secondary_roll=secondary_roll,
            status=status,
            notes=notes,
        )

        description = f"Drop `{drop.id}` is now **{drop.weapon_type.value}** `{drop.main_roll:+d}/{drop.secondary_roll:+d}` ({drop.status.value})"
        if report.recalculated:
            description += f"\n\n`{len(report.recalculated)}` sale(s) were recalculated and their payments reset."

        await ctx.followup.send(embed=SuccessEmbed(title="Drop Corrected", description=description), ephemeral=True)

    @drop.command(description="Disenchant a drop into essence or stone")
    @discord.option("drop_id", str, description="The drop to disenchant")
    @discord.option("into", str, description="What the drop turns into", choices=[target.value for target in DisenchantTarget])
    async def disenchant(self, ctx: discord.ApplicationContext, drop_id: str, into: str) -> None:
        """
        Disenchant a drop instead of selling it.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            drop_id (str): The drop ID.
            into (str): essence or stone.
        """

        await ctx.defer(ephemeral=True)

        drop = await self.ledger.disenchant_drop(drop_id.strip(), into)

        embed = SuccessEmbed(
            title="Drop Disenchanted",
            description=f"**{drop.weapon_type.value}** `{drop.id}` was turned into {drop.disenchanted_into.value}",
        )
        await ctx.followup.send(embed=embed, ephemeral=True)


def setup(bot: Tally) -> None:
    """
    Load the DropsCog into the bot.

    Args:
        bot (Tally): The bot instance to load the cog into.
    """

    bot.add_cog(DropsCog(bot))
