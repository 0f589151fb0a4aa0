import logging

import discord

from config import config
from core import Cog, Tally
from models import PlayerRecord, RunParticipant
from services import CascadeReport
from utils import format_ws
from utils.embeds import ErrorEmbed, RunEmbed, RunSummaryEmbed, SuccessEmbed
from utils.enums import RunStatus
from utils.views import ConfirmDeleteRunView

GUILD_IDS = config["ledger"]["guilds"] or None
CHANNEL_IDS = config["ledger"]["channels"]

logger = logging.getLogger("tally")


class RunsCog(Cog, name="Runs", guild_ids=GUILD_IDS):
    """
    A cog to organise runs, their participants and their entry fees.
    """

    async def resolve_player(self, ctx: discord.ApplicationContext, name: str | None) -> PlayerRecord:
        """
        Resolve a player by name, or the player linked to the invoking member when no name is given.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            name (str | None): The player's name.

        Returns:
            PlayerRecord: The player.
        """

        if name:
            return await self.ledger.find_player_by_name(name)
        return await self.ledger.find_player_by_discord_id(str(ctx.author.id))

    def cascade_note(self, report: CascadeReport) -> str:
        """Describe what a recalculation rewrote, for appending to a response."""

        note = ""
        if report.recalculated:
            note += f"\n\n`{len(report.recalculated)}` sale(s) were recalculated and their payments reset."
        if report.skipped_run_ids:
            note += f"\n⚠️ Skipped missing run(s): {', '.join(f'`{run_id}`' for run_id in report.skipped_run_ids)}"
        return note

    # Main runs command group
    run = discord.SlashCommandGroup("run", "Organise runs and their entry fees")

    @run.command(description="Start a new run")
    @discord.option("essence_price", float, description="Price of one essence in WS")
    @discord.option("stone_price", float, description="Price of one stone in WS")
    @discord.option("host", str, description="Hosting player, defaults to you", required=False)
    @discord.option("participants", str, description="Other participants, comma separated names", required=False)
    @discord.option("essence_required", int, description="Essence consumed by the run", required=False)
    @discord.option("stone_required", int, description="Stone consumed by the run", required=False)
    async def create(
        self,
        ctx: discord.ApplicationContext,
        essence_price: float,
        stone_price: float,
        host: str | None = None,
        participants: str | None = None,
        essence_required: int | None = None,
        stone_required: int | None = None,
    ) -> None:
        """
        Start a new run. The host is always the first participant.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            essence_price (float): Price of one essence.
            stone_price (float): Price of one stone.
            host (str | None): Hosting player's name.
            participants (str | None): Comma separated participant names.
            essence_required (int | None): Essence consumed.
            stone_required (int | None): Stone consumed.
        """

        # Check if command is used in allowed channels
        if CHANNEL_IDS and ctx.channel_id not in CHANNEL_IDS:
            allowed_channels = [f"<#{channel_id}>" for channel_id in CHANNEL_IDS]
            embed = ErrorEmbed(None, f"This command can only be used in: {', '.join(allowed_channels)}")
            await ctx.respond(embed=embed, ephemeral=True)
            return

        await ctx.defer(ephemeral=True)

        host_player = await self.resolve_player(ctx, host)

        members = [RunParticipant(player_id=host_player.id)]
        for name in (participants or "").split(","):
            if not name.strip():
                continue
            player = await self.ledger.find_player_by_name(name)
            if player.id != host_player.id:
                members.append(RunParticipant(player_id=player.id))

        run = await self.ledger.create_run(
            host_player.id,
            members,
            essence_price_ws=essence_price,
            stone_price_ws=stone_price,
            essence_required=essence_required if essence_required is not None else config["ledger"]["essence_required"],
            stone_required=stone_required if stone_required is not None else config["ledger"]["stone_required"],
        )

        logger.info(f"[RUNS] Run #{run.run_number} Created By {ctx.author} ({ctx.author.id})")

        players = await self.ledger.players_by_id()
        await ctx.followup.send(embeds=[SuccessEmbed(title="Run Created"), RunEmbed(run, players)], ephemeral=True)

    @run.command(description="Add a participant to a run")
    @discord.option("run_number", int, description="The run number")
    @discord.option("player", str, description="Player to add, defaults to you", required=False)
    @discord.option("share", float, description="Share modifier, 1 is an equal share", required=False)
    async def join(
        self, ctx: discord.ApplicationContext, run_number: int, player: str | None = None, share: float | None = None
    ) -> None:
        """
        Add a participant to a run, or change their share if they already take part.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            player (str | None): The player's name.
            share (float | None): Share modifier.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        if run.status != RunStatus.OPEN:
            await ctx.followup.send(embed=ErrorEmbed(None, f"Run #{run.run_number} is already settled."), ephemeral=True)
            return

        joining = await self.resolve_player(ctx, player)
        modifier = share if share is not None else 1.0

        participants = [p.model_copy() for p in run.participants]
        existing = next((p for p in participants if p.player_id == joining.id), None)
        if existing:
            existing.share_modifier = modifier
        else:
            participants.append(RunParticipant(player_id=joining.id, share_modifier=modifier))

        run, report = await self.ledger.update_run(run.id, participants=participants)
        await self.invalidate_run(run.run_number)

        embed = SuccessEmbed(
            title="Participant Updated" if existing else "Participant Added",
            description=f"**{joining.name}** takes part in run #{run.run_number} with a share of `{modifier:g}`"
            + self.cascade_note(report),
        )
        await ctx.followup.send(embed=embed, ephemeral=True)

    @run.command(description="Remove a participant from a run")
    @discord.option("run_number", int, description="The run number")
    @discord.option("player", str, description="Player to remove")
    async def leave(self, ctx: discord.ApplicationContext, run_number: int, player: str) -> None:
        """
        Remove a participant from a run.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            player (str): The player's name.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        leaving = await self.ledger.find_player_by_name(player)

        if not run.is_participant(leaving.id):
            await ctx.followup.send(embed=ErrorEmbed(None, f"**{leaving.name}** is not in run #{run.run_number}."), ephemeral=True)
            return

        participants = [p for p in run.participants if p.player_id != leaving.id]
        run, report = await self.ledger.update_run(run.id, participants=participants)
        await self.invalidate_run(run.run_number)
        logger.info(f"[RUNS] Player {leaving.name} Removed From Run #{run.run_number}")

        embed = SuccessEmbed(
            title="Participant Removed",
            description=f"**{leaving.name}** no longer takes part in run #{run.run_number}" + self.cascade_note(report),
        )
        await ctx.followup.send(embed=embed, ephemeral=True)

    @run.command(description="Change a run's entry fee resources or prices")
    @discord.option("run_number", int, description="The run number")
    @discord.option("essence_price", float, description="Price of one essence in WS", required=False)
    @discord.option("stone_price", float, description="Price of one stone in WS", required=False)
    @discord.option("essence_required", int, description="Essence consumed by the run", required=False)
    @discord.option("stone_required", int, description="Stone consumed by the run", required=False)
    async def prices(
        self,
        ctx: discord.ApplicationContext,
        run_number: int,
        essence_price: float | None = None,
        stone_price: float | None = None,
        essence_required: int | None = None,
        stone_required: int | None = None,
    ) -> None:
        """
        Change what a run's entry fee is made of. All of its sales are recalculated.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            essence_price (float | None): Price of one essence.
            stone_price (float | None): Price of one stone.
            essence_required (int | None): Essence consumed.
            stone_required (int | None): Stone consumed.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        run, report = await self.ledger.update_run(
            run.id,
            essence_price_ws=essence_price,
            stone_price_ws=stone_price,
            essence_required=essence_required,
            stone_required=stone_required,
        )
        await self.invalidate_run(run.run_number)

        embed = SuccessEmbed(
            title="Entry Fee Updated",
            description=f"Run #{run.run_number} now costs `{format_ws(run.total_entry_fee_ws)}`" + self.cascade_note(report),
        )
        await ctx.followup.send(embed=embed, ephemeral=True)

    @run.command(description="Show a run's participants and entry fee")
    @discord.option("run_number", int, description="The run number")
    async def info(self, ctx: discord.ApplicationContext, run_number: int) -> None:
        """
        Show a run's configuration.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        players = await self.ledger.players_by_id()
        await ctx.followup.send(embed=RunEmbed(run, players), ephemeral=True)

    @run.command(description="Show what a run has earned and who is owed what")
    @discord.option("run_number", int, description="The run number")
    async def summary(self, ctx: discord.ApplicationContext, run_number: int) -> None:
        """
        Show a run's totals, unpaid entry fee and split preview.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        summary = await self.ledger.get_run_summary(run.id)
        await ctx.followup.send(embed=RunSummaryEmbed(summary), ephemeral=True)

    @run.command(description="Settle a run, or reopen a settled one")
    @discord.option("run_number", int, description="The run number")
    @discord.option("reopen", bool, description="Reopen the run instead", required=False)
    async def settle(self, ctx: discord.ApplicationContext, run_number: int, reopen: bool = False) -> None:
        """
        Settle a run so no more drops can be logged, or reopen it.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            reopen (bool): Reopen instead of settling.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        status = RunStatus.OPEN if reopen else RunStatus.SETTLED
        run, _ = await self.ledger.update_run(run.id, status=status)
        await self.invalidate_run(run.run_number)

        embed = SuccessEmbed(title="Run Reopened" if reopen else "Run Settled", description=f"Run #{run.run_number} is now `{status.value}`")
        await ctx.followup.send(embed=embed, ephemeral=True)

    @run.command(description="Mark all splits of a run as paid, or unpaid")
    @discord.option("run_number", int, description="The run number")
    @discord.option("paid", bool, description="Whether the splits were paid out", required=False)
    async def paid(self, ctx: discord.ApplicationContext, run_number: int, paid: bool = True) -> None:
        """
        Mark the splits of every sale in a run as paid or unpaid.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
            paid (bool): The new payment state.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)
        sales = await self.ledger.set_run_splits_paid(run.id, paid)

        state = "paid" if paid else "unpaid"
        embed = SuccessEmbed(title="Splits Updated", description=f"Marked `{len(sales)}` sale(s) of run #{run.run_number} as {state}")
        await ctx.followup.send(embed=embed, ephemeral=True)

    @run.command(description="Delete a run with all of its drops and sales")
    @discord.option("run_number", int, description="The run number")
    async def delete(self, ctx: discord.ApplicationContext, run_number: int) -> None:
        """
        Delete a run after confirmation.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
        """

        await ctx.defer(ephemeral=True)

        run = await self.get_or_fetch_run(run_number)

        embed = ErrorEmbed(
            "Delete Run?",
            f"Run #{run.run_number} will be deleted together with all of its drops and sales. This cannot be undone.",
        )
        view = ConfirmDeleteRunView(self, run, ctx.author.id)
        await ctx.followup.send(embed=embed, view=view, ephemeral=True)


def setup(bot: Tally) -> None:
    """
    Load the RunsCog into the bot.

    Args:
        bot (Tally): The bot instance to load the cog into.
    """

    bot.add_cog(RunsCog(bot))
