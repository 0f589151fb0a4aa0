import discord

from models import PlayerRecord, RunRecord, display_name
from services.summary import RunSummary
from utils.enums import DropStatus, RunStatus

from ..common import dt_to_psx, format_ws


class RunEmbed(discord.Embed):
    """
    A custom embed class for displaying a run's configuration.
    """

    def __init__(self, run: RunRecord, players: dict[str, PlayerRecord], **kwargs) -> None:
        super().__init__(
            title=f"Run #{run.run_number}",
            colour=discord.Colour.green() if run.status == RunStatus.OPEN else discord.Colour.dark_grey(),
            **kwargs,
        )

        status_emoji = "🟢" if run.status == RunStatus.OPEN else "🔴"
        host = players.get(run.host_id)

        self.add_field(name="Status", value=f"{status_emoji} `{run.status.value.capitalize()}`", inline=True)
        self.add_field(name="Date", value=f"<t:{int(dt_to_psx(run.date))}:D>", inline=True)
        self.add_field(name="Host", value=host.name if host else "`Unknown`", inline=True)

        self.add_field(
            name="Entry Fee",
            value=(
                f"`{run.essence_required}x` essence @ `{format_ws(run.essence_price_ws)}`\n"
                f"`{run.stone_required}x` stone @ `{format_ws(run.stone_price_ws)}`\n"
                f"**Total:** `{format_ws(run.total_entry_fee_ws)}`"
            ),
            inline=False,
        )

        participants = []
        for participant in run.participants:
            player = players.get(participant.player_id)
            name = player.name if player else participant.player_id
            weight = f" ×{participant.share_modifier:g}" if participant.share_modifier != 1 else ""
            participants.append(f"{name}{weight}")

        self.add_field(name="Participants", value=(", ".join(participants) or "*None yet*")[:1024], inline=False)
        self.set_footer(text=f"Run ID: {run.id}")


class RunSummaryEmbed(discord.Embed):
    """
    A custom embed class for displaying what a run has earned and who is owed what.
    """

    def __init__(self, summary: RunSummary, **kwargs) -> None:
        run = summary.run
        totals = summary.totals

        super().__init__(
            title=f"Run #{run.run_number} Summary",
            colour=discord.Colour.gold() if summary.payment_status.splits_fully_paid else discord.Colour.orange(),
            **kwargs,
        )

        self.summary = summary

        self.add_field(name="Entry Fee", value=f"`{format_ws(totals.total_entry_fee_ws)}`", inline=True)
        self.add_field(name="Gross Sales", value=f"`{format_ws(totals.total_sales_ws)}`", inline=True)
        self.add_field(name="Net After Fees", value=f"`{format_ws(totals.total_net_after_fees_ws)}`", inline=True)
        self.add_field(name="Disenchanted", value=f"`{format_ws(totals.total_disenchanted_ws)}`", inline=True)
        self.add_field(name="Fees Covered By Sales", value=f"`{format_ws(totals.fees_covered_by_sales_ws)}`", inline=True)
        self.add_field(name="Unpaid Entry Fee", value=f"`{format_ws(totals.unpaid_entry_fee_ws)}`", inline=True)

        self.add_field(name="Drops", value=self.drop_breakdown(), inline=False)
        self.add_field(name="Split Preview", value=self.participant_breakdown(), inline=False)

        status = summary.payment_status
        paid_text = "✅ All splits paid" if status.splits_fully_paid else f"⏳ `{format_ws(status.total_owed_ws)}` still owed"
        self.add_field(name="Payments", value=paid_text, inline=False)

        self.timestamp = discord.utils.utcnow()
        self.set_footer(text=f"{len(summary.sales)} sale(s) • Sale splits are authoritative, the preview is indicative")

    def drop_breakdown(self) -> str:
        """
        Count the run's drops by status.

        Returns:
            str: Formatted status counts
        """

        if not self.summary.drops:
            return "*No drops logged yet - use `/drop add` to log one!*"

        counts = {status: 0 for status in DropStatus}
        for drop in self.summary.drops:
            counts[drop.status] += 1

        return " • ".join(f"`{count}` {status.value}" for status, count in counts.items() if count)

    def participant_breakdown(self) -> str:
        """
        Generate the per-participant split preview, with what each participant is owed overall.

        Returns:
            str: Formatted split lines
        """

        if not self.summary.per_participant:
            return "*This run has no participants.*"

        lines = []
        for participant in self.summary.per_participant:
            lines.append(
                f"**{display_name(participant.player)}**: `{format_ws(participant.amount_ws)}`"
                f" (owed `{format_ws(participant.owed_ws)}`)"
            )
        return "\n".join(lines)[:1024]
