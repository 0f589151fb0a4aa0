import logging
import math
from typing import TYPE_CHECKING

import discord

from models import DropRecord, RunRecord
from services import LedgerError

from ..common import format_ws, parse_id_list
from ..embeds import ErrorEmbed, SaleEmbed

if TYPE_CHECKING:
    from cogs.sales import SalesCog

logger = logging.getLogger("tally")


class RecordSaleModal(discord.ui.Modal):
    """Modal for recording the sale of one or more drops of a run."""

    def __init__(self, cog: "SalesCog", run: RunRecord, unsold: list[DropRecord], *args, **kwargs) -> None:
        super().__init__(title=f"Record Sale • Run #{run.run_number}", *args, **kwargs)

        self.cog: "SalesCog" = cog
        self.run: RunRecord = run

        # Prefill with every unsold drop, the host trims what was not sold
        prefill = " ".join(drop.id for drop in unsold)

        self.add_item(
            discord.ui.InputText(
                style=discord.InputTextStyle.long,
                label="Drop IDs",
                placeholder="Space or comma separated drop IDs",
                value=prefill[:4000] or None,
                required=True,
            )
        )
        self.add_item(
            discord.ui.InputText(
                style=discord.InputTextStyle.short,
                label="Total Price (WS)",
                placeholder="e.g. 120, 45.5",
                required=True,
            )
        )
        self.add_item(discord.ui.InputText(style=discord.InputTextStyle.short, label="Buyer", required=True))

    async def on_error(self, _: discord.Interaction, error: Exception) -> None:
        logger.error("[MODAL] RecordSaleModal Error", exc_info=error)

    async def callback(self, interaction: discord.Interaction):
        """Handle the modal submission and record the sale."""

        await interaction.response.defer(ephemeral=True)

        drop_ids = parse_id_list(self.children[0].value or "")
        price_str = (self.children[1].value or "").strip().replace(",", "")
        buyer = self.children[2].value or ""

        # Validate price
        try:
            total_price_ws = float(price_str)
            if not math.isfinite(total_price_ws) or total_price_ws < 0:
                raise ValueError("Price out of range")
        except ValueError:
            embed = ErrorEmbed("Invalid Price", "Please enter a price of `0` WS or more.")
            await interaction.followup.send(embed=embed, ephemeral=True)
            return

        try:
            sale, report = await self.cog.ledger.create_sale(self.run.id, drop_ids, total_price_ws, buyer)
        except LedgerError as e:
            await interaction.followup.send(embed=ErrorEmbed(e.title, e.message), ephemeral=True)
            return

        players = await self.cog.ledger.players_by_id()
        embed = SaleEmbed(sale, self.run.run_number, players)
        if report.recalculated:
            embed.description = (
                f"This sale predates others in the run, `{len(report.recalculated)}` sale(s) were recalculated "
                "and their payments reset."
            )

        await interaction.followup.send(embed=embed, ephemeral=True)
        logger.info(f"[SALES] Sale Recorded Via Modal: {sale.id} ({format_ws(sale.total_price_ws)})")
