import logging

import discord

from config import config
from core import Cog, Tally
from utils import format_ws, parse_id_list
from utils.embeds import ErrorEmbed, SaleEmbed
from utils.enums import DropStatus
from utils.modals import RecordSaleModal

GUILD_IDS = config["ledger"]["guilds"] or None

logger = logging.getLogger("tally")


class SalesCog(Cog, name="Sales", guild_ids=GUILD_IDS):
    """
    A cog to record sales of drops and split the proceeds.
    """

    sale = discord.SlashCommandGroup("sale", "Record sales and split their proceeds")

    @sale.command(description="Record the sale of drops from a run")
    @discord.option("run_number", int, description="The run the drops came from")
    async def create(self, ctx: discord.ApplicationContext, run_number: int) -> None:
        """
        Open the sale form for a run, prefilled with its unsold drops.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            run_number (int): The run number.
        """

        run = await self.get_or_fetch_run(run_number)
        drops = await self.ledger.list_drops(run.id)
        unsold = [drop for drop in drops if drop.status in (DropStatus.UNSOLD, DropStatus.LISTED)]

        if not unsold:
            embed = ErrorEmbed("Nothing To Sell", f"Run #{run.run_number} has no unsold drops.")
            await ctx.respond(embed=embed, ephemeral=True)
            return

        await ctx.send_modal(RecordSaleModal(self, run, unsold))

    @sale.command(description="Correct a recorded sale")
    @discord.option("sale_id", str, description="The sale to correct")
    @discord.option("price", float, description="New gross price in WS", min_value=0, required=False)
    @discord.option("buyer", str, description="New buyer", required=False)
    @discord.option("drops", str, description="New drop IDs, space or comma separated", required=False)
    async def edit(
        self,
        ctx: discord.ApplicationContext,
        sale_id: str,
        price: float | None = None,
        buyer: str | None = None,
        drops: str | None = None,
    ) -> None:
        """
        Correct a sale. The whole run is recalculated and its payment flags reset.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            sale_id (str): The sale ID.
            price (float | None): New gross price.
            buyer (str | None): New buyer.
            drops (str | None): New drop IDs.
        """

        await ctx.defer(ephemeral=True)

        drop_ids = parse_id_list(drops) if drops is not None else None
        sale, report = await self.ledger.update_sale(sale_id.strip(), total_price_ws=price, buyer=buyer, drop_ids=drop_ids)

        run = await self.ledger.get_run(sale.run_id)
        players = await self.ledger.players_by_id()

        embed = SaleEmbed(sale, run.run_number, players)
        embed.description = f"`{len(report.recalculated)}` sale(s) of run #{run.run_number} were recalculated and their payments reset."
        await ctx.followup.send(embed=embed, ephemeral=True)

        logger.info(f"[SALES] Sale Corrected: {sale.id} ({format_ws(sale.total_price_ws)})")

    @sale.command(description="Show a sale and its split")
    @discord.option("sale_id", str, description="The sale ID")
    async def info(self, ctx: discord.ApplicationContext, sale_id: str) -> None:
        """
        Show a sale and who gets what from it.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
            sale_id (str): The sale ID.
        """

        await ctx.defer(ephemeral=True)

        sale = await self.ledger.get_sale(sale_id.strip())
        run = await self.ledger.get_run(sale.run_id)
        players = await self.ledger.players_by_id()

        await ctx.followup.send(embed=SaleEmbed(sale, run.run_number, players), ephemeral=True)

    @sale.command(name="list", description="List the most recent sales")
    async def list_sales(self, ctx: discord.ApplicationContext) -> None:
        """
        List the most recent sales, newest first.

        Args:
            ctx (discord.ApplicationContext): The context of the command.
        """

        await ctx.defer(ephemeral=True)

        sales = await self.ledger.list_sales()
        embed = discord.Embed(title="Recent Sales", colour=discord.Colour.blurple())

        if not sales:
            embed.description = "*No sales recorded yet - use `/sale create` to record one!*"
        else:
            lines = []
            for sale in sales[:20]:
                settled = "✅" if sale.is_settled else "⏳"
                lines.append(
                    f"{settled} `{sale.id}` • {sale.buyer} • `{format_ws(sale.total_price_ws)}` gross,"
                    f" `{format_ws(sale.net_after_fees_ws)}` net"
                )
            embed.description = "\n".join(lines)[:4096]

        embed.set_footer(text=f"{len(sales)} sale(s) in total")
        await ctx.followup.send(embed=embed, ephemeral=True)


def setup(bot: Tally) -> None:
    """
    Load the SalesCog into the bot.

    Args:
        bot (Tally): The bot instance to load the cog into.
    """

    bot.add_cog(SalesCog(bot))
